"""
Core data models for rules extracted from decision-forest dumps.

Classes:
    - ClassAttribute: ordered class labels of the training data (label <-> index)
    - Rule: a single root-to-leaf path with its statistics
    - RuleCollection: immutable collection of rules with statistics and set algebra
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import math
import pandas as pd

from core.exceptions import EmptyRuleCollectionError

# Two rules whose accuracy and coverage differ by at most this much are duplicates
DUPLICATE_TOLERANCE = 0.001

# Means are rounded to this many decimal places before being used as thresholds
MEAN_DECIMALS = 5


class ClassAttribute:
    """
    Ordered enumeration of class labels.

    Attributes:
        values (Tuple[str, ...]): Class labels in index order

    Example:
        attr = ClassAttribute(["no", "yes"])

        attr.index_of("yes")
        1

        attr.index_of("maybe")
        -1
    """

    def __init__(self, values: Iterable[str]):
        """
        Args:
            values: Class labels in index order (must be non-empty and unique)

        Raises:
            ValueError: When values is empty or contains duplicates
        """
        values = tuple(str(v) for v in values)
        if not values:
            raise ValueError("Class attribute needs at least one value")
        if len(set(values)) != len(values):
            raise ValueError(f"Class values must be unique: {values}")

        self.values = values
        self._index = {label: i for i, label in enumerate(values)}

    @classmethod
    def from_series(cls, series: pd.Series) -> "ClassAttribute":
        """
        Builds the enumeration from a decision column.

        Labels are sorted, the way a nominal attribute header would list them.
        """
        labels = sorted(str(v) for v in series.dropna().unique())
        return cls(labels)

    def index_of(self, label: str) -> int:
        """Returns the index of label, or -1 if it is not a class value."""
        return self._index.get(label, -1)

    def num_values(self) -> int:
        return len(self.values)

    def __len__(self):
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __eq__(self, other):
        if not isinstance(other, ClassAttribute):
            return False
        return self.values == other.values

    def __hash__(self):
        return hash(self.values)

    def __repr__(self):
        return f"ClassAttribute({list(self.values)})"


@dataclass(frozen=True, eq=False)
class Rule:
    """
    One leaf of a decision tree, written as the conjunction of the splits leading to it.

    Attributes:
        condition_text: Split conditions from root to leaf joined with " && "
        predicted_class_index: Index of the leaf's majority class in the ClassAttribute
        predicted_class_label: The same class as text
        accuracy: (records in leaf - misclassified) / records in leaf, 0 for an empty leaf
        coverage: Records in leaf / total training records
        num_records_in_leaf: Possibly fractional (weighted) record count of the leaf
        length: Number of conditions, counted by the grammar's convention
        class_distribution: Per-class counts at the leaf, None if the dump has none

    Rules are duplicates when accuracy and coverage agree within DUPLICATE_TOLERANCE
    and they have the same length and predicted class. The condition text is not compared.

    Example:
        rule = Rule("outlook = sunny && humidity <= 75", 1, "yes",
                    accuracy=1.0, coverage=0.14, num_records_in_leaf=2.0, length=2)
    """

    condition_text: str
    predicted_class_index: int
    predicted_class_label: str
    accuracy: float
    coverage: float
    num_records_in_leaf: float
    length: int
    class_distribution: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        if not 0.0 <= self.accuracy <= 1.0:
            raise ValueError(f"Accuracy must be in [0, 1], got {self.accuracy}")
        if self.coverage < 0.0:
            raise ValueError(f"Coverage cannot be negative, got {self.coverage}")
        if self.num_records_in_leaf < 0:
            raise ValueError(f"Record count cannot be negative, got {self.num_records_in_leaf}")
        if self.length < 1:
            raise ValueError(f"Rule length must be positive, got {self.length}")
        if self.class_distribution is not None:
            object.__setattr__(self, "class_distribution", tuple(self.class_distribution))

    def is_duplicate_of(self, other: "Rule") -> bool:
        """
        Checks whether two rules are the same rule for set operations.

        Args:
            other: Rule to compare with

        Returns:
            True if accuracy and coverage are within DUPLICATE_TOLERANCE and
            length and predicted class are equal
        """
        return (
            abs(self.accuracy - other.accuracy) <= DUPLICATE_TOLERANCE
            and abs(self.coverage - other.coverage) <= DUPLICATE_TOLERANCE
            and self.length == other.length
            and self.predicted_class_index == other.predicted_class_index
        )

    def is_same_leaf_as(self, other: "Rule") -> bool:
        """Duplicate that also has the same condition text (the same leaf printed twice)."""
        return self.condition_text == other.condition_text and self.is_duplicate_of(other)

    def __eq__(self, other):
        if not isinstance(other, Rule):
            return NotImplemented
        return self.is_duplicate_of(other)

    def __hash__(self):
        # Accuracy and coverage compare with a tolerance, so they stay out of the hash.
        return hash((self.length, self.predicted_class_index))

    def __str__(self):
        return (
            f"{self.condition_text}: {self.predicted_class_label}. "
            f"Confidence: {self.accuracy:.3f}; Coverage: {self.coverage:.3f} "
            f"({self.num_records_in_leaf:.0f} records);"
        )

    def to_dict(self) -> dict:
        return {
            "condition": self.condition_text,
            "class_index": self.predicted_class_index,
            "class_label": self.predicted_class_label,
            "accuracy": self.accuracy,
            "coverage": self.coverage,
            "records": self.num_records_in_leaf,
            "length": self.length,
            "class_distribution": list(self.class_distribution) if self.class_distribution is not None else None,
        }


class RuleCollection:
    """
    Immutable, ordered collection of rules.

    Every filter and set operation returns a new collection. Membership and set
    algebra use Rule.is_duplicate_of. Construction only drops rules that are the
    same leaf as an earlier one (same condition text, duplicate statistics).

    Example:
        rules = RuleCollection([r1, r2, r3])
        good = rules.filter_accuracy_at_least(rules.mean_accuracy())
        len(good) <= len(rules)
        True
    """

    def __init__(self, rules: Iterable[Rule] = ()):
        kept: List[Rule] = []
        leaves: Dict[Tuple[str, int, int], List[Rule]] = {}
        for rule in rules:
            key = (rule.condition_text, rule.predicted_class_index, rule.length)
            same_text = leaves.setdefault(key, [])
            if not any(rule.is_same_leaf_as(existing) for existing in same_text):
                same_text.append(rule)
                kept.append(rule)
        self._rules: Tuple[Rule, ...] = tuple(kept)
        self._index: Optional[Dict[Tuple[int, int, int], List[Rule]]] = None

    @classmethod
    def _wrap(cls, rules: Sequence[Rule]) -> "RuleCollection":
        # Skip the dedup pass for subsets of an existing collection.
        collection = cls.__new__(cls)
        collection._rules = tuple(rules)
        collection._index = None
        return collection

    @staticmethod
    def _bucket(rule: Rule) -> Tuple[int, int, int]:
        return rule.predicted_class_index, rule.length, math.floor(rule.coverage / DUPLICATE_TOLERANCE)

    def _membership_index(self) -> Dict[Tuple[int, int, int], List[Rule]]:
        """
        Rules bucketed by class, length and coverage in steps of DUPLICATE_TOLERANCE.

        A duplicate of a rule lies in the same bucket or an adjacent one.
        Built on first use.
        """
        if self._index is None:
            index: Dict[Tuple[int, int, int], List[Rule]] = {}
            for rule in self._rules:
                index.setdefault(self._bucket(rule), []).append(rule)
            self._index = index
        return self._index

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def is_empty(self) -> bool:
        return not self._rules

    def _mean(self, values: List[float], name: str) -> float:
        if not values:
            raise EmptyRuleCollectionError(f"Cannot compute mean {name} of an empty rule collection")
        scale = 10 ** MEAN_DECIMALS
        # Half-up rounding, so a mean ending in 5 rounds the same way every time
        return math.floor(sum(values) / len(values) * scale + 0.5) / scale

    def mean_accuracy(self) -> float:
        """
        Mean accuracy of the rules, rounded to five decimal places.

        Raises:
            EmptyRuleCollectionError: When the collection is empty
        """
        return self._mean([r.accuracy for r in self._rules], "accuracy")

    def mean_coverage(self) -> float:
        """Mean coverage of the rules, rounded to five decimal places."""
        return self._mean([r.coverage for r in self._rules], "coverage")

    def mean_length(self) -> float:
        """Mean rule length, rounded to five decimal places."""
        return self._mean([float(r.length) for r in self._rules], "length")

    def filter_accuracy_at_least(self, threshold: float) -> "RuleCollection":
        return RuleCollection._wrap([r for r in self._rules if r.accuracy >= threshold])

    def filter_coverage_at_least(self, threshold: float) -> "RuleCollection":
        return RuleCollection._wrap([r for r in self._rules if r.coverage >= threshold])

    def filter_length_at_most(self, threshold: float) -> "RuleCollection":
        return RuleCollection._wrap([r for r in self._rules if r.length <= threshold])

    def filter_by_class(self, class_index: int) -> "RuleCollection":
        return RuleCollection._wrap([r for r in self._rules if r.predicted_class_index == class_index])

    def intersect(self, other: "RuleCollection") -> "RuleCollection":
        """
        Rules of this collection that have a duplicate in other.

        Args:
            other: Collection to intersect with

        Returns:
            New collection, in this collection's order
        """
        return RuleCollection._wrap([r for r in self._rules if r in other])

    def union(self, other: "RuleCollection") -> "RuleCollection":
        """
        Rules of this collection followed by the rules of other that are not already present.

        Args:
            other: Collection to merge with

        Returns:
            New collection
        """
        merged = list(self._rules)
        for rule in other:
            if rule not in self:
                merged.append(rule)
        return RuleCollection._wrap(merged)

    def to_dataframe(self) -> pd.DataFrame:
        """
        One row per rule, in collection order.

        Columns: condition, class_index, class_label, accuracy, coverage, records,
        length, class_distribution.
        """
        columns = ["condition", "class_index", "class_label", "accuracy",
                   "coverage", "records", "length", "class_distribution"]
        return pd.DataFrame([r.to_dict() for r in self._rules], columns=columns)

    def __contains__(self, rule) -> bool:
        if not isinstance(rule, Rule):
            return False
        index = self._membership_index()
        class_index, length, bucket = self._bucket(rule)
        # One extra bucket on each side covers rounding in the division
        for neighbour in range(bucket - 2, bucket + 3):
            for existing in index.get((class_index, length, neighbour), ()):
                if rule.is_duplicate_of(existing):
                    return True
        return False

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self):
        return len(self._rules)

    def __eq__(self, other):
        """
        Collections are equal when every rule of each has a duplicate in the other.
        """
        if not isinstance(other, RuleCollection):
            return NotImplemented
        return all(r in other for r in self._rules) and all(r in self for r in other)

    __hash__ = None

    def __repr__(self):
        return f"RuleCollection({len(self._rules)} rules)"
