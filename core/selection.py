"""
ForEx++ rule selection.

For every class value the rules predicting that class are compared with the
class's own means. A rule is kept only if it is at least as good as the mean on
every enabled criterion: accuracy and coverage at least the mean, length at most
the mean. The per-class results are merged into the final rule set.

Classes:
    - SelectionConfig: enabled criteria and zero-accuracy pruning
    - SelectionResult: final rules plus per-class intermediate results
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import math

from core.exceptions import NoCriteriaSelectedError
from core.models import ClassAttribute, RuleCollection

default_logger = logging.getLogger(__name__)

# Smallest positive double; pruning at this floor removes exactly the zero-accuracy rules
MIN_POSITIVE_ACCURACY = math.ulp(0.0)


@dataclass(frozen=True)
class SelectionConfig:
    """
    Selection settings.

    Attributes:
        use_accuracy: Keep rules with accuracy >= class mean accuracy
        use_coverage: Keep rules with coverage >= class mean coverage
        use_length: Keep rules with length <= class mean length
        prune_zero_coverage: Drop rules with accuracy below prune_floor before computing means
        prune_floor: Accuracy floor for pruning
    """
    use_accuracy: bool = True
    use_coverage: bool = True
    use_length: bool = True
    prune_zero_coverage: bool = True
    prune_floor: float = MIN_POSITIVE_ACCURACY

    def has_criteria(self) -> bool:
        return self.use_accuracy or self.use_coverage or self.use_length


@dataclass
class SelectionResult:
    """
    Attributes:
        rules: Union of the per-class selections
        per_class: Selected rules for each class index
        pruned: Number of rules removed by zero-accuracy pruning
    """
    rules: RuleCollection
    per_class: Dict[int, RuleCollection] = field(default_factory=dict)
    pruned: int = 0


def prune_rules(rules: RuleCollection, floor: float) -> RuleCollection:
    """Rules whose accuracy is at least floor."""
    return rules.filter_accuracy_at_least(floor)


def select_for_class(class_rules: RuleCollection, config: SelectionConfig) -> RuleCollection:
    """
    Applies the enabled criteria to the rules of a single class.

    Every threshold is the mean of class_rules, and each filter narrows the
    previous result, so a kept rule passed every enabled filter itself.
    An empty collection selects nothing; no mean is computed for it.
    """
    if class_rules.is_empty():
        return class_rules

    selected = class_rules

    if config.use_accuracy:
        selected = selected.filter_accuracy_at_least(class_rules.mean_accuracy())

    if config.use_coverage:
        selected = selected.filter_coverage_at_least(class_rules.mean_coverage())

    if config.use_length:
        selected = selected.filter_length_at_most(class_rules.mean_length())

    return selected


def select_rules(
    rules: RuleCollection,
    class_attribute: ClassAttribute,
    config: SelectionConfig,
    logger: Optional[logging.Logger] = None
) -> SelectionResult:
    """
    Runs ForEx++ selection over a raw rule collection.

    Args:
        rules: Rules extracted from the forest
        class_attribute: Class enumeration; classes are processed in index order
        config: Enabled criteria and pruning
        logger: Optional logger

    Returns:
        SelectionResult

    Raises:
        NoCriteriaSelectedError: When no criterion is enabled
    """
    log = logger if logger else default_logger

    if not config.has_criteria():
        raise NoCriteriaSelectedError("Select at least one of accuracy, coverage or rule length")

    pruned = 0
    if config.prune_zero_coverage:
        kept = prune_rules(rules, config.prune_floor)
        pruned = len(rules) - len(kept)
        rules = kept
        log.debug(f"[SELECT] Pruned {pruned} rules with accuracy below {config.prune_floor}")

    per_class: Dict[int, RuleCollection] = {}
    final = RuleCollection()

    for class_index, label in enumerate(class_attribute):
        class_rules = rules.filter_by_class(class_index)
        if class_rules.is_empty():
            log.debug(f"[SELECT] Class '{label}': no rules")
            selected = class_rules
        else:
            selected = select_for_class(class_rules, config)
            log.debug(
                f"[SELECT] Class '{label}': {len(selected)}/{len(class_rules)} rules selected "
                f"(mean acc={class_rules.mean_accuracy()}, cov={class_rules.mean_coverage()}, "
                f"len={class_rules.mean_length()})"
            )
        per_class[class_index] = selected
        final = final.union(selected)

    log.info(f"[SELECT] {len(final)} of {len(rules)} rules selected across {len(class_attribute)} classes")

    return SelectionResult(rules=final, per_class=per_class, pruned=pruned)
