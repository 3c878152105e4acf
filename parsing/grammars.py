"""
Textual dump grammars of the supported decision forests.

Each grammar is described by the four values the shared path reconstruction
needs (leaf marker, indentation marker, indentation run, length offset) plus the
pattern that splits a full path into its fields.

Examples of leaf lines, after the path has been reconstructed:

    SysFor:        outlook = sunny && humidity <= 75: yes {no,0;yes,2} (2.0)
    ForestPA:      outlook = sunny && humidity <= 75: yes(2.0/1.0)
    RandomForest:  outlook = sunny && humidity < 77.5 : yes (2/0)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Pattern
import re


class ModelKind(str, Enum):
    """Forest implementations whose dumps can be parsed."""
    SYSFOR = "sysfor"
    FORESTPA = "forestpa"
    RANDOM_FOREST = "randomforest"

    @classmethod
    def from_identifier(cls, identifier) -> "ModelKind":
        """
        Resolves a model kind from its value, its name or a Weka class name.

        Args:
            identifier: ModelKind, "sysfor", "RANDOM_FOREST", "weka.classifiers.trees.SysFor", ...

        Returns:
            Matching ModelKind

        Raises:
            ValueError: When the identifier names no supported forest
        """
        if isinstance(identifier, cls):
            return identifier

        key = str(identifier).strip()
        if key in WEKA_CLASS_NAMES:
            return WEKA_CLASS_NAMES[key]

        key = key.lower().replace("_", "").replace("-", "")
        for kind in cls:
            if key == kind.value:
                return kind
        raise ValueError(f"Unknown model kind: {identifier!r}")


WEKA_CLASS_NAMES: Dict[str, ModelKind] = {
    "weka.classifiers.trees.SysFor": ModelKind.SYSFOR,
    "weka.classifiers.trees.ForestPA": ModelKind.FORESTPA,
    "weka.classifiers.trees.RandomForest": ModelKind.RANDOM_FOREST,
}


@dataclass(frozen=True)
class DumpGrammar:
    """
    Parameters of one dump layout.

    Attributes:
        name: Human readable name, used in logs and reports
        leaf_marker: Substring that marks a line as a leaf
        indent_marker: Substring counted to get a line's depth
        indent_run: Regex matching one or more indentation blocks, replaced by " && "
        terminal_pattern: Full-match pattern with groups condition, label, records,
            misclassified and (optionally) distribution
        length_offset: Added to the number of conjuncts to get the rule length
        has_distribution: Whether the pattern can capture a class distribution block
    """
    name: str
    leaf_marker: str
    indent_marker: str
    indent_run: Pattern
    terminal_pattern: Pattern
    length_offset: int
    has_distribution: bool = False


# Characters allowed in a class label
_LABEL = r"""[A-Za-z0-9_\-!@#$%^*~'"&]+"""
_NUMBER = r"[0-9.]+"


SYSFOR_GRAMMAR = DumpGrammar(
    name="SysFor",
    leaf_marker="(",
    indent_marker="|",
    indent_run=re.compile(r"(\|   )+"),
    terminal_pattern=re.compile(
        rf"(?P<condition>.+): (?P<label>{_LABEL})"
        r"(?: \{(?P<distribution>[^{}]+)\})?"
        rf" \((?P<records>{_NUMBER})(?:/(?P<misclassified>{_NUMBER}))?\)"
    ),
    length_offset=0,
    has_distribution=True,
)

FORESTPA_GRAMMAR = DumpGrammar(
    name="ForestPA",
    leaf_marker="/",
    indent_marker="|  ",
    indent_run=re.compile(r"(\|  )+"),
    terminal_pattern=re.compile(
        rf"(?P<condition>.+): (?P<label>{_LABEL})"
        rf"\((?P<records>{_NUMBER})(?:/(?P<misclassified>{_NUMBER}))?\)"
    ),
    length_offset=1,
)

RANDOM_FOREST_GRAMMAR = DumpGrammar(
    name="RandomForest",
    leaf_marker="(",
    indent_marker="|",
    indent_run=re.compile(r"(\|   )+"),
    terminal_pattern=re.compile(
        rf"(?P<condition>.+) : (?P<label>{_LABEL})"
        rf" \((?P<records>{_NUMBER})(?:/(?P<misclassified>{_NUMBER}))?\)"
    ),
    length_offset=1,
)


GRAMMARS: Dict[ModelKind, DumpGrammar] = {
    ModelKind.SYSFOR: SYSFOR_GRAMMAR,
    ModelKind.FORESTPA: FORESTPA_GRAMMAR,
    ModelKind.RANDOM_FOREST: RANDOM_FOREST_GRAMMAR,
}
