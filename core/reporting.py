"""
Text rendering of rule collections and build statuses.
"""

from enum import Enum
from typing import Dict, List, Optional

from core.models import ClassAttribute, Rule, RuleCollection


class SortMode(str, Enum):
    """Order in which rules are listed."""
    ACCURACY = "acc"
    COVERAGE = "cov"
    LENGTH = "len"


def sort_rules(rules, sort_mode: SortMode) -> List[Rule]:
    """
    Sorts rules for display.

    Accuracy and coverage are listed highest first, length shortest first.
    Ties keep their original order.
    """
    sort_mode = SortMode(sort_mode)
    if sort_mode == SortMode.ACCURACY:
        return sorted(rules, key=lambda r: r.accuracy, reverse=True)
    if sort_mode == SortMode.COVERAGE:
        return sorted(rules, key=lambda r: r.coverage, reverse=True)
    return sorted(rules, key=lambda r: r.length)


def group_by_label(
    rules: RuleCollection,
    class_attribute: Optional[ClassAttribute] = None
) -> Dict[str, List[Rule]]:
    """
    Partitions rules by predicted label.

    Groups follow class index order when a class attribute is given, otherwise
    the order in which labels first appear.
    """
    groups: Dict[str, List[Rule]] = {}
    if class_attribute is not None:
        for label in class_attribute:
            groups[label] = []

    for rule in rules:
        groups.setdefault(rule.predicted_class_label, []).append(rule)

    return {label: members for label, members in groups.items() if members}


def render_rules(
    rules: RuleCollection,
    sort_mode: SortMode = SortMode.ACCURACY,
    group_by_class: bool = True,
    class_attribute: Optional[ClassAttribute] = None
) -> str:
    """
    Renders the rules, one per line.

    Args:
        rules: Rules to render
        sort_mode: Sort key
        group_by_class: Whether to list rules under a heading per class value
        class_attribute: Optional class enumeration fixing the group order

    Returns:
        Rendered text
    """
    out = []

    if not group_by_class:
        for rule in sort_rules(rules, sort_mode):
            out.append(f"{rule}\n")
        return "".join(out)

    for label, members in group_by_label(rules, class_attribute).items():
        out.append(f"Rules for class value {label} ({len(members)} found): \n")
        for rule in sort_rules(members, sort_mode):
            out.append(f"{rule}\n")
        out.append("\n\n")

    return "".join(out)


def render_report(
    rules: RuleCollection,
    total_found: int,
    source_name: str,
    sort_mode: SortMode = SortMode.ACCURACY,
    group_by_class: bool = True,
    class_attribute: Optional[ClassAttribute] = None,
    source_dump: Optional[str] = None
) -> str:
    """
    Full report: rule counts, the rendered rules and optionally the source dump.

    Args:
        rules: Final rules
        total_found: Number of rules found in the forest before selection
        source_name: Name of the forest implementation
        sort_mode: Sort key
        group_by_class: Whether to group by class value
        class_attribute: Optional class enumeration fixing the group order
        source_dump: Dump text appended after the rules, if given

    Returns:
        Rendered report
    """
    out = [
        f"There were a total of {total_found} rules found by the {source_name} classifier.\n",
        f"{len(rules)} ForEx++ Rules Discovered:\n\n",
        render_rules(rules, sort_mode, group_by_class, class_attribute),
    ]
    if source_dump is not None:
        out.append("\n")
        out.append(source_dump)
    return "".join(out)


STATUS_MESSAGES = {
    "unbuilt": "ForEx++ not built!\nNo forest has been processed yet.",
    "no_criteria": (
        "ForEx++ not built!\nSelect at least one criteria by which to select "
        "rules (accuracy, coverage, or rule length)."
    ),
    "incompatible_source_model": (
        "ForEx++ not built!\nRandomForest must print its individual trees "
        "(verbose per-tree output) for rules to be extracted."
    ),
    "unsupported_model": (
        "ForEx++ not built!\nForEx++ can currently only parse RandomForest, SysFor or ForestPA."
    ),
    "trivial_dataset": "ForEx++ not built!\nUse a dataset with more than one attribute.",
}


def render_status(status) -> str:
    """
    Message explaining why no rule set was built.

    Args:
        status: BuildStatus (or its value)

    Returns:
        Reason-specific message, empty string for a built status
    """
    return STATUS_MESSAGES.get(getattr(status, "value", status), "")
