"""
Turns the textual dump of a decision forest into a RuleCollection.

A dump lists each tree with one node per line. Depth is encoded only by
indentation markers, so the full path of a leaf is rebuilt by climbing upwards
to the nearest line with a smaller depth until the root is reached.

Functions:
    - climb_to_root: full path text of a single leaf line
    - reconstruct_paths: full path texts of all leaf lines of a dump
    - parse_dump: rules of a dump in a given grammar
    - extract_rules: dispatcher keyed by model kind
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from core.exceptions import UnsupportedModelError
from core.models import ClassAttribute, Rule, RuleCollection
from parsing.grammars import DumpGrammar, GRAMMARS, ModelKind

default_logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """
    Result of parsing one dump.

    Attributes:
        rules: Rules extracted from all parseable leaves
        leaf_lines: Number of lines recognised as leaves
        skipped_leaves: Leaves dropped because their path was incomplete,
            did not match the grammar or named an unknown class
    """
    rules: RuleCollection
    leaf_lines: int
    skipped_leaves: int


def line_depth(line: str, grammar: DumpGrammar) -> int:
    return line.count(grammar.indent_marker)


def climb_to_root(lines: List[str], leaf_index: int, grammar: DumpGrammar) -> Optional[str]:
    """
    Builds the root-to-leaf path of the leaf at lines[leaf_index].

    Lines above the leaf are scanned bottom-up. Every line with a smaller depth
    than the last one taken is a parent split and is prepended. The scan stops at
    the first depth-0 parent.

    Args:
        lines: All lines of the dump
        leaf_index: Index of the leaf line
        grammar: Grammar defining the indentation marker

    Returns:
        Path text with indentation runs replaced by " && ", the leaf line itself
        for a depth-0 leaf, or None if no depth-0 parent exists
    """
    path = lines[leaf_index]
    depth = line_depth(path, grammar)

    if depth == 0:
        return path

    for k in range(leaf_index - 1, -1, -1):
        candidate = lines[k]
        candidate_depth = line_depth(candidate, grammar)

        if candidate_depth >= depth:
            continue

        depth = candidate_depth
        path = candidate + path
        if depth == 0:
            return grammar.indent_run.sub(" && ", path)

    return None


def reconstruct_paths(dump_text: str, grammar: DumpGrammar) -> Tuple[List[str], int]:
    """
    Full path texts of every leaf line in a dump.

    Returns:
        Tuple of (paths in line order, number of leaf lines without a root)
    """
    lines = dump_text.splitlines()
    paths = []
    orphans = 0

    for index, line in enumerate(lines):
        if grammar.leaf_marker not in line:
            continue
        path = climb_to_root(lines, index, grammar)
        if path is None:
            orphans += 1
        else:
            paths.append(path)

    return paths, orphans


def _count_conjuncts(condition: str) -> int:
    # Trailing empty pieces are not conditions.
    parts = condition.split("&&")
    while len(parts) > 1 and parts[-1] == "":
        parts.pop()
    return len(parts)


def _parse_distribution(text: str, class_attribute: ClassAttribute) -> Tuple[float, ...]:
    """
    Parses a SysFor distribution block body such as "no,0;yes,2".

    Counts are positional; missing trailing classes are zero.

    Raises:
        ValueError: When an entry is malformed or there are more entries than classes
    """
    entries = text.replace(" ", "").split(";")
    if len(entries) > class_attribute.num_values():
        raise ValueError(f"Distribution has {len(entries)} entries for {class_attribute.num_values()} classes")

    counts = [0.0] * class_attribute.num_values()
    for position, entry in enumerate(entries):
        parts = entry.split(",")
        if len(parts) != 2:
            raise ValueError(f"Malformed distribution entry {entry!r}")
        counts[position] = float(parts[1])
    return tuple(counts)


def rule_from_path(
    path: str,
    grammar: DumpGrammar,
    total_records: int,
    class_attribute: ClassAttribute
) -> Rule:
    """
    Builds a Rule from a reconstructed path.

    Args:
        path: Output of climb_to_root
        grammar: Grammar the path is written in
        total_records: Number of training records (denominator of coverage)
        class_attribute: Class enumeration used to resolve the label

    Returns:
        Parsed rule

    Raises:
        ValueError: When the path does not match the grammar, a number is
            malformed or the label is not a class value
    """
    match = grammar.terminal_pattern.fullmatch(path)
    if match is None:
        raise ValueError(f"Leaf does not match the {grammar.name} pattern")

    condition = match.group("condition")
    label = match.group("label")

    class_index = class_attribute.index_of(label)
    if class_index < 0:
        raise ValueError(f"Unknown class label {label!r}")

    records = float(match.group("records"))
    misclassified_text = match.group("misclassified")
    misclassified = float(misclassified_text) if misclassified_text else 0.0

    accuracy = 0.0
    if records != 0:
        accuracy = (records - misclassified) / records

    distribution = None
    if grammar.has_distribution and match.group("distribution"):
        distribution = _parse_distribution(match.group("distribution"), class_attribute)

    return Rule(
        condition_text=condition,
        predicted_class_index=class_index,
        predicted_class_label=label,
        accuracy=accuracy,
        coverage=records / total_records,
        num_records_in_leaf=records,
        length=_count_conjuncts(condition) + grammar.length_offset,
        class_distribution=distribution,
    )


def parse_dump(
    dump_text: str,
    grammar: DumpGrammar,
    total_records: int,
    class_attribute: ClassAttribute,
    logger: Optional[logging.Logger] = None
) -> ParseResult:
    """
    Extracts all rules of a dump written in the given grammar.

    Leaves that cannot be parsed are logged and skipped.

    Args:
        dump_text: Textual dump of the forest
        grammar: Grammar of the dump
        total_records: Number of training records (must be positive)
        class_attribute: Class enumeration
        logger: Optional logger (module logger by default)

    Returns:
        ParseResult with the rules and leaf counts

    Raises:
        ValueError: When total_records is not positive
    """
    log = logger if logger else default_logger

    if total_records <= 0:
        raise ValueError(f"total_records must be positive, got {total_records}")

    paths, orphans = reconstruct_paths(dump_text, grammar)
    if orphans:
        log.warning(f"[PARSER] {orphans} {grammar.name} leaf line(s) have no root split, skipped")

    rules = []
    skipped = orphans
    for path in paths:
        try:
            rules.append(rule_from_path(path, grammar, total_records, class_attribute))
        except ValueError as e:
            skipped += 1
            log.warning(f"[PARSER] Skipping leaf '{path.strip()}': {e}")

    collection = RuleCollection(rules)
    log.debug(
        f"[PARSER] {grammar.name}: {len(paths) + orphans} leaf lines, {len(rules)} parsed, "
        f"{skipped} skipped, {len(rules) - len(collection)} repeated leaves merged"
    )

    return ParseResult(rules=collection, leaf_lines=len(paths) + orphans, skipped_leaves=skipped)


def extract_rules(
    model_kind,
    dump_text: str,
    total_records: int,
    class_attribute: ClassAttribute,
    logger: Optional[logging.Logger] = None
) -> ParseResult:
    """
    Parses a dump with the grammar of the given forest implementation.

    Args:
        model_kind: ModelKind or anything ModelKind.from_identifier accepts
        dump_text: Textual dump of the forest
        total_records: Number of training records
        class_attribute: Class enumeration
        logger: Optional logger

    Returns:
        ParseResult

    Raises:
        UnsupportedModelError: When model_kind names no supported forest
    """
    try:
        kind = ModelKind.from_identifier(model_kind)
    except ValueError:
        raise UnsupportedModelError(model_kind)

    return parse_dump(dump_text, GRAMMARS[kind], total_records, class_attribute, logger=logger)
