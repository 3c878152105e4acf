import pytest

from core.models import ClassAttribute, RuleCollection
from core.reporting import (
    STATUS_MESSAGES,
    SortMode,
    group_by_label,
    render_report,
    render_rules,
    render_status,
    sort_rules,
)


@pytest.fixture
def rules(make_rule):
    return RuleCollection([
        make_rule("a = 1", class_index=1, accuracy=0.7, coverage=0.1, length=3),
        make_rule("a = 2", class_index=0, accuracy=0.9, coverage=0.3, length=2),
        make_rule("a = 3", class_index=1, accuracy=0.8, coverage=0.2, length=1),
    ])


def _conditions(rules):
    return [r.condition_text for r in rules]


class TestSortRules:

    def test_accuracy_descending(self, rules):

        assert _conditions(sort_rules(rules, SortMode.ACCURACY)) == ["a = 2", "a = 3", "a = 1"]

    def test_coverage_descending(self, rules):

        assert _conditions(sort_rules(rules, "cov")) == ["a = 2", "a = 3", "a = 1"]

    def test_length_ascending(self, rules):

        assert _conditions(sort_rules(rules, "len")) == ["a = 3", "a = 2", "a = 1"]

    def test_ties_keep_collection_order(self, make_rule):

        tied = RuleCollection([
            make_rule("x", accuracy=0.5, coverage=0.1),
            make_rule("y", accuracy=0.5, coverage=0.2),
        ])
        assert _conditions(sort_rules(tied, SortMode.ACCURACY)) == ["x", "y"]

    def test_invalid_mode_raises(self, rules):

        with pytest.raises(ValueError):
            sort_rules(rules, "size")


class TestGrouping:

    def test_groups_follow_class_index_order(self, rules):

        groups = group_by_label(rules, ClassAttribute(["no", "yes"]))
        assert list(groups) == ["no", "yes"]
        assert _conditions(groups["yes"]) == ["a = 1", "a = 3"]

    def test_groups_without_class_attribute_follow_first_appearance(self, rules):

        assert list(group_by_label(rules)) == ["yes", "no"]

    def test_classes_without_rules_are_omitted(self, rules):

        groups = group_by_label(rules, ClassAttribute(["maybe", "no", "yes"]))
        assert "maybe" not in groups


class TestRenderRules:

    def test_grouped_layout(self, rules):

        text = render_rules(rules, SortMode.ACCURACY, True, ClassAttribute(["no", "yes"]))
        lines = text.split("\n")

        assert lines[0] == "Rules for class value no (1 found): "
        assert lines[1].startswith("a = 2: no. Confidence: 0.900;")
        assert lines[4] == "Rules for class value yes (2 found): "
        assert lines[5].startswith("a = 3: yes.")
        assert lines[6].startswith("a = 1: yes.")
        assert text.endswith("\n\n\n")

    def test_flat_layout(self, rules):

        text = render_rules(rules, SortMode.LENGTH, group_by_class=False)
        assert "Rules for class value" not in text
        assert text.splitlines()[0].startswith("a = 3: yes.")
        assert len(text.splitlines()) == 3

    def test_empty_collection(self):

        assert render_rules(RuleCollection()) == ""


class TestRenderReport:

    def test_header(self, rules):

        report = render_report(rules, total_found=12, source_name="SysFor")
        assert report.startswith(
            "There were a total of 12 rules found by the SysFor classifier.\n"
            "3 ForEx++ Rules Discovered:\n\n"
        )

    def test_source_dump_is_appended(self, rules):

        report = render_report(rules, 3, "ForestPA", source_dump="ForestPA\n\ntree text\n")
        assert report.endswith("tree text\n")

    def test_source_dump_omitted_by_default(self, rules):

        assert "tree text" not in render_report(rules, 3, "ForestPA")


class TestRenderStatus:

    def test_every_message_says_not_built(self):

        for message in STATUS_MESSAGES.values():
            assert message.startswith("ForEx++ not built!\n")

    def test_lookup_by_value(self):

        assert "more than one attribute" in render_status("trivial_dataset")
        assert "RandomForest, SysFor or ForestPA" in render_status("unsupported_model")

    def test_built_status_has_no_message(self):

        assert render_status("built") == ""
