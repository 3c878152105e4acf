import pytest

from core.exceptions import NoCriteriaSelectedError
from core.models import ClassAttribute, RuleCollection
from core.selection import SelectionConfig, prune_rules, select_for_class, select_rules
from parsing.dump_parser import parse_dump
from parsing.grammars import SYSFOR_GRAMMAR


@pytest.fixture
def weather_rules(weather_sysfor_dump, weather_classes):
    return parse_dump(weather_sysfor_dump, SYSFOR_GRAMMAR, 14, weather_classes).rules


def _conditions(rules):
    return [r.condition_text for r in rules]


class TestSelectRulesWeather:

    def test_all_criteria(self, weather_rules, weather_classes):

        result = select_rules(weather_rules, weather_classes, SelectionConfig())

        assert _conditions(result.rules) == [
            "outlook = sunny && humidity > 75",
            "outlook = overcast",
        ]
        assert _conditions(result.per_class[0]) == ["outlook = sunny && humidity > 75"]
        assert _conditions(result.per_class[1]) == ["outlook = overcast"]
        assert result.pruned == 0

    def test_rule_equal_to_unrounded_mean_is_excluded(self, weather_rules, weather_classes):

        config = SelectionConfig(use_accuracy=False, use_coverage=True, use_length=False)
        result = select_rules(weather_rules, weather_classes, config)

        # 3/14 is the raw mean coverage of class "yes", but below the rounded mean 0.21429
        assert "outlook = rainy && windy = FALSE" not in _conditions(result.rules)
        assert _conditions(result.per_class[1]) == ["outlook = overcast"]

    def test_accuracy_only_keeps_all_pure_leaves(self, weather_rules, weather_classes):

        config = SelectionConfig(use_accuracy=True, use_coverage=False, use_length=False)
        result = select_rules(weather_rules, weather_classes, config)
        assert len(result.rules) == 5

    def test_length_only(self, weather_rules, weather_classes):

        config = SelectionConfig(use_accuracy=False, use_coverage=False, use_length=True)
        result = select_rules(weather_rules, weather_classes, config)
        assert len(result.per_class[0]) == 2
        assert _conditions(result.per_class[1]) == ["outlook = overcast"]
        assert len(result.rules) == 3

    def test_final_rules_are_a_subset_of_the_input(self, weather_rules, weather_classes):

        result = select_rules(weather_rules, weather_classes, SelectionConfig())
        assert all(rule in weather_rules for rule in result.rules)

    def test_selected_rules_meet_class_means(self, weather_rules, weather_classes):

        result = select_rules(weather_rules, weather_classes, SelectionConfig())
        for class_index, selected in result.per_class.items():
            class_rules = weather_rules.filter_by_class(class_index)
            for rule in selected:
                assert rule.accuracy >= class_rules.mean_accuracy()
                assert rule.coverage >= class_rules.mean_coverage()
                assert rule.length <= class_rules.mean_length()


class TestPruning:

    @pytest.fixture
    def mixed_rules(self, make_rule):
        return RuleCollection([
            make_rule("a = 1", accuracy=1.0, coverage=0.3),
            make_rule("a = 2", accuracy=0.6, coverage=0.2),
            make_rule("a = 3", accuracy=0.0, coverage=0.1),
        ])

    def test_zero_accuracy_rules_are_pruned_before_means(self, mixed_rules):

        config = SelectionConfig(use_accuracy=True, use_coverage=False, use_length=False)
        result = select_rules(mixed_rules, ClassAttribute(["no", "yes"]), config)
        assert _conditions(result.rules) == ["a = 1"]
        assert result.pruned == 1

    def test_without_pruning_zero_accuracy_lowers_the_mean(self, mixed_rules):

        config = SelectionConfig(use_accuracy=True, use_coverage=False, use_length=False,
                                 prune_zero_coverage=False)
        result = select_rules(mixed_rules, ClassAttribute(["no", "yes"]), config)
        assert _conditions(result.rules) == ["a = 1", "a = 2"]
        assert result.pruned == 0

    def test_custom_floor(self, mixed_rules):

        assert _conditions(prune_rules(mixed_rules, 0.7)) == ["a = 1"]
        assert len(prune_rules(mixed_rules, 0.0)) == 3


class TestSelectionEdgeCases:

    def test_no_criteria_raises(self, make_rule):

        config = SelectionConfig(use_accuracy=False, use_coverage=False, use_length=False)
        with pytest.raises(NoCriteriaSelectedError):
            select_rules(RuleCollection([make_rule()]), ClassAttribute(["no", "yes"]), config)

    def test_class_without_rules_selects_nothing(self, make_rule):

        rules = RuleCollection([make_rule("a = 1", class_index=0)])
        result = select_rules(rules, ClassAttribute(["no", "yes", "maybe"]), SelectionConfig())
        assert result.per_class[1].is_empty()
        assert result.per_class[2].is_empty()
        assert len(result.rules) == 1

    def test_near_duplicate_does_not_rescue_rule_below_mean(self, make_rule):

        rules = RuleCollection([
            make_rule("a = 1", accuracy=1.0, coverage=0.2, length=2),
            make_rule("b = 1", accuracy=0.9995, coverage=0.2, length=2),
        ])
        config = SelectionConfig(use_accuracy=True, use_coverage=False, use_length=False)
        result = select_rules(rules, ClassAttribute(["no", "yes"]), config)

        mean = rules.mean_accuracy()
        assert mean == 0.99975
        assert _conditions(result.rules) == ["a = 1"]
        assert all(r.accuracy >= mean for r in result.rules)

    def test_select_for_empty_class(self):

        assert select_for_class(RuleCollection(), SelectionConfig()).is_empty()

    def test_equal_statistics_in_different_classes_are_both_kept(self, make_rule):

        rules = RuleCollection([
            make_rule("a = 1", class_index=0, accuracy=1.0, coverage=0.2),
            make_rule("a = 2", class_index=1, accuracy=1.0, coverage=0.2),
        ])
        result = select_rules(rules, ClassAttribute(["no", "yes"]), SelectionConfig())
        assert len(result.rules) == 2

    def test_empty_input(self):

        result = select_rules(RuleCollection(), ClassAttribute(["no", "yes"]), SelectionConfig())
        assert result.rules.is_empty()
