import pytest

from core.models import ClassAttribute, Rule


WEATHER_SYSFOR_DUMP = """SysFor
======

Tree 1:
outlook = sunny
|   humidity <= 75: yes {no,0;yes,2} (2.0)
|   humidity > 75: no {no,3;yes,0} (3.0)
outlook = overcast: yes {no,0;yes,4} (4.0)
outlook = rainy
|   windy = TRUE: no {no,2;yes,0} (2.0)
|   windy = FALSE: yes {no,0;yes,3} (3.0)
"""

WEATHER_FORESTPA_DUMP = """ForestPA

outlook = sunny
|  humidity <= 75: yes(2.0/0.0)
|  humidity > 75: no(3.0/1.0)
outlook = overcast: yes(4.0/0.0)
"""

WEATHER_RANDOM_FOREST_DUMP = """RandomForest

Bagging with 1 iterations and base learner

weka.classifiers.trees.RandomTree -K 0 -M 1.0 -V 0.001 -S 1 -do-not-check-capabilities

All the base classifiers:

RandomTree
==========

outlook = sunny
|   humidity < 77.5 : yes (2/0)
|   humidity >= 77.5 : no (3/0)
outlook = overcast : yes (4/0)
outlook = rainy
|   windy = TRUE : no (2/0)
|   windy = FALSE : yes (3/0)

Size of the tree : 8
"""


@pytest.fixture
def weather_classes():
    return ClassAttribute(["no", "yes"])


@pytest.fixture
def weather_sysfor_dump():
    return WEATHER_SYSFOR_DUMP


@pytest.fixture
def weather_forestpa_dump():
    return WEATHER_FORESTPA_DUMP


@pytest.fixture
def weather_random_forest_dump():
    return WEATHER_RANDOM_FOREST_DUMP


def _make_rule(text="a = 1", class_index=0, accuracy=1.0, coverage=0.1, length=1,
              label=None, records=None):
    """Rule with defaults for everything a test does not care about."""
    if label is None:
        label = ["no", "yes", "maybe"][class_index]
    if records is None:
        records = coverage * 100
    return Rule(
        condition_text=text,
        predicted_class_index=class_index,
        predicted_class_label=label,
        accuracy=accuracy,
        coverage=coverage,
        num_records_in_leaf=records,
        length=length,
    )


@pytest.fixture
def make_rule():
    return _make_rule
