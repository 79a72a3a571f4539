import math

import pytest

from models.feature import FeatureSet, FeatureType
from models.split_finder import (CategoricalPartition, SplitCriterion, SplitFinder,
                                 node_impurity, total_impurity)
from models.statistics import (ERROR_SPLITPOINT_VALUE, AggregationSchema, NodeAggregate,
                               SplitPoint, StatisticalInformation)


def _classes(*labels):
    stats = StatisticalInformation(is_numeric_target=False)
    for label in labels:
        stats.add(label)
    return stats


def _numbers(*values):
    stats = StatisticalInformation(is_numeric_target=True)
    for value in values:
        stats.add(value)
    return stats


def _aggregate(lines, x_indices, y_index, numerical, numeric_target=False):
    schema = AggregationSchema(tuple(x_indices), y_index, frozenset(numerical), numeric_target)
    aggregate = NodeAggregate(schema)
    for line in lines:
        aggregate.add_record(line.split(","))
    return aggregate


def test_numeric_statistics():
    stats = _numbers(2.0, 4.0, 6.0)
    assert stats.count == 3
    assert stats.mean == pytest.approx(4.0)
    assert stats.variance == pytest.approx(8.0 / 3)
    assert stats.predicted_value == pytest.approx(4.0)
    assert stats.coefficient_of_variation == pytest.approx(math.sqrt(8.0 / 3) / 4.0)


def test_categorical_statistics_and_majority_tie():
    stats = _classes("yes", "no", "yes")
    assert stats.majority_class == "yes"
    assert stats.coefficient_of_variation == pytest.approx(1.0 / 3)

    # equal counts resolve to the smallest label
    assert _classes("b", "a").majority_class == "a"


def test_pure_node_has_zero_coefficient_of_variation():
    assert _classes("yes", "yes").coefficient_of_variation == 0.0
    assert _numbers(5.0, 5.0).coefficient_of_variation == 0.0


def test_merge_and_subtract():
    left = _classes("yes", "no")
    right = _classes("yes")
    merged = left.copy().merge(right)

    assert merged.count == 3
    assert merged.class_counts == {"yes": 2, "no": 1}

    rest = merged.subtract(right)
    assert rest == left

    assert merged.subtract(left).class_counts == {"yes": 1}


def test_statistics_round_trip():
    stats = _numbers(1.0, 3.0)
    assert StatisticalInformation.from_dict(stats.to_dict()) == stats
    assert StatisticalInformation.from_dict(None) is None


def test_split_point_routing():
    numeric = SplitPoint(1, 10.0, FeatureType.NUMERICAL)
    assert numeric.goes_left("10")
    assert not numeric.goes_left(" 10.5 ")
    with pytest.raises(ValueError):
        numeric.goes_left("abc")

    categorical = SplitPoint(0, frozenset({"sunny"}), FeatureType.CATEGORICAL)
    assert categorical.goes_left("sunny")
    assert not categorical.goes_left("rain")


def test_invalid_split_point():
    invalid = SplitPoint.invalid()
    assert not invalid.is_valid
    assert invalid.point == ERROR_SPLITPOINT_VALUE
    assert SplitPoint(0, 1.0).is_valid


def test_split_point_round_trip():
    point = SplitPoint(2, frozenset({"b", "a"}), FeatureType.CATEGORICAL)
    data = point.to_dict()
    assert data["point"] == ["a", "b"]
    assert SplitPoint.from_dict(data) == point


def test_node_aggregate_counts_invalid_records():
    aggregate = _aggregate(["a,1,yes", "b,x,no", "a,2"], [0, 1], 2, {1})
    assert aggregate.statistics.count == 1
    assert aggregate.error_count == 2
    assert aggregate.values_of(1) == [1.0]


def test_node_aggregate_merge_matches_single_pass():
    lines = ["a,1,yes", "b,2,no", "a,3,yes", "b,1,yes"]
    whole = _aggregate(lines, [0, 1], 2, {1})
    first = _aggregate(lines[:2], [0, 1], 2, {1})
    second = _aggregate(lines[2:], [0, 1], 2, {1})
    merged = first.merge(second)

    assert merged.statistics == whole.statistics
    assert merged.feature_statistics[0]["a"] == whole.feature_statistics[0]["a"]
    assert merged.feature_statistics[1][1.0] == whole.feature_statistics[1][1.0]


def test_impurities():
    balanced = _classes("yes", "no")
    assert node_impurity(balanced, SplitCriterion.ENTROPY) == pytest.approx(1.0)
    assert node_impurity(balanced, SplitCriterion.GINI) == pytest.approx(0.5)
    assert total_impurity(balanced, SplitCriterion.ENTROPY) == pytest.approx(2.0)
    assert node_impurity(_classes("yes"), SplitCriterion.ENTROPY) == 0.0
    assert node_impurity(_numbers(1.0, 3.0), SplitCriterion.VARIANCE) == pytest.approx(1.0)


def test_best_numerical_threshold():
    lines = ["1,no", "2,no", "3,yes", "4,yes"]
    feature_set = FeatureSet.infer_schema(lines[0])
    aggregate = _aggregate(lines, [0], 1, {0})

    best = SplitFinder(SplitCriterion.ENTROPY).find_best_split(aggregate, feature_set, [0])

    assert best.split_point == SplitPoint(0, 2.0, FeatureType.NUMERICAL)
    assert best.gain == pytest.approx(4.0)
    assert best.left.class_counts == {"no": 2}
    assert best.right.class_counts == {"yes": 2}


def test_one_vs_rest_categorical_split():
    lines = ["sunny,no", "overcast,yes", "rain,yes"]
    feature_set = FeatureSet.infer_schema(lines[0])
    aggregate = _aggregate(lines, [0], 1, set())

    best = SplitFinder(SplitCriterion.ENTROPY, CategoricalPartition.ONE_VS_REST).find_best_split(
        aggregate, feature_set, [0])

    assert best.split_point.point == frozenset({"sunny"})


def test_ordered_categorical_split_on_numeric_target():
    lines = ["a,1.0", "b,9.0", "c,1.2", "d,9.2"]
    feature_set = FeatureSet.infer_schema(lines[0])
    aggregate = _aggregate(lines, [0], 1, set(), numeric_target=True)

    best = SplitFinder(SplitCriterion.VARIANCE, CategoricalPartition.ORDERED).find_best_split(
        aggregate, feature_set, [0])

    assert best.split_point.point == frozenset({"a", "c"})


def test_no_split_for_single_valued_feature():
    lines = ["weak,no", "weak,yes"]
    feature_set = FeatureSet.infer_schema(lines[0])
    aggregate = _aggregate(lines, [0], 1, set())
    assert SplitFinder().find_best_split(aggregate, feature_set, [0]) is None
