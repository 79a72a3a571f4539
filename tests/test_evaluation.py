import math

import pytest

from analytics.evaluation import Evaluation
from models.tree_builder import UNKNOWN_VALUE


def test_misclassification_counts_unknown_as_error():
    evaluation = Evaluation("misclassification")
    assert evaluation.evaluate_lists(["yes", "no", UNKNOWN_VALUE, "yes"],
                                     ["yes", "yes", "no", "yes"]) == pytest.approx(0.5)


def test_accuracy_compares_labels_as_text():
    assert Evaluation("accuracy").evaluate_lists([1, "a "], ["1", "a"]) == pytest.approx(1.0)


def test_regression_skips_unknown_predictions():
    evaluation = Evaluation("rmse")
    assert evaluation.evaluate_lists([1.0, UNKNOWN_VALUE, 5.0], ["2.0", "9", "3.0"]) == \
        pytest.approx(math.sqrt(2.5))
    assert Evaluation("mae").evaluate_lists([1.0, 5.0], ["2.0", "3.0"]) == pytest.approx(1.5)


def test_nothing_to_score_is_nan():
    assert math.isnan(Evaluation("rmse").evaluate_lists([UNKNOWN_VALUE], ["1"]))
    assert math.isnan(Evaluation("accuracy").evaluate_lists([], []))


def test_lengths_must_match():
    with pytest.raises(ValueError):
        Evaluation().evaluate_lists(["a"], [])


def test_unsupported_metric():
    with pytest.raises(ValueError):
        Evaluation("auc")


def test_evaluate_datasets(playgolf_builder, playgolf_lines, engine):
    playgolf_builder.build_tree()
    testing = engine.parallelize(playgolf_lines, 3)
    predicted = playgolf_builder.predict(testing)
    actual = testing.map(lambda line: line.split(",")[-1])

    assert Evaluation("misclassification").evaluate(predicted, actual) == pytest.approx(0.0)
    assert Evaluation("accuracy").report(predicted, actual) == {
        "misclassification": pytest.approx(0.0), "accuracy": pytest.approx(1.0)
    }
