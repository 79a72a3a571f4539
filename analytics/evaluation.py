#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Evaluation Module for Treelib
Compares predicted values with the actual targets of a dataset
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
from sklearn.metrics import accuracy_score, mean_absolute_error, mean_squared_error

from engine.execution_engine import PartitionedDataset
from models.tree_builder import UNKNOWN_VALUE

logger = logging.getLogger(__name__)

CLASSIFICATION_METRICS = ('misclassification', 'accuracy')
REGRESSION_METRICS = ('rmse', 'mae')


class Evaluation:
    """Computes one metric over aligned datasets of predicted and actual values"""

    def __init__(self, metric: str = "misclassification"):
        """
        Initialize the evaluation

        Args:
            metric: misclassification, accuracy, rmse or mae
        """
        metric = metric.lower()
        if metric not in CLASSIFICATION_METRICS + REGRESSION_METRICS:
            raise ValueError(f"Unsupported metric: {metric}")
        self.metric = metric

    def evaluate(self, predicted: PartitionedDataset, actual: PartitionedDataset) -> float:
        """
        Evaluate predictions

        Unknown predictions count as errors for classification metrics and
        are left out of regression metrics.

        Args:
            predicted: One prediction per record
            actual: The actual target of every record, aligned with predicted

        Returns:
            Metric value (NaN when no pair can be scored)
        """
        pairs = predicted.engine.zip_partitions([predicted, actual], lambda pair: pair).collect()
        logger.info(f"Evaluating {len(pairs)} prediction(s) with {self.metric}")

        if self.metric in CLASSIFICATION_METRICS:
            return self._classification(pairs)
        return self._regression(pairs)

    def evaluate_lists(self, predicted: List[Any], actual: List[Any]) -> float:
        if len(predicted) != len(actual):
            raise ValueError(f"Got {len(predicted)} predictions for {len(actual)} actual values")
        pairs = list(zip(predicted, actual))
        if self.metric in CLASSIFICATION_METRICS:
            return self._classification(pairs)
        return self._regression(pairs)

    def _classification(self, pairs: List[Tuple[Any, Any]]) -> float:
        if not pairs:
            logger.warning("Nothing to evaluate")
            return float('nan')

        y_pred = [_label(p) for p, _ in pairs]
        y_true = [_label(a) for _, a in pairs]
        unknown = sum(1 for p in y_pred if p == UNKNOWN_VALUE)
        if unknown:
            logger.warning(f"{unknown} of {len(pairs)} prediction(s) are unknown")

        accuracy = accuracy_score(y_true, y_pred)
        return float(accuracy) if self.metric == 'accuracy' else float(1.0 - accuracy)

    def _regression(self, pairs: List[Tuple[Any, Any]]) -> float:
        y_pred, y_true = [], []
        skipped = 0
        for predicted, actual in pairs:
            try:
                if predicted == UNKNOWN_VALUE:
                    raise ValueError("unknown prediction")
                p, a = float(predicted), float(str(actual).strip())
            except (TypeError, ValueError):
                skipped += 1
                continue
            y_pred.append(p)
            y_true.append(a)

        if skipped:
            logger.warning(f"Left out {skipped} of {len(pairs)} pair(s) which are not numbers")
        if not y_pred:
            logger.warning("Nothing to evaluate")
            return float('nan')

        if self.metric == 'rmse':
            return float(np.sqrt(mean_squared_error(y_true, y_pred)))
        return float(mean_absolute_error(y_true, y_pred))

    def report(self, predicted: PartitionedDataset, actual: PartitionedDataset) -> Dict[str, float]:
        """Every metric of the same family as this one"""
        family = CLASSIFICATION_METRICS if self.metric in CLASSIFICATION_METRICS else REGRESSION_METRICS
        return {metric: Evaluation(metric).evaluate(predicted, actual) for metric in family}


def _label(value: Any) -> str:
    return str(value).strip()
