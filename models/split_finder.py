#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Split Finder Module for Treelib
Finds the best binary split of a node from its aggregated statistics
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from models.feature import FeatureSet, FeatureType
from models.statistics import NodeAggregate, SplitPoint, StatisticalInformation

logger = logging.getLogger(__name__)

# gains closer than this are treated as ties
GAIN_TOLERANCE = 1e-12


class SplitCriterion(Enum):
    """Enumeration of splitting criteria for decision trees"""
    ENTROPY = "entropy"
    GINI = "gini"
    VARIANCE = "variance"


class CategoricalPartition(Enum):
    """How candidate partitions of a categorical feature are generated"""
    ONE_VS_REST = "one_vs_rest"  # each category against all others
    ORDERED = "ordered"          # prefixes of categories sorted by target rate


def node_impurity(stats: StatisticalInformation, criterion: SplitCriterion) -> float:
    """
    Impurity of one node

    Args:
        stats: Node statistics
        criterion: Splitting criterion

    Returns:
        Entropy (bits), Gini index or variance of the target
    """
    if stats is None or stats.count == 0:
        return 0.0

    if criterion == SplitCriterion.VARIANCE:
        return stats.variance

    probabilities = stats.class_probabilities()
    if probabilities.size == 0:
        return 0.0

    if criterion == SplitCriterion.ENTROPY:
        nonzero = probabilities[probabilities > 0]
        return float(-np.sum(nonzero * np.log2(nonzero)))

    return float(1.0 - np.sum(probabilities ** 2))


def total_impurity(stats: StatisticalInformation, criterion: SplitCriterion) -> float:
    """Impurity weighted by the number of records"""
    if stats is None:
        return 0.0
    return stats.count * node_impurity(stats, criterion)


@dataclass
class SplitCandidate:
    """A possible split and the statistics of both sides"""
    split_point: SplitPoint
    gain: float
    left: StatisticalInformation
    right: StatisticalInformation


class SplitFinder:
    """Class for finding the best split of a node"""

    def __init__(self, criterion: SplitCriterion = SplitCriterion.ENTROPY,
                 categorical_partition: CategoricalPartition = CategoricalPartition.ONE_VS_REST):
        """
        Initialize the split finder

        Args:
            criterion: Impurity measure to minimize
            categorical_partition: Candidate generation for categorical features
        """
        self.criterion = criterion
        self.categorical_partition = categorical_partition

    def find_best_split(self, aggregate: NodeAggregate, feature_set: FeatureSet,
                        x_indices: Iterable[int]) -> Optional[SplitCandidate]:
        """
        Find the split with the largest impurity decrease

        Features are scanned in index order and only a strictly better gain
        replaces the current best, so ties go to the lowest feature index.

        Args:
            aggregate: Aggregated statistics of the node
            feature_set: Full feature catalog
            x_indices: Predictors to consider

        Returns:
            Best candidate, or None when no feature separates the records
        """
        node_stats = aggregate.statistics
        if node_stats.count < 2:
            return None

        parent_total = total_impurity(node_stats, self.criterion)
        best: Optional[SplitCandidate] = None

        for index in sorted(x_indices):
            by_value = aggregate.feature_statistics.get(index)
            if not by_value or len(by_value) < 2:
                continue

            feature = feature_set.get_feature(index)
            if feature.type == FeatureType.NUMERICAL:
                candidates = self._numerical_candidates(index, by_value)
            else:
                candidates = self._categorical_candidates(index, by_value, node_stats)

            for split_point, left in candidates:
                right = node_stats.subtract(left)
                if left.count == 0 or right.count == 0:
                    continue

                gain = parent_total - total_impurity(left, self.criterion) - total_impurity(right, self.criterion)

                if best is None or gain > best.gain + GAIN_TOLERANCE:
                    best = SplitCandidate(split_point, gain, left, right)

        if best is not None:
            logger.debug(f"Best split {best.split_point} with gain {best.gain:.6f}")
        return best

    def _numerical_candidates(self, index: int, by_value) -> Iterator[Tuple[SplitPoint, StatisticalInformation]]:
        values = sorted(by_value.keys())
        running = None
        for value in values[:-1]:
            if running is None:
                running = by_value[value].copy()
            else:
                running.merge(by_value[value])
            yield SplitPoint(index, value, FeatureType.NUMERICAL), running.copy()

    def _categorical_candidates(self, index: int, by_value,
                                node_stats: StatisticalInformation) -> Iterator[Tuple[SplitPoint, StatisticalInformation]]:
        if self.categorical_partition == CategoricalPartition.ONE_VS_REST:
            for category in sorted(by_value.keys()):
                yield SplitPoint(index, frozenset([category]), FeatureType.CATEGORICAL), by_value[category].copy()
            return

        ordered = self._order_categories(by_value, node_stats)
        running = None
        chosen: List[str] = []
        for category in ordered[:-1]:
            chosen.append(category)
            if running is None:
                running = by_value[category].copy()
            else:
                running.merge(by_value[category])
            yield SplitPoint(index, frozenset(chosen), FeatureType.CATEGORICAL), running.copy()

    @staticmethod
    def _order_categories(by_value, node_stats: StatisticalInformation) -> List[str]:
        """Categories sorted by target mean, or by rate of the node's majority class"""
        if node_stats.is_numeric_target:
            return sorted(by_value.keys(), key=lambda c: (by_value[c].mean, c))

        reference = node_stats.majority_class
        return sorted(by_value.keys(),
                      key=lambda c: (by_value[c].class_counts.get(reference, 0) / by_value[c].count, c))
