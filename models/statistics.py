#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Statistics Module for Treelib
Per-node aggregates used to choose splits, derive predicted values and resume builds
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Any, Sequence, Tuple

import numpy as np

from models.feature import FeatureType

logger = logging.getLogger(__name__)

# Marks a split point which can not be used
ERROR_SPLITPOINT_VALUE = ",,,@,,,"


class StatisticalInformation:
    """Mergeable aggregate of the target values which reached one node"""

    def __init__(self, is_numeric_target: bool = False, count: int = 0,
                 sum_y: float = 0.0, sum_squared_y: float = 0.0,
                 class_counts: Optional[Dict[str, int]] = None):
        """
        Initialize the aggregate

        Args:
            is_numeric_target: True for regression (mean/variance), False for classification
            count: Number of records
            sum_y: Sum of numeric target values
            sum_squared_y: Sum of squared numeric target values
            class_counts: Count per class label
        """
        self.is_numeric_target = is_numeric_target
        self.count = count
        self.sum_y = sum_y
        self.sum_squared_y = sum_squared_y
        self.class_counts: Dict[str, int] = dict(class_counts or {})

    def add(self, y: Any) -> 'StatisticalInformation':
        self.count += 1
        if self.is_numeric_target:
            self.sum_y += y
            self.sum_squared_y += y * y
        else:
            self.class_counts[y] = self.class_counts.get(y, 0) + 1
        return self

    def merge(self, other: 'StatisticalInformation') -> 'StatisticalInformation':
        self.count += other.count
        self.sum_y += other.sum_y
        self.sum_squared_y += other.sum_squared_y
        for label, count in other.class_counts.items():
            self.class_counts[label] = self.class_counts.get(label, 0) + count
        return self

    def subtract(self, other: 'StatisticalInformation') -> 'StatisticalInformation':
        """New aggregate holding this one minus other (other must be a subset)"""
        result = StatisticalInformation(
            self.is_numeric_target,
            self.count - other.count,
            self.sum_y - other.sum_y,
            self.sum_squared_y - other.sum_squared_y,
            {label: count - other.class_counts.get(label, 0)
             for label, count in self.class_counts.items()
             if count - other.class_counts.get(label, 0) > 0}
        )
        return result

    def copy(self) -> 'StatisticalInformation':
        return StatisticalInformation(self.is_numeric_target, self.count, self.sum_y,
                                      self.sum_squared_y, self.class_counts)

    @property
    def mean(self) -> float:
        if self.count == 0:
            return 0.0
        return self.sum_y / self.count

    @property
    def variance(self) -> float:
        if self.count == 0:
            return 0.0
        # rounding can push this slightly below zero
        return max(0.0, self.sum_squared_y / self.count - self.mean ** 2)

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance)

    @property
    def majority_class(self) -> Optional[str]:
        if not self.class_counts:
            return None
        # highest count first, then the smallest label
        return min(self.class_counts.items(), key=lambda item: (-item[1], str(item[0])))[0]

    @property
    def predicted_value(self) -> Any:
        if self.is_numeric_target:
            return self.mean
        return self.majority_class

    @property
    def coefficient_of_variation(self) -> float:
        """
        Dispersion of the target inside the node

        std/mean for a numeric target, 1 - share of the majority class otherwise.
        """
        if self.count == 0:
            return 0.0

        if self.is_numeric_target:
            std = self.standard_deviation
            if std == 0:
                return 0.0
            if self.mean == 0:
                return float('inf')
            return abs(std / self.mean)

        majority = self.class_counts.get(self.majority_class, 0)
        return 1.0 - majority / self.count

    def class_probabilities(self) -> np.ndarray:
        if self.count == 0 or not self.class_counts:
            return np.array([])
        counts = np.array(list(self.class_counts.values()), dtype=float)
        return counts / counts.sum()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_numeric_target': self.is_numeric_target,
            'count': self.count,
            'sum_y': self.sum_y,
            'sum_squared_y': self.sum_squared_y,
            'class_counts': dict(self.class_counts)
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['StatisticalInformation']:
        if data is None:
            return None
        return cls(
            is_numeric_target=data.get('is_numeric_target', False),
            count=data.get('count', 0),
            sum_y=data.get('sum_y', 0.0),
            sum_squared_y=data.get('sum_squared_y', 0.0),
            class_counts=data.get('class_counts', {})
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, StatisticalInformation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __str__(self) -> str:
        if self.is_numeric_target:
            return f"count={self.count} mean={self.mean:.4f} std={self.standard_deviation:.4f}"
        return f"count={self.count} classes={self.class_counts}"

    __repr__ = __str__


@dataclass(frozen=True)
class SplitPoint:
    """Where the records of a node are divided"""
    feature_index: int
    point: Any
    feature_type: FeatureType = FeatureType.NUMERICAL

    @classmethod
    def invalid(cls) -> 'SplitPoint':
        return cls(-1, ERROR_SPLITPOINT_VALUE, FeatureType.CATEGORICAL)

    @property
    def is_valid(self) -> bool:
        return self.feature_index >= 0 and self.point != ERROR_SPLITPOINT_VALUE

    def goes_left(self, value: Any) -> bool:
        """
        Decide the branch for a raw feature value

        Raises:
            ValueError: if a numerical value can not be parsed
        """
        if self.feature_type == FeatureType.NUMERICAL:
            return float(str(value).strip()) <= self.point
        return str(value).strip() in self.point

    def describe(self, feature_name: Optional[str] = None) -> str:
        name = feature_name or f"Column{self.feature_index}"
        if not self.is_valid:
            return "invalid split"
        if self.feature_type == FeatureType.NUMERICAL:
            return f"{name} <= {self.point}"
        return f"{name} in {{{','.join(sorted(self.point))}}}"

    def to_dict(self) -> Dict[str, Any]:
        point = self.point
        if isinstance(point, (set, frozenset)):
            point = sorted(point)
        return {'feature_index': self.feature_index, 'point': point,
                'feature_type': self.feature_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SplitPoint':
        feature_type = FeatureType(data.get('feature_type', FeatureType.NUMERICAL.value))
        point = data.get('point')
        if feature_type == FeatureType.CATEGORICAL and isinstance(point, list):
            point = frozenset(point)
        elif feature_type == FeatureType.NUMERICAL and point is not None:
            point = float(point)
        return cls(int(data.get('feature_index', -1)), point, feature_type)

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class AggregationSchema:
    """Which columns a node aggregate reads and how it parses them"""
    x_indices: Tuple[int, ...]
    y_index: int
    numerical_indices: FrozenSet[int]
    is_numeric_target: bool


class NodeAggregate:
    """
    Combiner for one node in a level pass: node statistics plus, for every
    predictor, the statistics of each distinct feature value
    """

    def __init__(self, schema: AggregationSchema):
        self.schema = schema
        self.statistics = StatisticalInformation(schema.is_numeric_target)
        self.feature_statistics: Dict[int, Dict[Any, StatisticalInformation]] = {}
        self.error_count = 0

    def add_record(self, fields: Sequence[str]) -> 'NodeAggregate':
        schema = self.schema
        try:
            raw_y = fields[schema.y_index].strip()
            y = float(raw_y) if schema.is_numeric_target else raw_y

            values = {}
            for index in schema.x_indices:
                raw = fields[index].strip()
                values[index] = float(raw) if index in schema.numerical_indices else raw
        except (IndexError, ValueError, AttributeError):
            self.error_count += 1
            return self

        self.statistics.add(y)
        for index, value in values.items():
            by_value = self.feature_statistics.setdefault(index, {})
            if value not in by_value:
                by_value[value] = StatisticalInformation(schema.is_numeric_target)
            by_value[value].add(y)

        return self

    def merge(self, other: 'NodeAggregate') -> 'NodeAggregate':
        self.statistics.merge(other.statistics)
        self.error_count += other.error_count
        for index, by_value in other.feature_statistics.items():
            mine = self.feature_statistics.setdefault(index, {})
            for value, stats in by_value.items():
                if value in mine:
                    mine[value].merge(stats)
                else:
                    mine[value] = stats.copy()
        return self

    def values_of(self, feature_index: int) -> List[Any]:
        return list(self.feature_statistics.get(feature_index, {}).keys())
