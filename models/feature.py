#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Feature Module for Treelib
Describes the schema of the training data: name, type and position of every column
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Any, Set, Tuple, Union

from models.errors import SchemaError

logger = logging.getLogger(__name__)


class FeatureType(Enum):
    """Enumeration of feature types"""
    NUMERICAL = "numerical"
    CATEGORICAL = "categorical"


def parse_double(value: Any) -> Optional[float]:
    """Parse a raw field into a float, None if it is not a number"""
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass
class Feature:
    """One named, typed column of the schema"""
    name: str
    type: FeatureType
    index: int

    @property
    def is_numerical(self) -> bool:
        return self.type == FeatureType.NUMERICAL

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'type': self.type.value, 'index': self.index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Feature':
        return cls(name=data['name'], type=FeatureType(data['type']), index=int(data['index']))

    def __str__(self) -> str:
        return f"{self.name}({self.type.value}, {self.index})"


class FeatureSet:
    """Ordered catalog of the features of a dataset"""

    def __init__(self, features: Optional[Iterable[Feature]] = None):
        """
        Initialize the catalog

        Args:
            features: Features ordered by index (indices must be 0..n-1)
        """
        self.data: List[Feature] = list(features or [])

        for position, feature in enumerate(self.data):
            if feature.index != position:
                raise SchemaError(f"Feature {feature.name} has index {feature.index}, expected {position}")

    @classmethod
    def infer_schema(cls, sample_record: Optional[str], delimiter: str = ',',
                     names: Optional[List[str]] = None) -> 'FeatureSet':
        """
        Build a catalog from one sample record

        A field which can be parsed as a number makes a numerical feature,
        anything else a categorical one.

        Args:
            sample_record: One raw line of the dataset
            delimiter: Field delimiter
            names: Optional feature names (defaults to Column<i>)

        Returns:
            New FeatureSet
        """
        if sample_record is None or not str(sample_record).strip():
            raise SchemaError("Can not infer schema from an empty sample record")

        values = str(sample_record).split(delimiter)

        if names is not None and len(names) != len(values):
            raise SchemaError(f"Got {len(names)} names for {len(values)} columns")

        features = []
        for i, value in enumerate(values):
            name = names[i] if names is not None else f"Column{i}"
            if parse_double(value) is not None:
                features.append(Feature(name, FeatureType.NUMERICAL, i))
            else:
                features.append(Feature(name, FeatureType.CATEGORICAL, i))

        feature_set = cls(features)
        logger.info(f"Inferred schema with {feature_set.number_of_features} features: {feature_set}")
        return feature_set

    @property
    def number_of_features(self) -> int:
        return len(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self):
        return iter(self.data)

    def __getitem__(self, index: int) -> Feature:
        return self.data[index]

    def get_index(self, name: str) -> int:
        """Index of the feature with this name, -1 if absent"""
        for feature in self.data:
            if feature.name == name:
                return feature.index
        return -1

    def get_feature(self, index: int) -> Feature:
        if index < 0 or index >= len(self.data):
            raise SchemaError(f"No feature with index {index}")
        return self.data[index]

    def update(self, feature: Feature, index: int):
        """Replace the feature at a position, keeping its index"""
        self.data[index] = Feature(feature.name, feature.type, index)

    def rename_features(self, names: List[str]):
        """
        Rename every feature in place

        Args:
            names: New names, one per feature
        """
        if names is None or len(names) != len(self.data):
            count = 0 if names is None else len(names)
            raise SchemaError(f"Incorrect names: expected {len(self.data)}, got {count}")

        for feature, name in zip(self.data, names):
            feature.name = str(name).strip()

        logger.info(f"Renamed features: {[f.name for f in self.data]}")

    def resolve_indices(self, x_names: Optional[Iterable[Union[str, Feature]]] = None,
                        y_name: str = "") -> Tuple[Set[int], int]:
        """
        Convert feature names (or Feature objects) into indices

        Args:
            x_names: Predictors; empty means every feature except the target.
                A Feature object overrides the catalog type of that feature.
            y_name: Target name; empty means the last feature

        Returns:
            Tuple of (predictor indices, target index)
        """
        y_index = self.get_index(y_name) if y_name else -1
        if not y_name and y_index < 0:
            y_index = len(self.data) - 1

        if y_index < 0:
            raise SchemaError(
                f"Can not find attribute `{y_name}` in ({','.join(f.name for f in self.data)})")

        x_names = list(x_names or [])

        if not x_names:
            x_indices = {f.index for f in self.data if f.index != y_index}
        else:
            x_indices = set()
            for x in x_names:
                if isinstance(x, Feature):
                    index = self.get_index(x.name)
                    if index >= 0:
                        self.update(Feature(x.name, x.type, index), index)
                elif isinstance(x, str):
                    index = self.get_index(x)
                else:
                    raise SchemaError(f"Invalid feature {x!r}. Expect a feature name or a Feature")

                if index < 0:
                    raise SchemaError(f"Could not find feature {x}")
                x_indices.add(index)

            if y_index in x_indices:
                logger.warning(f"Target feature {self.data[y_index].name} removed from predictors")
                x_indices.discard(y_index)

        return x_indices, y_index

    def to_dict(self) -> List[Dict[str, Any]]:
        return [feature.to_dict() for feature in self.data]

    @classmethod
    def from_dict(cls, data: List[Dict[str, Any]]) -> 'FeatureSet':
        return cls(Feature.from_dict(item) for item in data)

    def __str__(self) -> str:
        return ",".join(str(f) for f in self.data)

    def __repr__(self) -> str:
        return f"FeatureSet({self})"
