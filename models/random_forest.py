#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Random Forest Module for Treelib
Builds an ensemble of independent trees and aggregates their predictions
"""

import logging
import numbers
from typing import Dict, Iterable, List, Optional, Any, Sequence, Type, Union

import numpy as np
from joblib import Parallel, delayed

from engine.execution_engine import ExecutionEngine, PartitionedDataset
from models.errors import BuildError, DataError, PredictionError
from models.feature import FeatureSet
from models.id3_tree_builder import ID3TreeBuilder
from models.tree_builder import UNKNOWN_VALUE, TreeBuilder
from models.tree_model import TreeModel

logger = logging.getLogger(__name__)

FOREST_MODEL_TYPE = "RandomForest"
FOREST_VERSION = "1.0"


def aggregate_votes(votes: Iterable[Any]) -> Any:
    """
    Combine the predictions of several trees

    Unknown votes are ignored. The mean is returned when every remaining vote
    is a number, otherwise the most frequent label, ties going to the label
    reached first.

    Args:
        votes: One prediction per tree, in tree order

    Returns:
        Aggregated prediction, or UNKNOWN_VALUE when no tree could predict
    """
    known = [v for v in votes if v is not None and v != UNKNOWN_VALUE]
    if not known:
        return UNKNOWN_VALUE

    if all(isinstance(v, numbers.Number) and not isinstance(v, bool) for v in known):
        return float(np.mean(known))

    counts: Dict[Any, int] = {}
    for vote in known:
        counts[vote] = counts.get(vote, 0) + 1
    # max keeps the first key among equal counts
    return max(counts, key=counts.get)


class RandomForest:
    """Ordered collection of independently built tree models"""

    def __init__(self, trees: Optional[List[TreeModel]] = None, builder_type: Optional[str] = None,
                 engine: Optional[ExecutionEngine] = None):
        self.trees: List[TreeModel] = list(trees or [])
        self.builder_type = builder_type
        self.failed_trees: Dict[int, str] = {}
        self.engine = engine

    @property
    def num_trees(self) -> int:
        return len(self.trees)

    def add_tree(self, tree: TreeModel):
        self.trees.append(tree)

    def predict_one_instance(self, record: Sequence[str], ignore_branch_ids: Iterable[int] = ()) -> Any:
        """Aggregated prediction of every tree for one record"""
        votes = []
        for tree in self.trees:
            try:
                votes.append(tree.predict(record, ignore_branch_ids))
            except PredictionError as e:
                logger.debug(f"Tree could not predict: {e}")
                votes.append(UNKNOWN_VALUE)
        return aggregate_votes(votes)

    def predict(self, testing_data: Union[PartitionedDataset, Sequence[str]], delimiter: str = ",",
                ignore_branch_ids: Iterable[int] = ()) -> PartitionedDataset:
        """
        Predict every record of a dataset

        Args:
            testing_data: Raw delimited lines
            delimiter: Field delimiter
            ignore_branch_ids: Ids of branches treated as absent in every tree

        Returns:
            Dataset of predictions, aligned with the input
        """
        if not self.trees:
            raise PredictionError("The forest has no tree")

        if not isinstance(testing_data, PartitionedDataset):
            self.engine = self.engine or ExecutionEngine()
            testing_data = self.engine.parallelize(list(testing_data), name="testing")

        ignored = frozenset(ignore_branch_ids or ())
        return testing_data.map(lambda line: self.predict_one_instance(line.split(delimiter), ignored))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'model_type': FOREST_MODEL_TYPE,
            'version': FOREST_VERSION,
            'builder_type': self.builder_type,
            'failed_trees': {str(k): v for k, v in self.failed_trees.items()},
            'trees': [tree.to_dict() for tree in self.trees]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RandomForest':
        if data.get('model_type') != FOREST_MODEL_TYPE:
            raise ValueError(f"Invalid model type: {data.get('model_type')}")

        forest = cls([TreeModel.from_dict(t) for t in data.get('trees', [])], data.get('builder_type'))
        forest.failed_trees = {int(k): v for k, v in data.get('failed_trees', {}).items()}
        return forest

    def save(self, filepath: str, config: Dict[str, Any] = None) -> bool:
        from export.model_saver import ModelSaver
        return ModelSaver(config).save_forest(self, filepath)

    @classmethod
    def load(cls, filepath: str, config: Dict[str, Any] = None) -> Optional['RandomForest']:
        from export.model_saver import ModelSaver
        return ModelSaver(config).load_forest(filepath)

    def __repr__(self) -> str:
        return f"RandomForest(trees={self.num_trees}, builder_type={self.builder_type})"


class RandomForestBuilder:
    """Builds a forest of trees on bootstrap samples of the training data"""

    def __init__(self, config: Dict[str, Any] = None, engine: Optional[ExecutionEngine] = None):
        """
        Initialize the forest builder

        Args:
            config: Configuration dictionary (reads the 'forest' section)
            engine: Execution engine shared by every tree
        """
        self.config = config or {}
        self.engine = engine or ExecutionEngine(self.config)

        forest_config = self.config.get('forest', {})
        self.number_of_trees = forest_config.get('number_of_trees', 10)
        self.use_bootstrap = forest_config.get('use_bootstrap', True)
        self.use_random_subset_feature = forest_config.get('use_random_subset_feature', True)
        self.random_state = forest_config.get('random_state', 42)
        self.n_jobs = forest_config.get('n_jobs', 1)

        self.training_data: Optional[PartitionedDataset] = None
        self.full_feature_set = FeatureSet()
        self.tree_parameters: Dict[str, Any] = {}

    def set_training_data(self, records: Union[PartitionedDataset, Sequence[str]]):
        """
        Set the training dataset shared by every tree

        Raises:
            DataError: if the dataset is empty
        """
        if records is None:
            raise DataError("Dataset can not be None")
        if not isinstance(records, PartitionedDataset):
            records = self.engine.parallelize(list(records), name="training")

        first_line = records.first()
        if first_line is None:
            raise DataError("Invalid dataset: it contains no record")

        delimiter = self.tree_parameters.get('delimiter') or \
            self.config.get('tree_builder', {}).get('delimiter', ',')
        self.training_data = records
        self.full_feature_set = FeatureSet.infer_schema(first_line, delimiter)

    set_dataset = set_training_data

    def set_feature_names(self, names: List[str]):
        if self.training_data is None:
            raise BuildError("Training set is not set. Set dataset first")
        self.full_feature_set.rename_features(names)

    def set_number_of_trees(self, number_of_trees: int):
        if number_of_trees < 1:
            raise ValueError(f"Number of trees must be positive, got {number_of_trees}")
        self.number_of_trees = number_of_trees

    def set_parameters(self, **parameters) -> 'RandomForestBuilder':
        """Parameters forwarded to the set_parameters of every tree builder"""
        self.tree_parameters.update({k: v for k, v in parameters.items() if v is not None})
        return self

    def build_forest(self, builder_class: Type[TreeBuilder] = ID3TreeBuilder, y_feature: str = "",
                     x_features: Optional[Iterable[Any]] = None) -> RandomForest:
        """
        Build the forest

        Args:
            builder_class: Tree builder family of every tree
            y_feature: Target feature name
            x_features: Predictor names (default: all except the target)

        Returns:
            RandomForest holding every tree which could be built

        Raises:
            BuildError: if no training data is set or every tree fails
        """
        if self.training_data is None:
            raise BuildError("Dataset can not be None. Set dataset first")

        prototype = builder_class(self.config, self.engine)
        x_features = list(x_features or [])

        logger.info(f"Building forest of {self.number_of_trees} {prototype.builder_type} trees "
                    f"(bootstrap={self.use_bootstrap}, random subsets={self.use_random_subset_feature})")

        if self.n_jobs == 1:
            results = [self._build_one_tree(prototype, i, y_feature, x_features)
                       for i in range(self.number_of_trees)]
        else:
            results = Parallel(n_jobs=self.n_jobs, backend='threading')(
                delayed(self._build_one_tree)(prototype, i, y_feature, x_features)
                for i in range(self.number_of_trees)
            )

        forest = RandomForest(builder_type=prototype.builder_type, engine=self.engine)
        for i, model, error in results:
            if model is not None:
                forest.add_tree(model)
            else:
                forest.failed_trees[i] = error

        if not forest.trees:
            raise BuildError(f"All {self.number_of_trees} trees failed: {forest.failed_trees}")

        if forest.failed_trees:
            logger.warning(f"{len(forest.failed_trees)} tree(s) failed: {sorted(forest.failed_trees)}")

        logger.info(f"Forest built with {forest.num_trees} tree(s)")
        return forest

    def _build_one_tree(self, prototype: TreeBuilder, i: int, y_feature: str, x_features: List[Any]):
        seed = self.random_state + i
        try:
            builder = prototype.create_new_instance()
            builder.use_random_subset_feature = self.use_random_subset_feature
            builder.random_state = seed
            builder.checkpoint_path = None
            if self.tree_parameters:
                builder.set_parameters(**self.tree_parameters)

            data = self.training_data
            if self.use_bootstrap:
                data = data.sample(True, 1.0, seed=seed)

            builder.set_training_data(data, feature_set=self.full_feature_set)
            model = builder.build_tree(y_feature, x_features)
            logger.debug(f"Tree {i}: {model!r}")
            return i, model, None

        except Exception as e:
            logger.error(f"Tree {i} failed: {e}", exc_info=True)
            return i, None, str(e)
