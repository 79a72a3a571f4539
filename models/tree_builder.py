#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tree Builder Module for Treelib
Grows a decision tree level by level over a partitioned dataset.

Every level runs one pass over the training records: each record is routed
to the open node it currently reaches and the records of every open node are
folded into a NodeAggregate. The builder then decides, per open node, between
a leaf and a split, and attaches the new nodes by their integer id.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Any, Sequence, Set, Union

import numpy as np

from engine.execution_engine import ExecutionEngine, PartitionedDataset
from models.errors import AddressingError, BuildError, DataError, InvalidSplitError, PredictionError
from models.feature import Feature, FeatureSet
from models.node import InternalNode, LeafNode, Node
from models.node_addressing import ROOT_ID, attach, depth_of, locate, parent_of
from models.split_finder import SplitFinder, total_impurity
from models.statistics import AggregationSchema, NodeAggregate, SplitPoint, StatisticalInformation
from models.tree_model import TreeModel

logger = logging.getLogger(__name__)

# Returned by predictions which could not be made
UNKNOWN_VALUE = "???"


@dataclass
class NodeDecision:
    """Outcome of one open node in a level pass"""
    node_id: int
    split_point: Optional[SplitPoint]
    statistical_information: Optional[StatisticalInformation]
    is_stop: bool

    @property
    def is_invalid(self) -> bool:
        return self.split_point is not None and not self.split_point.is_valid


@dataclass
class BuildContext:
    """Mutable state of one build, owned by the builder running it"""
    x_indices: Set[int]
    y_index: int
    schema: AggregationSchema
    split_finder: SplitFinder
    root_impurity: Optional[float] = None
    unresolved_ids: Set[int] = field(default_factory=set)
    levels_completed: int = 0


class TreeBuilder(ABC):
    """
    Abstract tree builder

    Subclasses choose the splitting strategy and provide a factory for fresh
    instances, which the forest builder uses to grow independent trees.
    """

    builder_type = "abstract"

    def __init__(self, config: Dict[str, Any] = None, engine: Optional[ExecutionEngine] = None):
        """
        Initialize the builder

        Args:
            config: Configuration dictionary (reads the 'tree_builder' section)
            engine: Execution engine used for the data passes
        """
        self.config = config or {}
        self.engine = engine or ExecutionEngine(self.config)

        self.full_feature_set = FeatureSet()
        self.training_data: Optional[PartitionedDataset] = None
        self.tree_model = TreeModel()

        self.y_index_default = -1
        self.y_index = -1
        self.x_indices: Set[int] = set()

        self._set_default_parameters()

    def _set_default_parameters(self):
        """Set builder parameters from config or built-in defaults"""
        params = self.config.get('tree_builder', {})

        self.delimiter = params.get('delimiter', ',')
        self.use_cache = params.get('use_cache', True)
        self.use_random_subset_feature = params.get('use_random_subset_feature', False)
        self.random_state = params.get('random_state', 42)
        self.force_leaf_on_invalid_split = params.get('force_leaf_on_invalid_split', True)
        self.checkpoint_path = params.get('checkpoint_path')

        self.set_min_split(params.get('minsplit', 10))
        self.set_threshold(params.get('threshold', 0.1))
        self.set_max_depth(params.get('max_depth', 62))
        self.set_maximum_complexity(params.get('maximum_complexity', 0.001))

    # parameters

    def set_delimiter(self, delimiter: str):
        self.delimiter = delimiter

    def set_min_split(self, minsplit: int):
        """
        Set the minimum records of splitting

        A node with minsplit records or fewer becomes a leaf.
        """
        self.minsplit = minsplit
        self.tree_model.minsplit = minsplit

    def set_threshold(self, threshold: float):
        """
        Set the coefficient of variation below which a node stops expanding
        """
        self.threshold = threshold
        self.tree_model.threshold = threshold

    def set_max_depth(self, max_depth: int):
        """Set the maximum number of levels of the tree (the root is level 1)"""
        self.max_depth = max_depth
        self.tree_model.max_depth = max_depth

    def set_maximum_complexity(self, maximum_complexity: float):
        self.maximum_complexity = maximum_complexity
        self.tree_model.maximum_complexity = maximum_complexity

    def set_parameters(self, minsplit: Optional[int] = None, threshold: Optional[float] = None,
                       max_depth: Optional[int] = None, maximum_complexity: Optional[float] = None,
                       delimiter: Optional[str] = None) -> 'TreeBuilder':
        """
        Set several parameters at once; None leaves a parameter unchanged
        """
        if minsplit is not None:
            self.set_min_split(minsplit)
        if threshold is not None:
            self.set_threshold(threshold)
        if max_depth is not None:
            self.set_max_depth(max_depth)
        if maximum_complexity is not None:
            self.set_maximum_complexity(maximum_complexity)
        if delimiter is not None:
            self.set_delimiter(delimiter)

        logger.info(f"Parameters: minsplit={self.minsplit}, threshold={self.threshold}, "
                    f"max_depth={self.max_depth}, maximum_complexity={self.maximum_complexity}, "
                    f"delimiter={self.delimiter!r}")
        return self

    # dataset and metadata

    def _as_dataset(self, records: Union[PartitionedDataset, Sequence[str], None]) -> PartitionedDataset:
        if records is None:
            raise DataError("Dataset can not be None")
        if isinstance(records, PartitionedDataset):
            return records
        return self.engine.parallelize(list(records), name="training")

    def set_training_data(self, records: Union[PartitionedDataset, Sequence[str]],
                          feature_set: Optional[FeatureSet] = None):
        """
        Set the training dataset and infer the feature catalog from its first record

        Args:
            records: Raw delimited lines
            feature_set: Catalog to use instead of inferring one

        Raises:
            DataError: if the dataset is empty
        """
        dataset = self._as_dataset(records)
        first_line = dataset.take(1)

        if not first_line:
            raise DataError("Invalid dataset: it contains no record")

        self.training_data = dataset
        if feature_set is not None:
            self.full_feature_set = FeatureSet.from_dict(feature_set.to_dict())
        else:
            self.full_feature_set = FeatureSet.infer_schema(first_line[0], self.delimiter)
        self._update_feature_set()

    set_dataset = set_training_data

    def set_feature_names(self, names: List[str]):
        """
        Set feature names

        Args:
            names: One name per column of the training data
        """
        if self.training_data is None:
            raise BuildError("Training set is not set. Set dataset first")

        self.full_feature_set.rename_features(names)
        self._update_feature_set()

    def _update_feature_set(self):
        self.y_index_default = self.full_feature_set.number_of_features - 1
        logger.debug(f"Set new y_index_default = {self.y_index_default}")

    # building

    def build_tree(self, y_feature: str = "", x_features: Optional[Iterable[Union[str, Feature]]] = None,
                   max_levels: Optional[int] = None) -> TreeModel:
        """
        Build the tree

        Args:
            y_feature: Name of the target feature (default: the last feature)
            x_features: Names or Features of the predictors (default: all except the target)
            max_levels: Stop after this many levels, leaving the model incomplete

        Returns:
            The tree model
        """
        if self.training_data is None:
            raise BuildError("Dataset can not be None. Set dataset first")
        if self.y_index_default < 0:
            raise BuildError("Dataset is invalid or has invalid feature names")

        x_features = list(x_features or [])
        x_indices, y_index = self.full_feature_set.resolve_indices(x_features, y_feature)

        self.tree_model.reset()
        self.tree_model.x_features = [x.name if isinstance(x, Feature) else x for x in x_features]
        self.tree_model.y_feature = y_feature

        self.x_indices = x_indices
        self.y_index = y_index
        self._sync_model()

        logger.info(f"Building tree with predictors: "
                    f"{[self.full_feature_set[i].name for i in sorted(x_indices)]}")
        logger.info(f"Target feature: {self.full_feature_set[y_index].name}")

        self._start_build_tree(self.training_data, x_indices, y_index, max_levels)
        return self.tree_model

    def _sync_model(self):
        """Copy the builder's configuration and resolved indices onto the model"""
        model = self.tree_model
        model.full_feature_set = self.full_feature_set
        model.x_indices = set(self.x_indices)
        model.y_index = self.y_index
        model.builder_type = self.builder_type
        model.minsplit = self.minsplit
        model.threshold = self.threshold
        model.max_depth = self.max_depth
        model.maximum_complexity = self.maximum_complexity
        model.use_random_subset_feature = self.use_random_subset_feature
        model.random_state = self.random_state
        model.force_leaf_on_invalid_split = self.force_leaf_on_invalid_split

    def _create_context(self, x_indices: Set[int], y_index: int) -> BuildContext:
        is_numeric_target = self.is_numeric_target(self.full_feature_set[y_index])
        schema = AggregationSchema(
            x_indices=tuple(sorted(x_indices)),
            y_index=y_index,
            numerical_indices=frozenset(i for i in x_indices if self.full_feature_set[i].is_numerical),
            is_numeric_target=is_numeric_target
        )
        context = BuildContext(set(x_indices), y_index, schema, self.create_split_finder(is_numeric_target))

        root = self.tree_model.root
        if root is not None and root.statistical_information is not None:
            context.root_impurity = total_impurity(root.statistical_information, context.split_finder.criterion)
        return context

    def _start_build_tree(self, training_data: PartitionedDataset, x_indices: Set[int], y_index: int,
                          max_levels: Optional[int] = None):
        context = self._create_context(x_indices, y_index)
        delimiter = self.delimiter

        parsed = training_data.map(lambda line: line.split(delimiter))
        if self.use_cache:
            parsed.cache()

        try:
            self._grow(context, parsed, max_levels)
        finally:
            parsed.unpersist()

    def _open_frontier(self, context: BuildContext) -> List[int]:
        if self.tree_model.is_empty:
            return [] if ROOT_ID in context.unresolved_ids else [ROOT_ID]
        return [i for i in self.tree_model.open_node_ids() if i not in context.unresolved_ids]

    def _grow(self, context: BuildContext, parsed: PartitionedDataset, max_levels: Optional[int]):
        frontier = self._open_frontier(context)

        while frontier:
            if max_levels is not None and context.levels_completed >= max_levels:
                logger.info(f"Stopped after {context.levels_completed} level(s) with "
                            f"{len(frontier)} open node(s)")
                break

            decisions = self._build_level(context, parsed, frontier)
            self.update_model(decisions, context)
            context.levels_completed += 1

            stops = sum(1 for d in decisions if d.is_stop)
            logger.info(f"Level {context.levels_completed}: {len(frontier)} open node(s), "
                        f"{stops} leaf/leaves, {len(decisions) - stops} split(s)")

            self._write_checkpoint()
            frontier = self._open_frontier(context)

        self.tree_model.is_complete = (not self.tree_model.is_empty
                                       and not self.tree_model.open_node_ids())
        if self.tree_model.is_complete:
            logger.info(f"Tree complete: {self.tree_model.num_nodes} nodes, "
                        f"{self.tree_model.num_leaves} leaves, depth {self.tree_model.depth}")

        self._write_checkpoint()

    def _build_level(self, context: BuildContext, parsed: PartitionedDataset,
                     frontier: List[int]) -> List[NodeDecision]:
        """One pass over the records computing the decisions of every open node"""
        frontier_ids = set(frontier)
        root = self.tree_model.root
        schema = context.schema

        def key_of(fields):
            node_id = route_record(root, fields)
            return node_id if node_id in frontier_ids else None

        aggregates = self.engine.group_and_aggregate(
            parsed,
            key_of,
            lambda fields: NodeAggregate(schema).add_record(fields),
            lambda aggregate, fields: aggregate.add_record(fields),
            lambda left, right: left.merge(right)
        )

        decisions = []
        for node_id in sorted(frontier_ids):
            aggregate = aggregates.get(node_id)
            try:
                decisions.append(self._evaluate_node(context, node_id, aggregate))
            except AddressingError:
                raise
            except Exception as e:
                logger.error(f"Can not evaluate node {node_id}: {e}", exc_info=not isinstance(e, InvalidSplitError))
                stats = aggregate.statistics if aggregate is not None else None
                decisions.append(NodeDecision(node_id, SplitPoint.invalid(), stats, is_stop=False))

        return decisions

    def _evaluate_node(self, context: BuildContext, node_id: int,
                       aggregate: Optional[NodeAggregate]) -> NodeDecision:
        """
        Apply the stopping criteria and choose the split of one node

        Args:
            context: Build state
            node_id: Id of the open node
            aggregate: Statistics of the records which reached it

        Returns:
            Decision for the node
        """
        if aggregate is None or aggregate.statistics.count == 0:
            raise InvalidSplitError(f"No error-free record reached node {node_id}")

        stats = aggregate.statistics
        if aggregate.error_count:
            logger.debug(f"Node {node_id}: skipped {aggregate.error_count} invalid record(s)")

        criterion = context.split_finder.criterion
        if node_id == ROOT_ID:
            context.root_impurity = total_impurity(stats, criterion)

        reason = self._stop_reason(stats, node_id)
        if reason:
            logger.debug(f"Node {node_id} becomes a leaf: {reason}")
            return NodeDecision(node_id, None, stats, is_stop=True)

        features = self._select_features(context, node_id)
        candidate = context.split_finder.find_best_split(aggregate, self.full_feature_set, features)

        if candidate is None:
            logger.debug(f"Node {node_id} becomes a leaf: no valid split")
            return NodeDecision(node_id, None, stats, is_stop=True)

        root_impurity = context.root_impurity or 0.0
        complexity = candidate.gain / root_impurity if root_impurity > 0 else 0.0
        if complexity < self.maximum_complexity:
            logger.debug(f"Node {node_id} becomes a leaf: complexity {complexity:.6f} "
                         f"< {self.maximum_complexity}")
            return NodeDecision(node_id, None, stats, is_stop=True)

        return NodeDecision(node_id, candidate.split_point, stats, is_stop=False)

    def _stop_reason(self, stats: StatisticalInformation, node_id: int) -> Optional[str]:
        if stats.count <= self.minsplit:
            return f"{stats.count} record(s) <= minsplit {self.minsplit}"

        cv = stats.coefficient_of_variation
        if cv < self.threshold:
            return f"coefficient of variation {cv:.6f} < {self.threshold}"

        level = depth_of(node_id) + 1
        if level >= self.max_depth:
            return f"level {level} reached max depth {self.max_depth}"

        return None

    def _select_features(self, context: BuildContext, node_id: int) -> List[int]:
        """Predictors considered at a node; a seeded random subset when enabled"""
        features = sorted(context.x_indices)
        if not self.use_random_subset_feature or len(features) <= 1:
            return features

        size = max(1, int(math.ceil(math.sqrt(len(features)))))
        rng = np.random.default_rng([self.random_state, node_id])
        return sorted(int(i) for i in rng.choice(features, size=size, replace=False))

    def get_predicted_value(self, stats: Optional[StatisticalInformation]) -> Any:
        if stats is None:
            return None
        return stats.predicted_value

    def update_model(self, decisions: Iterable[NodeDecision], context: Optional[BuildContext] = None):
        """
        Attach the nodes computed in a level to the tree

        Args:
            decisions: One decision per open node
            context: Build state (collects nodes left unresolved)
        """
        for decision in decisions:
            logger.debug(f"Update model with id={decision.node_id} split={decision.split_point}")

            node = self._create_node(decision)
            if node is None:
                logger.warning(f"Value of node id={decision.node_id} is invalid, node left unresolved")
                if context is not None:
                    context.unresolved_ids.add(decision.node_id)
                continue

            attach(self.tree_model, decision.node_id, node)

    def _create_node(self, decision: NodeDecision) -> Optional[Node]:
        stats = decision.statistical_information

        if decision.is_invalid:
            if not self.force_leaf_on_invalid_split:
                return None
            value = self.get_predicted_value(stats) if stats is not None and stats.count > 0 \
                else self._parent_value(decision.node_id)
            if value is None:
                return None
            logger.warning(f"Split of node {decision.node_id} is invalid, forced to a leaf")
            return LeafNode(value, stats)

        if decision.is_stop:
            return LeafNode(self.get_predicted_value(stats), stats)

        split_point = decision.split_point
        if split_point.feature_index >= self.full_feature_set.number_of_features:
            logger.error(f"Node {decision.node_id} splits on unknown feature {split_point.feature_index}")
            return None

        feature = self.full_feature_set[split_point.feature_index]
        return InternalNode(
            split_feature=Feature(feature.name, feature.type, feature.index),
            split_point=split_point,
            value=self.get_predicted_value(stats),
            statistical_information=stats
        )

    def _parent_value(self, node_id: int) -> Any:
        if node_id == ROOT_ID or self.tree_model.is_empty:
            return None
        return locate(self.tree_model.root, parent_of(node_id)).value

    def _write_checkpoint(self):
        if self.checkpoint_path:
            from export.model_saver import ModelSaver
            ModelSaver(self.config).save_model(self.tree_model, self.checkpoint_path)

    # strategy

    def is_numeric_target(self, y_feature: Feature) -> bool:
        """Whether the target is predicted as a number (regression)"""
        return False

    @abstractmethod
    def create_split_finder(self, is_numeric_target: bool) -> SplitFinder:
        """Split finder used for this build"""
        raise NotImplementedError()

    @abstractmethod
    def create_new_instance(self) -> 'TreeBuilder':
        """Fresh builder of the same family sharing configuration and engine"""
        raise NotImplementedError()

    # prediction

    def predict_one_instance(self, record: Union[Sequence[str], str],
                             ignore_branch_ids: Iterable[int] = ()) -> Any:
        """
        Predict the target of one record

        Args:
            record: Field values (or a raw delimited line)
            ignore_branch_ids: Ids of branches treated as absent

        Returns:
            Predicted value, or UNKNOWN_VALUE if the record is invalid
        """
        if isinstance(record, str):
            record = record.split(self.delimiter)

        if record is None or len(record) == 0:
            return UNKNOWN_VALUE

        try:
            return self.tree_model.predict(record, ignore_branch_ids)
        except PredictionError as e:
            logger.debug(f"Prediction failed: {e}")
            return UNKNOWN_VALUE
        except Exception as e:
            logger.error(f"Error predicting record {list(record)}: {e}", exc_info=True)
            return UNKNOWN_VALUE

    def predict(self, testing_data: Union[PartitionedDataset, Sequence[str]], delimiter: str = ",",
                ignore_branch_ids: Iterable[int] = ()) -> PartitionedDataset:
        """
        Predict the target of every record of a dataset

        Args:
            testing_data: Raw delimited lines
            delimiter: Field delimiter of the testing data
            ignore_branch_ids: Ids of branches treated as absent

        Returns:
            Dataset of predicted values, aligned with the input
        """
        dataset = self._as_dataset(testing_data)
        ignored = frozenset(ignore_branch_ids or ())
        return dataset.map(lambda line: self.predict_one_instance(line.split(delimiter), ignored))

    # persistence

    def write_model_to_file(self, path: str):
        """
        Write the current tree model to file

        Args:
            path: Where to write
        """
        from export.model_saver import ModelSaver

        if not ModelSaver(self.config).save_model(self.tree_model, path):
            raise OSError(f"Could not write model to {path}")

    def load_model_from_file(self, path: str):
        """
        Load tree model from file

        Args:
            path: File written by write_model_to_file
        """
        from export.model_saver import ModelSaver

        model = ModelSaver(self.config).load_model(path)
        if model is None:
            raise BuildError("The tree model is empty because of no building. Please build it first")
        self.set_tree_model(model)

    def set_tree_model(self, tree_model: TreeModel):
        """
        Use a model, restoring the configuration it was built with

        Feature subsets, their seed and the invalid-split policy come from the
        model too, so a resumed build decides nodes the same way.
        """
        self.tree_model = tree_model
        self.full_feature_set = tree_model.full_feature_set
        self.x_indices = set(tree_model.x_indices)
        self.y_index = tree_model.y_index
        self.set_parameters(minsplit=tree_model.minsplit, threshold=tree_model.threshold,
                            max_depth=tree_model.max_depth,
                            maximum_complexity=tree_model.maximum_complexity)
        self.use_random_subset_feature = tree_model.use_random_subset_feature
        self.random_state = tree_model.random_state
        self.force_leaf_on_invalid_split = tree_model.force_leaf_on_invalid_split
        self._update_feature_set()

    def continue_from_incomplete_model(self, training_data: Union[PartitionedDataset, Sequence[str]],
                                       model_path: str, max_levels: Optional[int] = None) -> TreeModel:
        """
        Recover and continue building a tree from a saved, incomplete model

        Args:
            training_data: The dataset the model was being built from
            model_path: File holding the model
            max_levels: Stop after this many more levels

        Returns:
            The tree model

        Raises:
            BuildError: if the file holds no model or the model comes from
                another builder family
        """
        self.load_model_from_file(model_path)

        if self.tree_model.builder_type and self.tree_model.builder_type != self.builder_type:
            raise BuildError(f"The model was built by a {self.tree_model.builder_type} builder, "
                             f"it can not be continued by a {self.builder_type} builder")

        if self.tree_model.is_complete:
            logger.info("This model is already complete")
            return self.tree_model

        if self.tree_model.y_index < 0:
            raise BuildError("The saved model has no target feature. Please build it first")

        dataset = self._as_dataset(training_data)
        if dataset.is_empty():
            raise DataError("Invalid dataset: it contains no record")
        self.training_data = dataset

        logger.info(f"Recover from the last state: {len(self.tree_model.open_node_ids())} open node(s)")
        self._start_build_tree(dataset, self.x_indices, self.y_index, max_levels)
        return self.tree_model


def route_record(root: Optional[Node], fields: Sequence[str]) -> Optional[int]:
    """
    Id of the open node a record reaches, None if it ends in a decided leaf
    or can not be routed
    """
    if root is None:
        return ROOT_ID

    node = root
    node_id = ROOT_ID
    while isinstance(node, InternalNode):
        try:
            goes_left = node.split_point.goes_left(fields[node.split_point.feature_index])
        except (IndexError, ValueError, TypeError):
            return None
        if goes_left:
            node, node_id = node.left, 2 * node_id
        else:
            node, node_id = node.right, 2 * node_id + 1

    if isinstance(node, LeafNode) and node.is_placeholder:
        return node_id
    return None
