#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tree Model Module for Treelib
The tree structure plus the metadata needed to use, persist and resume it
"""

import logging
from typing import Dict, List, Optional, Any, Iterable, Sequence, Set

import pandas as pd

from models.errors import PredictionError
from models.feature import FeatureSet
from models.node import InternalNode, LeafNode, Node, iterate_nodes, render_tree
from utils.serialization_utils import make_json_serializable

logger = logging.getLogger(__name__)

MODEL_TYPE = "TreeModel"
MODEL_VERSION = "1.0"


class TreeModel:
    """
    Decision tree model

    States: empty (no root), building (at least one open node) and complete.
    """

    def __init__(self, minsplit: int = 10, threshold: float = 0.1, max_depth: int = 62,
                 maximum_complexity: float = 0.001):
        self.root: Optional[Node] = None
        self.full_feature_set = FeatureSet()
        self.x_indices: Set[int] = set()
        self.y_index: int = -1
        self.x_features: List[str] = []
        self.y_feature: str = ""

        self.minsplit = minsplit
        self.threshold = threshold
        self.max_depth = max_depth
        self.maximum_complexity = maximum_complexity
        self.use_random_subset_feature = False
        self.random_state = 42
        self.force_leaf_on_invalid_split = True

        self.is_complete = False
        self.builder_type: Optional[str] = None
        self.created_timestamp = pd.Timestamp.now()

    @property
    def is_empty(self) -> bool:
        return self.root is None

    def reset(self):
        self.root = None
        self.is_complete = False

    def open_node_ids(self) -> List[int]:
        """Ids of the nodes not decided yet, in ascending order"""
        return sorted(node_id for node_id, node in iterate_nodes(self.root)
                      if isinstance(node, LeafNode) and node.is_placeholder)

    def node_ids(self) -> List[int]:
        return sorted(node_id for node_id, _ in iterate_nodes(self.root))

    @property
    def num_nodes(self) -> int:
        return sum(1 for _, node in iterate_nodes(self.root)
                   if not (isinstance(node, LeafNode) and node.is_placeholder))

    @property
    def num_leaves(self) -> int:
        return sum(1 for _, node in iterate_nodes(self.root)
                   if isinstance(node, LeafNode) and not node.is_placeholder)

    @property
    def depth(self) -> int:
        """Depth of the deepest decided node; open placeholders do not count"""
        ids = [node_id for node_id, node in iterate_nodes(self.root)
               if not (isinstance(node, LeafNode) and node.is_placeholder)]
        if not ids:
            return 0
        return max(ids).bit_length() - 1

    def predict(self, record: Sequence[str], ignore_branch_ids: Iterable[int] = ()) -> Any:
        """
        Predict the target of one record

        A child whose id is ignored, or which is still open, counts as absent:
        the value of the current node is returned instead.

        Args:
            record: Field values, positioned like the training data
            ignore_branch_ids: Ids of branches to skip

        Returns:
            Predicted value

        Raises:
            PredictionError: if the record does not fit the tree
        """
        if self.root is None:
            raise PredictionError("The tree model is empty")

        ignored = set(ignore_branch_ids or ())
        node = self.root
        node_id = 1

        while isinstance(node, InternalNode):
            split_point = node.split_point
            try:
                goes_left = split_point.goes_left(record[split_point.feature_index])
            except (IndexError, ValueError, TypeError) as e:
                raise PredictionError(
                    f"Can not apply split '{node.split_rule}' to record {list(record)}: {e}") from e

            child_id = 2 * node_id if goes_left else 2 * node_id + 1
            child = node.left if goes_left else node.right

            if child_id in ignored or (isinstance(child, LeafNode) and child.is_placeholder):
                return node.value

            node, node_id = child, child_id

        if node.is_placeholder or node.value is None:
            raise PredictionError(f"Node {node_id} has no predicted value")

        return node.value

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the model to a dictionary

        Returns:
            Dictionary representation of the model
        """
        model_dict = {
            'model_type': MODEL_TYPE,
            'version': MODEL_VERSION,
            'builder_type': self.builder_type,
            'parameters': {
                'minsplit': self.minsplit,
                'threshold': self.threshold,
                'max_depth': self.max_depth,
                'maximum_complexity': self.maximum_complexity,
                'use_random_subset_feature': self.use_random_subset_feature,
                'random_state': self.random_state,
                'force_leaf_on_invalid_split': self.force_leaf_on_invalid_split
            },
            'full_feature_set': self.full_feature_set.to_dict(),
            'x_indices': sorted(self.x_indices),
            'y_index': self.y_index,
            'x_features': list(self.x_features),
            'y_feature': self.y_feature,
            'is_complete': self.is_complete,
            'created_timestamp': self.created_timestamp.isoformat(),
            'root_node': self.root.to_dict() if self.root is not None else None
        }
        return make_json_serializable(model_dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TreeModel':
        """
        Deserialize a model from a dictionary

        Args:
            data: Dictionary representation of the model

        Returns:
            TreeModel instance
        """
        if data.get('model_type') != MODEL_TYPE:
            raise ValueError(f"Invalid model type: {data.get('model_type')}")

        params = data.get('parameters', {})
        model = cls(
            minsplit=params.get('minsplit', 10),
            threshold=params.get('threshold', 0.1),
            max_depth=params.get('max_depth', 62),
            maximum_complexity=params.get('maximum_complexity', 0.001)
        )

        model.use_random_subset_feature = params.get('use_random_subset_feature', False)
        model.random_state = params.get('random_state', 42)
        model.force_leaf_on_invalid_split = params.get('force_leaf_on_invalid_split', True)
        model.builder_type = data.get('builder_type')
        model.full_feature_set = FeatureSet.from_dict(data.get('full_feature_set', []))
        model.x_indices = set(data.get('x_indices', []))
        model.y_index = data.get('y_index', -1)
        model.x_features = list(data.get('x_features', []))
        model.y_feature = data.get('y_feature', "")
        model.is_complete = data.get('is_complete', False)

        if data.get('created_timestamp'):
            model.created_timestamp = pd.Timestamp(data['created_timestamp'])

        if data.get('root_node') is not None:
            model.root = Node.from_dict(data['root_node'])

        logger.debug(f"Deserialized tree model with {model.num_nodes} nodes (complete={model.is_complete})")
        return model

    def copy(self) -> 'TreeModel':
        return TreeModel.from_dict(self.to_dict())

    def __str__(self) -> str:
        return render_tree(self.root)

    def __repr__(self) -> str:
        return (f"TreeModel(nodes={self.num_nodes}, leaves={self.num_leaves}, "
                f"depth={self.depth}, complete={self.is_complete})")
