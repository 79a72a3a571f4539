#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Node Module for Treelib
Represents nodes in the decision tree: leaves, internal nodes and placeholders for open nodes
"""

import logging
from typing import Dict, Iterator, List, Optional, Any, Tuple

from models.feature import Feature
from models.statistics import SplitPoint, StatisticalInformation
from utils.serialization_utils import make_json_serializable

logger = logging.getLogger(__name__)

NODE_TYPE_LEAF = "leaf"
NODE_TYPE_INTERNAL = "internal"
NODE_TYPE_PLACEHOLDER = "placeholder"


class Node:
    """Fields shared by every node variant"""

    node_type = None

    def __init__(self, value: Any = None,
                 statistical_information: Optional[StatisticalInformation] = None):
        """
        Initialize a node

        Args:
            value: Predicted value (mean or class label)
            statistical_information: Aggregate of the records which reached this node
        """
        self.value = value
        self.statistical_information = statistical_information

    @property
    def is_leaf(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert node to dictionary for serialization

        Returns:
            Dictionary representation of the node (children included)
        """
        stats = self.statistical_information
        node_dict = {
            'node_type': self.node_type,
            'value': self.value,
            'statistical_information': stats.to_dict() if stats is not None else None
        }
        return make_json_serializable(node_dict)

    @staticmethod
    def from_dict(node_dict: Dict[str, Any]) -> 'Node':
        """
        Create node from dictionary

        Unknown keys are ignored so snapshots written by other versions still load.

        Args:
            node_dict: Dictionary representation of the node

        Returns:
            LeafNode or InternalNode
        """
        node_type = node_dict.get('node_type', NODE_TYPE_LEAF)
        stats = StatisticalInformation.from_dict(node_dict.get('statistical_information'))
        value = node_dict.get('value')

        if node_type == NODE_TYPE_INTERNAL:
            return InternalNode(
                split_feature=Feature.from_dict(node_dict['split_feature']),
                split_point=SplitPoint.from_dict(node_dict['split_point']),
                left=Node.from_dict(node_dict['left']),
                right=Node.from_dict(node_dict['right']),
                value=value,
                statistical_information=stats
            )

        return LeafNode(value, stats, is_placeholder=(node_type == NODE_TYPE_PLACEHOLDER))

    def copy(self) -> 'Node':
        """Deep copy of this node and its subtree"""
        return Node.from_dict(self.to_dict())


class LeafNode(Node):
    """Terminal node; a placeholder leaf stands for a node not decided yet"""

    def __init__(self, value: Any = None,
                 statistical_information: Optional[StatisticalInformation] = None,
                 is_placeholder: bool = False):
        super().__init__(value, statistical_information)
        self.is_placeholder = is_placeholder

    @classmethod
    def placeholder(cls) -> 'LeafNode':
        return cls(None, None, is_placeholder=True)

    @property
    def node_type(self) -> str:
        return NODE_TYPE_PLACEHOLDER if self.is_placeholder else NODE_TYPE_LEAF

    @property
    def is_leaf(self) -> bool:
        return True

    def __str__(self) -> str:
        if self.is_placeholder:
            return "(open)"
        return f"-> {self.value}"

    def __repr__(self) -> str:
        return f"LeafNode(value={self.value!r}, placeholder={self.is_placeholder})"


class InternalNode(Node):
    """Decision point with exactly two children"""

    node_type = NODE_TYPE_INTERNAL

    def __init__(self, split_feature: Feature, split_point: SplitPoint,
                 left: Optional[Node] = None, right: Optional[Node] = None,
                 value: Any = None,
                 statistical_information: Optional[StatisticalInformation] = None):
        """
        Initialize an internal node

        Args:
            split_feature: Feature used to branch
            split_point: Threshold or category partition
            left: Left child (placeholder if None)
            right: Right child (placeholder if None)
            value: Predicted value when prediction stops here
            statistical_information: Aggregate of the records which reached this node
        """
        super().__init__(value, statistical_information)
        self.split_feature = split_feature
        self.split_point = split_point
        self.left = left if left is not None else LeafNode.placeholder()
        self.right = right if right is not None else LeafNode.placeholder()

    def set_left(self, node: Node):
        self.left = node

    def set_right(self, node: Node):
        self.right = node

    @property
    def split_rule(self) -> str:
        return self.split_point.describe(self.split_feature.name)

    def to_dict(self) -> Dict[str, Any]:
        node_dict = super().to_dict()
        node_dict.update({
            'split_feature': self.split_feature.to_dict(),
            'split_point': make_json_serializable(self.split_point.to_dict()),
            'left': self.left.to_dict(),
            'right': self.right.to_dict()
        })
        return node_dict

    def __str__(self) -> str:
        return f"{self.split_rule} (value={self.value})"

    def __repr__(self) -> str:
        return (f"InternalNode(split={self.split_rule!r}, value={self.value!r}, "
                f"left={self.left!r}, right={self.right!r})")


def iterate_nodes(root: Optional[Node], node_id: int = 1) -> Iterator[Tuple[int, Node]]:
    """Yield (node id, node) pairs of a subtree, parents before children"""
    if root is None:
        return
    stack = [(node_id, root)]
    while stack:
        current_id, node = stack.pop()
        yield current_id, node
        if isinstance(node, InternalNode):
            stack.append((2 * current_id + 1, node.right))
            stack.append((2 * current_id, node.left))


def render_tree(root: Optional[Node], feature_names: Optional[List[str]] = None) -> str:
    """Indented text rendering of a subtree, one node per line"""
    if root is None:
        return "<empty tree>"

    lines = []
    for node_id, node in iterate_nodes(root):
        indent = "  " * (node_id.bit_length() - 1)
        if isinstance(node, InternalNode):
            name = node.split_feature.name
            if feature_names and 0 <= node.split_feature.index < len(feature_names):
                name = feature_names[node.split_feature.index]
            lines.append(f"{indent}[{node_id}] {node.split_point.describe(name)}")
        else:
            lines.append(f"{indent}[{node_id}] {node}")
    return "\n".join(lines)
