#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Node Addressing Module for Treelib
Maps a node's position in the binary tree to an integer id.

The root has id 1, the left child of node k is 2k and the right child 2k+1,
so the path from the root is the binary representation of the id without
its leading 1. New nodes can be attached to their parent from the id alone.
"""

import logging
from typing import List, Optional

from models.errors import AddressingError
from models.node import InternalNode, Node, render_tree

logger = logging.getLogger(__name__)

ROOT_ID = 1


def parent_of(node_id: int) -> int:
    return node_id >> 1


def is_left_child(node_id: int) -> bool:
    return node_id % 2 == 0


def depth_of(node_id: int) -> int:
    """Depth of a node, 0 for the root"""
    return node_id.bit_length() - 1


def children_of(node_id: int):
    return 2 * node_id, 2 * node_id + 1


def path_of(node_id: int) -> List[bool]:
    """
    Moves from the root to a node

    Returns:
        One entry per level, True for "go right", False for "go left"
    """
    if node_id < ROOT_ID:
        raise AddressingError("Node ids start at 1", node_id=node_id)
    level = depth_of(node_id)
    return [bool((node_id >> shift) & 1) for shift in range(level - 1, -1, -1)]


def locate(root: Optional[Node], node_id: int) -> Node:
    """
    Find the node with the given id, walking only its path

    Args:
        root: Root of the tree
        node_id: Id of the node to find

    Returns:
        The node at that position

    Raises:
        AddressingError: if the path leaves the existing tree
    """
    if root is None:
        raise AddressingError("Can not locate a node in an empty tree", node_id=node_id)

    current = root
    for step, go_right in enumerate(path_of(node_id)):
        if not isinstance(current, InternalNode):
            position = node_id >> (depth_of(node_id) - step)
            logger.error(f"Node {position} on the path to {node_id} is not an internal node")
            raise AddressingError(
                f"Path walks off the tree at node {position}",
                node_id=node_id,
                tree_snapshot=render_tree(root)
            )
        current = current.right if go_right else current.left

    return current


def attach(tree_model, child_id: int, node: Node):
    """
    Attach a node to a tree model by id

    An empty model takes the node as its root whatever the id is.

    Args:
        tree_model: TreeModel to update
        child_id: Id of the new node
        node: New node
    """
    if tree_model.is_empty:
        tree_model.root = node
        return

    if child_id == ROOT_ID:
        tree_model.root = node
        return

    parent = locate(tree_model.root, parent_of(child_id))

    if not isinstance(parent, InternalNode):
        raise AddressingError(
            f"Parent {parent_of(child_id)} is a leaf, can not attach a child",
            node_id=child_id,
            tree_snapshot=render_tree(tree_model.root)
        )

    if is_left_child(child_id):
        parent.set_left(node)
    else:
        parent.set_right(node)
