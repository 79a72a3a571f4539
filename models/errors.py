#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Errors Module for Treelib
Exception types raised while building and using decision trees
"""

from typing import Optional


class TreeBuilderError(Exception):
    """Base class for all tree building errors."""
    pass


class SchemaError(TreeBuilderError):
    """Bad or missing feature names, empty sample record, field-count mismatch."""
    pass


class DataError(TreeBuilderError):
    """Empty or missing training dataset."""
    pass


class BuildError(TreeBuilderError):
    """Build invoked before the dataset was set, or the target can not be resolved."""
    pass


class AddressingError(TreeBuilderError):
    """
    Internal tree-consistency violation found while locating a node.
    This is a defect, not a data problem, and is never retried.
    """

    def __init__(self, message: str, node_id: Optional[int] = None,
                 tree_snapshot: Optional[str] = None):
        """
        Initialize the error

        Args:
            message: Description of the violation
            node_id: Node id being located when the walk failed
            tree_snapshot: Text rendering of the tree at failure time
        """
        details = message
        if node_id is not None:
            details = f"{details} (node id={node_id})"
        if tree_snapshot:
            details = f"{details}\ncurrent tree:\n{tree_snapshot}"
        super().__init__(details)
        self.node_id = node_id
        self.tree_snapshot = tree_snapshot


class PredictionError(TreeBuilderError):
    """Malformed record or feature-value mismatch during a single prediction."""
    pass


class InvalidSplitError(TreeBuilderError):
    """No usable split or statistics exist for a node."""
    pass
