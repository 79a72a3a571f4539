#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Models Module for Treelib
Tree model, node representation, builders and forests
"""

from .errors import (TreeBuilderError, SchemaError, DataError, BuildError, AddressingError,
                     PredictionError, InvalidSplitError)
from .feature import Feature, FeatureSet, FeatureType
from .node import InternalNode, LeafNode, Node
from .statistics import SplitPoint, StatisticalInformation
from .tree_model import TreeModel
from .tree_builder import UNKNOWN_VALUE, TreeBuilder
from .id3_tree_builder import ID3TreeBuilder
from .cart_tree_builder import CARTTreeBuilder
from .random_forest import RandomForest, RandomForestBuilder
from .tree_pruning import TreePruner

__all__ = [
    'TreeBuilderError', 'SchemaError', 'DataError', 'BuildError', 'AddressingError',
    'PredictionError', 'InvalidSplitError',
    'Feature', 'FeatureSet', 'FeatureType',
    'InternalNode', 'LeafNode', 'Node',
    'SplitPoint', 'StatisticalInformation',
    'TreeModel', 'UNKNOWN_VALUE', 'TreeBuilder',
    'ID3TreeBuilder', 'CARTTreeBuilder',
    'RandomForest', 'RandomForestBuilder',
    'TreePruner'
]
