#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
ID3 Tree Builder Module for Treelib
Classification trees split by information gain
"""

import logging

from models.split_finder import CategoricalPartition, SplitCriterion, SplitFinder
from models.tree_builder import TreeBuilder

logger = logging.getLogger(__name__)


class ID3TreeBuilder(TreeBuilder):
    """
    Builds classification trees using entropy

    Categorical predictors are split one category against the rest, numerical
    predictors on a threshold. The target is always treated as a class label,
    even when its values look numeric.
    """

    builder_type = "id3"

    def create_split_finder(self, is_numeric_target: bool) -> SplitFinder:
        return SplitFinder(SplitCriterion.ENTROPY, CategoricalPartition.ONE_VS_REST)

    def create_new_instance(self) -> 'ID3TreeBuilder':
        return ID3TreeBuilder(self.config, self.engine)
