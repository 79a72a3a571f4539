#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
CART Tree Builder Module for Treelib
Classification and regression trees
"""

import logging

from models.feature import Feature
from models.split_finder import CategoricalPartition, SplitCriterion, SplitFinder
from models.tree_builder import TreeBuilder

logger = logging.getLogger(__name__)


class CARTTreeBuilder(TreeBuilder):
    """
    Builds binary trees with the Gini index for a categorical target and
    variance reduction for a numerical one

    Categories of a predictor are ordered by the target mean (regression) or
    by the rate of the node's majority class (classification), and only
    prefixes of that order are tried.
    """

    builder_type = "cart"

    def is_numeric_target(self, y_feature: Feature) -> bool:
        return y_feature.is_numerical

    def create_split_finder(self, is_numeric_target: bool) -> SplitFinder:
        criterion = SplitCriterion.VARIANCE if is_numeric_target else SplitCriterion.GINI
        logger.debug(f"CART split criterion: {criterion.value}")
        return SplitFinder(criterion, CategoricalPartition.ORDERED)

    def create_new_instance(self) -> 'CARTTreeBuilder':
        return CARTTreeBuilder(self.config, self.engine)
