#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tree Pruning Module for Treelib
Collapses branches of a built tree using the statistics stored in its nodes
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from models.errors import AddressingError
from models.node import InternalNode, LeafNode, Node, iterate_nodes
from models.node_addressing import attach, locate
from models.split_finder import SplitCriterion, node_impurity
from models.tree_model import TreeModel

logger = logging.getLogger(__name__)

# alphas closer than this are pruned together
ALPHA_TOLERANCE = 1e-12


class TreePruner:
    """Class for pruning decision trees to reduce overfitting"""

    def __init__(self, criterion: Optional[SplitCriterion] = None):
        """
        Initialize TreePruner

        Args:
            criterion: Impurity measure for cost-complexity pruning
                (default: from the model's target and builder type)
        """
        self.criterion = criterion

    def internal_node_ids(self, model: TreeModel) -> List[int]:
        return sorted(node_id for node_id, node in iterate_nodes(model.root)
                      if isinstance(node, InternalNode))

    def prune_branches(self, model: TreeModel, node_ids: Iterable[int]) -> TreeModel:
        """
        Collapse internal nodes into leaves

        Args:
            model: Tree to prune (left unchanged)
            node_ids: Ids of the internal nodes to collapse

        Returns:
            Pruned copy of the model
        """
        pruned = model.copy()

        for node_id in sorted(set(node_ids)):
            try:
                node = locate(pruned.root, node_id)
            except AddressingError:
                logger.debug(f"Node {node_id} already removed by pruning an ancestor")
                continue

            if not isinstance(node, InternalNode):
                logger.warning(f"Node {node_id} is not an internal node, nothing to prune")
                continue

            attach(pruned, node_id, LeafNode(node.value, node.statistical_information))

        pruned.is_complete = not pruned.is_empty and not pruned.open_node_ids()
        logger.info(f"Pruned tree: {model.num_nodes} -> {pruned.num_nodes} nodes")
        return pruned

    def cost_complexity_prune(self, model: TreeModel, alpha: float) -> TreeModel:
        """
        Minimal cost-complexity (weakest link) pruning

        Repeatedly collapses the subtrees with the smallest impurity reduction
        per removed leaf while that reduction is at most alpha.

        Args:
            model: Tree to prune (left unchanged)
            alpha: Complexity parameter

        Returns:
            Pruned copy of the model
        """
        pruned = model.copy()
        criterion = self._criterion_for(pruned)

        while True:
            weakest = self._weakest_links(pruned, criterion)
            if not weakest:
                break
            g, node_ids = weakest
            if g > alpha + ALPHA_TOLERANCE:
                break
            for node_id in node_ids:
                node = locate(pruned.root, node_id)
                attach(pruned, node_id, LeafNode(node.value, node.statistical_information))

        logger.info(f"Cost-complexity pruning with alpha={alpha}: "
                    f"{model.num_leaves} -> {pruned.num_leaves} leaves")
        return pruned

    def complexity_path(self, model: TreeModel) -> List[float]:
        """
        Effective alphas at which the weakest-link sequence collapses subtrees

        Returns:
            Increasing list of alphas, starting with 0
        """
        pruned = model.copy()
        criterion = self._criterion_for(pruned)
        alphas = [0.0]

        while True:
            weakest = self._weakest_links(pruned, criterion)
            if not weakest:
                break
            g, node_ids = weakest
            if g > alphas[-1] + ALPHA_TOLERANCE:
                alphas.append(g)
            for node_id in node_ids:
                node = locate(pruned.root, node_id)
                attach(pruned, node_id, LeafNode(node.value, node.statistical_information))

        return alphas

    def _criterion_for(self, model: TreeModel) -> SplitCriterion:
        if self.criterion is not None:
            return self.criterion

        stats = model.root.statistical_information if model.root is not None else None
        if stats is not None and stats.is_numeric_target:
            return SplitCriterion.VARIANCE
        if model.builder_type == "id3":
            return SplitCriterion.ENTROPY
        return SplitCriterion.GINI

    def _weakest_links(self, model: TreeModel,
                       criterion: SplitCriterion) -> Optional[Tuple[float, List[int]]]:
        """Smallest g(t) over internal nodes and the ids reaching it"""
        if model.root is None or model.root.statistical_information is None:
            return None

        total = model.root.statistical_information.count or 1
        g_values: Dict[int, float] = {}

        self._collect(model.root, 1, criterion, total, g_values)
        if not g_values:
            return None

        smallest = min(g_values.values())
        ids = sorted(i for i, g in g_values.items() if g <= smallest + ALPHA_TOLERANCE)
        # collapsing an ancestor already removes its descendants
        ids = [i for i in ids if not any(_is_ancestor(a, i) for a in ids if a != i)]
        return smallest, ids

    def _collect(self, node: Node, node_id: int, criterion: SplitCriterion, total: int,
                 g_values: Dict[int, float]) -> Tuple[float, int]:
        """Post-order walk returning (subtree risk, leaf count) of a node"""
        own_risk = self._risk(node, criterion, total)

        if not isinstance(node, InternalNode):
            return own_risk, 1

        left_risk, left_leaves = self._collect(node.left, 2 * node_id, criterion, total, g_values)
        right_risk, right_leaves = self._collect(node.right, 2 * node_id + 1, criterion, total, g_values)

        risk, leaves = left_risk + right_risk, left_leaves + right_leaves
        g_values[node_id] = (own_risk - risk) / max(leaves - 1, 1)
        return risk, leaves

    @staticmethod
    def _risk(node: Node, criterion: SplitCriterion, total: int) -> float:
        stats = node.statistical_information
        if stats is None:
            return 0.0
        return stats.count * node_impurity(stats, criterion) / total


def _is_ancestor(ancestor: int, node_id: int) -> bool:
    while node_id > ancestor:
        node_id //= 2
    return node_id == ancestor
