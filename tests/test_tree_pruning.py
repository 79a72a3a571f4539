import pytest

from models.node import InternalNode, LeafNode
from models.tree_pruning import TreePruner


@pytest.fixture
def full_model(playgolf_builder):
    return playgolf_builder.build_tree()


def test_prune_root_collapses_tree(full_model):
    pruner = TreePruner()
    pruned = pruner.prune_branches(full_model, [1])

    assert isinstance(pruned.root, LeafNode)
    assert pruned.root.value == "yes"
    assert pruned.is_complete
    # the original model is left unchanged
    assert isinstance(full_model.root, InternalNode)


def test_prune_descendant_of_pruned_node_is_skipped(full_model):
    pruner = TreePruner()
    internal = pruner.internal_node_ids(full_model)
    pruned = pruner.prune_branches(full_model, internal)
    assert pruned.num_nodes == 1


def test_prune_leaf_is_ignored(full_model):
    leaf_id = next(i for i in full_model.node_ids() if i not in TreePruner().internal_node_ids(full_model))
    pruned = TreePruner().prune_branches(full_model, [leaf_id])
    assert pruned.num_nodes == full_model.num_nodes


def test_large_alpha_prunes_to_root(full_model):
    pruned = TreePruner().cost_complexity_prune(full_model, alpha=10.0)
    assert isinstance(pruned.root, LeafNode)
    assert pruned.num_leaves == 1


def test_leaves_decrease_with_alpha(full_model):
    pruner = TreePruner()
    leaves = [pruner.cost_complexity_prune(full_model, alpha).num_leaves for alpha in (0.0, 0.05, 0.2, 1.0)]
    assert leaves == sorted(leaves, reverse=True)
    assert leaves[0] <= full_model.num_leaves


def test_complexity_path_is_increasing(full_model):
    alphas = TreePruner().complexity_path(full_model)
    assert alphas[0] == 0.0
    assert alphas == sorted(alphas)
    assert len(set(alphas)) == len(alphas)
    assert len(alphas) > 1
