import pytest

from models.errors import AddressingError
from models.feature import Feature, FeatureType
from models.node import InternalNode, LeafNode, iterate_nodes
from models.node_addressing import (ROOT_ID, attach, children_of, depth_of, is_left_child,
                                    locate, parent_of, path_of)
from models.statistics import SplitPoint
from models.tree_model import TreeModel


def _internal(index=0):
    return InternalNode(Feature(f"Column{index}", FeatureType.NUMERICAL, index),
                        SplitPoint(index, 1.0, FeatureType.NUMERICAL), value="v")


@pytest.mark.parametrize("node_id", [1, 2, 3, 6, 7, 13, 1023])
def test_parent_children_round_trip(node_id):
    left, right = children_of(node_id)
    assert parent_of(left) == node_id
    assert parent_of(right) == node_id
    assert is_left_child(left)
    assert not is_left_child(right)
    assert depth_of(left) == depth_of(node_id) + 1


def test_path_of():
    assert path_of(ROOT_ID) == []
    assert path_of(2) == [False]
    assert path_of(3) == [True]
    # 5 = 0b101: left, then right
    assert path_of(5) == [False, True]
    assert len(path_of(13)) == depth_of(13) == 3


def test_path_of_rejects_ids_below_root():
    with pytest.raises(AddressingError):
        path_of(0)


def test_attach_builds_tree_by_id():
    model = TreeModel()
    attach(model, 1, _internal())
    attach(model, 2, LeafNode("a"))
    attach(model, 3, _internal(1))
    attach(model, 7, LeafNode("b"))

    assert locate(model.root, 2).value == "a"
    assert locate(model.root, 7).value == "b"
    assert isinstance(locate(model.root, 6), LeafNode)
    assert locate(model.root, 6).is_placeholder
    assert model.open_node_ids() == [6]


def test_attach_first_node_becomes_root():
    model = TreeModel()
    attach(model, 1, LeafNode("only"))
    assert model.root.value == "only"
    assert [i for i, _ in iterate_nodes(model.root)] == [1]


def test_locate_walking_off_tree_raises_with_snapshot():
    model = TreeModel()
    attach(model, 1, _internal())
    attach(model, 2, LeafNode("a"))

    with pytest.raises(AddressingError) as excinfo:
        locate(model.root, 9)

    assert excinfo.value.node_id == 9
    assert "[1]" in excinfo.value.tree_snapshot


def test_attach_under_leaf_raises():
    model = TreeModel()
    attach(model, 1, LeafNode("leaf"))
    with pytest.raises(AddressingError):
        attach(model, 2, LeafNode("child"))


def test_locate_in_empty_tree_raises():
    with pytest.raises(AddressingError):
        locate(None, 1)
