import pytest

from models.cart_tree_builder import CARTTreeBuilder
from models.errors import BuildError, PredictionError
from models.id3_tree_builder import ID3TreeBuilder
from models.random_forest import RandomForest, RandomForestBuilder, aggregate_votes
from models.tree_builder import UNKNOWN_VALUE


def _forest_builder(engine, lines, **forest_config):
    config = {"forest": dict({"number_of_trees": 3}, **forest_config)}
    builder = RandomForestBuilder(config, engine)
    builder.set_training_data(lines)
    builder.set_parameters(minsplit=1, threshold=0.01)
    return builder


@pytest.mark.parametrize("votes, expected", [
    (["yes", "no", "yes"], "yes"),
    (["no", "yes"], "no"),
    (["yes", UNKNOWN_VALUE, UNKNOWN_VALUE], "yes"),
    ([UNKNOWN_VALUE], UNKNOWN_VALUE),
    ([], UNKNOWN_VALUE),
    ([10.0, 20.0, 60.0], 30.0),
    ([1, 2.0], 1.5),
])
def test_aggregate_votes(votes, expected):
    assert aggregate_votes(votes) == expected


def test_single_tree_forest_matches_tree(engine, playgolf_lines):
    forest_builder = _forest_builder(engine, playgolf_lines, number_of_trees=1, use_bootstrap=False,
                                     use_random_subset_feature=False)
    forest = forest_builder.build_forest(ID3TreeBuilder)

    tree_builder = ID3TreeBuilder(engine=engine)
    tree_builder.set_training_data(playgolf_lines)
    tree_builder.set_parameters(minsplit=1, threshold=0.01)
    tree_builder.build_tree()

    assert forest.num_trees == 1
    assert forest.predict(playgolf_lines).collect() == tree_builder.predict(playgolf_lines).collect()


def test_forest_is_reproducible(engine, playgolf_lines):
    first = _forest_builder(engine, playgolf_lines).build_forest()
    second = _forest_builder(engine, playgolf_lines).build_forest()
    assert [t.root.to_dict() for t in first.trees] == [t.root.to_dict() for t in second.trees]


def test_parallel_build_matches_sequential(engine, playgolf_lines):
    sequential = _forest_builder(engine, playgolf_lines).build_forest()
    parallel = _forest_builder(engine, playgolf_lines, n_jobs=2).build_forest()
    assert [t.root.to_dict() for t in sequential.trees] == [t.root.to_dict() for t in parallel.trees]


def test_forest_trees_share_feature_names(engine, weather_lines):
    builder = _forest_builder(engine, weather_lines)
    builder.set_feature_names(["outlook", "temperature", "humidity", "wind", "play"])
    forest = builder.build_forest(y_feature="play")
    for tree in forest.trees:
        assert tree.full_feature_set.get_index("play") == 4
        assert tree.builder_type == "id3"


def test_regression_forest_averages(engine, regression_lines):
    builder = _forest_builder(engine, regression_lines, use_bootstrap=False)
    forest = builder.build_forest(CARTTreeBuilder)
    assert forest.builder_type == "cart"
    assert forest.predict_one_instance(["lo", "1"]) == pytest.approx(10.0)


def test_all_trees_failing_raises(engine, playgolf_lines):
    with pytest.raises(BuildError):
        _forest_builder(engine, playgolf_lines).build_forest(y_feature="missing")


def test_build_without_data_raises(engine):
    with pytest.raises(BuildError):
        RandomForestBuilder(engine=engine).build_forest()


def test_number_of_trees_must_be_positive(engine):
    with pytest.raises(ValueError):
        RandomForestBuilder(engine=engine).set_number_of_trees(0)


def test_empty_forest_can_not_predict(engine):
    with pytest.raises(PredictionError):
        RandomForest(engine=engine).predict(["a,b"])


def test_forest_save_and_load(engine, playgolf_lines, tmp_path):
    forest = _forest_builder(engine, playgolf_lines).build_forest()
    path = tmp_path / "forest.json"

    assert forest.save(str(path))
    loaded = RandomForest.load(str(path))

    assert loaded.num_trees == forest.num_trees
    assert loaded.builder_type == "id3"
    loaded.engine = engine
    assert loaded.predict(playgolf_lines).collect() == forest.predict(playgolf_lines).collect()
