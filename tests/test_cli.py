import json

import pytest
from typer.testing import CliRunner

from main import app
from tests.conftest import PLAYGOLF_LINES

runner = CliRunner()


@pytest.fixture
def playgolf_file(tmp_path):
    path = tmp_path / "playgolf.csv"
    path.write_text("\n".join(PLAYGOLF_LINES) + "\n")
    return path


def test_train_predict_and_show(playgolf_file, tmp_path):
    model_path = tmp_path / "tree.json"

    result = runner.invoke(app, ["train", str(playgolf_file), "--output", str(model_path),
                                 "--minsplit", "1", "--threshold", "0.01"])
    assert result.exit_code == 0, result.output
    assert json.loads(model_path.read_text())["is_complete"]

    result = runner.invoke(app, ["predict", str(model_path), str(playgolf_file),
                                 "--metric", "misclassification"])
    assert result.exit_code == 0, result.output
    assert "misclassification: 0.000000" in result.output

    result = runner.invoke(app, ["show", str(model_path)])
    assert result.exit_code == 0
    assert "TreeModel" in result.output


def test_train_then_resume(playgolf_file, tmp_path):
    model_path = tmp_path / "tree.json"
    result = runner.invoke(app, ["train", str(playgolf_file), "--output", str(model_path),
                                 "--minsplit", "1", "--max-levels", "1"])
    assert result.exit_code == 0, result.output
    assert not json.loads(model_path.read_text())["is_complete"]

    result = runner.invoke(app, ["resume", str(playgolf_file), str(model_path)])
    assert result.exit_code == 0, result.output
    assert json.loads(model_path.read_text())["is_complete"]


def test_forest_predictions_written_to_file(playgolf_file, tmp_path):
    forest_path = tmp_path / "forest.json"
    predictions = tmp_path / "predictions.txt"

    result = runner.invoke(app, ["forest", str(playgolf_file), "--output", str(forest_path), "--trees", "3"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["predict", str(forest_path), str(playgolf_file),
                                 "--output", str(predictions)])
    assert result.exit_code == 0, result.output
    assert len(predictions.read_text().splitlines()) == len(PLAYGOLF_LINES)


def test_unknown_builder_is_rejected(playgolf_file, tmp_path):
    result = runner.invoke(app, ["train", str(playgolf_file), "--builder", "c45",
                                 "--output", str(tmp_path / "tree.json")])
    assert result.exit_code != 0


def test_unknown_target_fails(playgolf_file, tmp_path):
    result = runner.invoke(app, ["train", str(playgolf_file), "--target", "nope",
                                 "--output", str(tmp_path / "tree.json")])
    assert result.exit_code == 1


def test_resume_uses_builder_recorded_in_model(tmp_path):
    data = tmp_path / "spread.csv"
    data.write_text("lo,1,10.0\nlo,2,12.0\nhi,8,50.0\nhi,9,54.0\nlo,3,11.0\nhi,7,52.0\n")
    full_path, partial_path = tmp_path / "full.json", tmp_path / "partial.json"
    options = ["--builder", "cart", "--minsplit", "1", "--threshold", "0", "--maximum-complexity", "0"]

    result = runner.invoke(app, ["train", str(data), "--output", str(full_path)] + options)
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["train", str(data), "--output", str(partial_path), "--max-levels", "1"] + options)
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["resume", str(data), str(partial_path)])
    assert result.exit_code == 0, result.output

    full, resumed = json.loads(full_path.read_text()), json.loads(partial_path.read_text())
    assert resumed["builder_type"] == "cart"
    assert resumed["is_complete"]
    assert resumed["root_node"] == full["root_node"]


def test_resume_with_explicit_other_builder_fails(tmp_path):
    data = tmp_path / "spread.csv"
    data.write_text("lo,1,10.0\nlo,2,12.0\nhi,8,50.0\nhi,9,54.0\n")
    model_path = tmp_path / "partial.json"

    result = runner.invoke(app, ["train", str(data), "--output", str(model_path), "--builder", "cart",
                                 "--minsplit", "1", "--max-levels", "1"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["resume", str(data), str(model_path), "--builder", "id3"])
    assert result.exit_code == 1


def test_predict_metric_uses_trained_target(playgolf_file, tmp_path):
    model_path = tmp_path / "windy.json"

    result = runner.invoke(app, ["train", str(playgolf_file), "--output", str(model_path), "--target", "Column3",
                                 "--minsplit", "1", "--threshold", "0", "--maximum-complexity", "0"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["predict", str(model_path), str(playgolf_file), "--metric", "accuracy"])
    assert result.exit_code == 0, result.output
    assert "accuracy: 1.000000" in result.output
