import pandas as pd
import pytest

from data.data_loader import DataLoader
from models.errors import DataError


@pytest.fixture
def loader(engine) -> DataLoader:
    return DataLoader(engine=engine)


def test_load_file(loader, tmp_path, weather_lines):
    path = tmp_path / "weather.csv"
    path.write_text("\n".join(weather_lines) + "\n")

    dataset, metadata = loader.load_file(path)

    assert dataset.collect() == weather_lines
    assert metadata["records"] == 3
    assert metadata["columns"] is None


def test_load_file_with_header(loader, tmp_path):
    path = tmp_path / "weather.csv"
    path.write_text("outlook,play\nsunny,no\nrain,yes\n")

    dataset, metadata = loader.load_file(path, header=True)

    assert metadata["columns"] == ["outlook", "play"]
    assert dataset.collect() == ["sunny,no", "rain,yes"]


def test_empty_file_raises(loader, tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("\n")
    with pytest.raises(DataError):
        loader.load_file(path)


def test_dataframe_round_trip(loader):
    df = pd.DataFrame({"outlook": ["sunny", "rain"], "humidity": [85, 70]})
    dataset = loader.from_dataframe(df)

    assert dataset.collect() == ["sunny,85", "rain,70"]
    assert loader.target_values(dataset).collect() == ["85", "70"]
    assert loader.to_dataframe(dataset, ["outlook", "humidity"]).iloc[1].tolist() == ["rain", "70"]
