# tests/conftest.py
import pytest

from engine.execution_engine import ExecutionEngine
from models.id3_tree_builder import ID3TreeBuilder

WEATHER_LINES = [
    "sunny,hot,high,weak,no",
    "overcast,hot,high,weak,yes",
    "rain,cool,normal,weak,yes",
]

WEATHER_NAMES = ["outlook", "temperature", "humidity", "wind", "play"]

PLAYGOLF_LINES = [
    "sunny,85,85,false,no",
    "sunny,80,90,true,no",
    "overcast,83,86,false,yes",
    "rain,70,96,false,yes",
    "rain,68,80,false,yes",
    "rain,65,70,true,no",
    "overcast,64,65,true,yes",
    "sunny,72,95,false,no",
    "sunny,69,70,false,yes",
    "rain,75,80,false,yes",
    "sunny,75,70,true,yes",
    "overcast,72,90,true,yes",
    "overcast,81,75,false,yes",
    "rain,71,91,true,no",
]

REGRESSION_LINES = [
    "lo,1,10.0",
    "lo,2,10.0",
    "hi,8,50.0",
    "hi,9,50.0",
]


@pytest.fixture
def engine() -> ExecutionEngine:
    return ExecutionEngine({"engine": {"default_partitions": 2}})


@pytest.fixture
def weather_lines():
    return list(WEATHER_LINES)


@pytest.fixture
def playgolf_lines():
    return list(PLAYGOLF_LINES)


@pytest.fixture
def regression_lines():
    return list(REGRESSION_LINES)


@pytest.fixture
def weather_builder(engine, weather_lines) -> ID3TreeBuilder:
    builder = ID3TreeBuilder(engine=engine)
    builder.set_training_data(engine.parallelize(weather_lines))
    builder.set_feature_names(WEATHER_NAMES)
    builder.set_parameters(minsplit=1, threshold=0.0)
    return builder


@pytest.fixture
def playgolf_builder(engine, playgolf_lines) -> ID3TreeBuilder:
    builder = ID3TreeBuilder(engine=engine)
    builder.set_training_data(engine.parallelize(playgolf_lines, 3))
    builder.set_parameters(minsplit=1, threshold=0.01)
    return builder
