import json

from utils.config import (DEFAULT_CONFIG, get_config_value, load_configuration, merge_configs,
                          save_configuration, set_config_value, validate_configuration)


def test_missing_file_gives_defaults(tmp_path):
    config = load_configuration(tmp_path / "missing.json")
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_user_values_override_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"tree_builder": {"minsplit": 3}}))

    config = load_configuration(path)

    assert config["tree_builder"]["minsplit"] == 3
    assert config["tree_builder"]["max_depth"] == 62
    assert DEFAULT_CONFIG["tree_builder"]["minsplit"] == 10


def test_broken_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{broken")
    assert load_configuration(path) == DEFAULT_CONFIG


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = merge_configs(DEFAULT_CONFIG, {"forest": {"number_of_trees": 5}})
    assert save_configuration(config, path)
    assert load_configuration(path)["forest"]["number_of_trees"] == 5


def test_merge_does_not_modify_inputs():
    user = {"engine": {"n_jobs": 4}}
    merged = merge_configs(DEFAULT_CONFIG, user)
    assert merged["engine"]["n_jobs"] == 4
    assert DEFAULT_CONFIG["engine"]["n_jobs"] == 1
    assert user == {"engine": {"n_jobs": 4}}


def test_validate_replaces_invalid_values():
    config = merge_configs(DEFAULT_CONFIG, {
        "tree_builder": {"minsplit": -1, "delimiter": ";;"},
        "engine": {"backend": "spark", "n_jobs": 0},
        "logging": {"level": "LOUD"}
    })

    assert not validate_configuration(config)
    assert config["tree_builder"]["minsplit"] == 10
    assert config["tree_builder"]["delimiter"] == ","
    assert config["engine"]["backend"] == "threading"
    assert config["engine"]["n_jobs"] == 1
    assert config["logging"]["level"] == "INFO"


def test_defaults_are_valid():
    assert validate_configuration(merge_configs(DEFAULT_CONFIG, {}))


def test_dotted_access():
    config = {}
    assert set_config_value(config, "tree_builder.max_depth", 5)
    assert get_config_value(config, "tree_builder.max_depth") == 5
    assert get_config_value(config, "tree_builder.missing", "x") == "x"
    assert get_config_value(config, "tree_builder.max_depth.deeper") is None
