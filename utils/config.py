#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Configuration Module for Treelib
Handles loading, validating, and saving configuration
"""

import os
import copy
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "application": {
        "name": "Treelib",
        "version": "1.0.0",
        "log_dir": "logs"
    },

    "engine": {
        "n_jobs": 1,
        "backend": "threading",  # joblib backend: "threading", "loky"
        "default_partitions": 2,
        "memory_warning_threshold": 80.0  # Percentage of memory usage to trigger warning
    },

    "tree_builder": {
        "minsplit": 10,
        "threshold": 0.1,  # Coefficient of variation below which a node stops
        "max_depth": 62,
        "maximum_complexity": 0.001,
        "delimiter": ",",
        "use_cache": True,
        "use_random_subset_feature": False,
        "random_state": 42,
        "force_leaf_on_invalid_split": True,
        "checkpoint_path": None  # Model written here after every level
    },

    "forest": {
        "number_of_trees": 10,
        "use_bootstrap": True,
        "use_random_subset_feature": True,
        "random_state": 42,
        "n_jobs": 1
    },

    "export": {
        "include_metadata": True,
        "indent": 2
    },

    "logging": {
        "level": "INFO",
        "log_to_file": False,
        "max_bytes": 10 * 1024 * 1024,
        "backup_count": 5
    }
}


def get_config_path() -> Path:
    """
    Get the path to the default configuration file

    Returns:
        Path to config.json next to the packages
    """
    script_dir = Path(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    return script_dir / "config.json"


def load_configuration(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to defaults if not found

    Args:
        config_path: JSON file to read (default: get_config_path())

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path) if config_path else get_config_path()

    try:
        if config_path.exists():
            logger.info(f"Loading configuration from {config_path}")

            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)

            config = merge_configs(DEFAULT_CONFIG, user_config)
            logger.info("Configuration loaded successfully")
        else:
            logger.info("No configuration file found, using defaults")
            config = copy.deepcopy(DEFAULT_CONFIG)

        validate_configuration(config)
        return config

    except (OSError, ValueError) as e:
        logger.error(f"Error loading configuration: {str(e)}", exc_info=True)
        logger.warning("Falling back to default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)


def save_configuration(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save configuration to file

    Args:
        config: Configuration dictionary
        config_path: Destination (default: get_config_path())

    Returns:
        True if saved successfully, False otherwise
    """
    config_path = Path(config_path) if config_path else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except OSError as e:
        logger.error(f"Error saving configuration: {str(e)}", exc_info=True)
        return False


def merge_configs(default_config: Dict[str, Any], user_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge user configuration with defaults

    Args:
        default_config: Default configuration dictionary
        user_config: User configuration dictionary

    Returns:
        Merged configuration dictionary (neither input is modified)
    """
    merged = copy.deepcopy(default_config)

    for key, value in user_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def validate_configuration(config: Dict[str, Any]) -> bool:
    """
    Validate configuration values and log warnings for invalid settings

    Invalid values are replaced by their defaults.

    Args:
        config: Configuration dictionary

    Returns:
        True if all values are valid, False otherwise
    """
    valid = True

    for section, param, min_val, default in [
        ('tree_builder', 'minsplit', 0, 10),
        ('tree_builder', 'threshold', 0.0, 0.1),
        ('tree_builder', 'max_depth', 1, 62),
        ('tree_builder', 'maximum_complexity', 0.0, 0.001),
        ('tree_builder', 'random_state', 0, 42),
        ('forest', 'number_of_trees', 1, 10),
        ('forest', 'random_state', 0, 42),
        ('engine', 'default_partitions', 1, 2),
        ('engine', 'memory_warning_threshold', 1.0, 80.0)
    ]:
        section_config = config.setdefault(section, {})
        value = section_config.get(param)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < min_val:
            logger.warning(f"Invalid {section}.{param}: {value}, using {default} instead")
            section_config[param] = default
            valid = False

    builder_config = config['tree_builder']
    delimiter = builder_config.get('delimiter')
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        logger.warning(f"Invalid delimiter: {delimiter!r}, using ',' instead")
        builder_config['delimiter'] = ','
        valid = False

    engine_config = config['engine']
    if engine_config.get('backend') not in ['threading', 'loky', 'multiprocessing']:
        logger.warning(f"Invalid engine backend: {engine_config.get('backend')}, using 'threading' instead")
        engine_config['backend'] = 'threading'
        valid = False

    for section in ('engine', 'forest'):
        n_jobs = config[section].get('n_jobs', 1)
        if not isinstance(n_jobs, int) or n_jobs == 0:
            logger.warning(f"Invalid {section}.n_jobs: {n_jobs}, using 1 instead")
            config[section]['n_jobs'] = 1
            valid = False

    logging_config = config.setdefault('logging', {})
    if str(logging_config.get('level', '')).upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
        logger.warning(f"Invalid log level: {logging_config.get('level')}, using 'INFO' instead")
        logging_config['level'] = 'INFO'
        valid = False

    return valid


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a configuration value using dot notation for nested dictionaries

    Args:
        config: Configuration dictionary
        key_path: Key path using dot notation (e.g., 'tree_builder.max_depth')
        default: Default value if key not found

    Returns:
        Configuration value or default if not found
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def set_config_value(config: Dict[str, Any], key_path: str, value: Any) -> bool:
    """
    Set a configuration value using dot notation for nested dictionaries

    Args:
        config: Configuration dictionary
        key_path: Key path using dot notation (e.g., 'tree_builder.max_depth')
        value: Value to set

    Returns:
        True if successful, False otherwise
    """
    keys = key_path.split('.')
    target = config

    try:
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]

        target[keys[-1]] = value
        return True
    except TypeError as e:
        logger.error(f"Error setting config value {key_path}: {str(e)}")
        return False
