#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Utils Module for Treelib
Configuration, logging, serialization and memory helpers
"""

from .config import load_configuration, save_configuration, get_config_value, set_config_value
from .logging_utils import setup_logging
from .memory_management import monitor_memory_usage, get_system_memory_info

__all__ = [
    'load_configuration',
    'save_configuration',
    'get_config_value',
    'set_config_value',
    'setup_logging',
    'monitor_memory_usage',
    'get_system_memory_info'
]
