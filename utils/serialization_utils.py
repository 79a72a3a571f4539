#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Serialization Utilities for Treelib

Safe JSON serialization of numpy scalars and arrays, pandas objects, sets,
paths and timestamps found in model snapshots.
"""

import json
import logging
import numpy as np
import pandas as pd
from datetime import datetime, date
from enum import Enum
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger(__name__)


def make_json_serializable(obj: Any) -> Any:
    """
    Convert objects to JSON-serializable formats.

    Recursively converts numpy types, pandas objects, enums and sets (as
    sorted lists) to their JSON-compatible equivalents.

    Args:
        obj: Object to make JSON serializable

    Returns:
        JSON-serializable version of the object
    """
    if obj is None:
        return None

    if isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()

    elif isinstance(obj, Enum):
        return obj.value

    elif isinstance(obj, pd.Timestamp):
        return obj.isoformat()

    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()

    elif isinstance(obj, Path):
        return str(obj)

    elif isinstance(obj, pd.Series):
        return make_json_serializable(obj.to_dict())

    elif isinstance(obj, pd.DataFrame):
        return make_json_serializable(obj.to_dict('records'))

    elif isinstance(obj, dict):
        return {str(make_json_serializable(k)): make_json_serializable(v)
                for k, v in obj.items()}

    elif isinstance(obj, (list, tuple)):
        return [make_json_serializable(item) for item in obj]

    elif isinstance(obj, (set, frozenset)):
        return sorted((make_json_serializable(item) for item in obj), key=str)

    logger.warning(f"Serializing object of type {type(obj).__name__} as a string")
    return str(obj)


def safe_json_dump(obj: Any, file_path: Union[str, Path], indent: int = 2) -> bool:
    """
    Safely dump an object to JSON file with proper error handling.

    Args:
        obj: Object to serialize
        file_path: Path to output file
        indent: JSON indentation

    Returns:
        True if successful, False otherwise
    """
    try:
        serializable_obj = make_json_serializable(obj)

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(serializable_obj, f, indent=indent, ensure_ascii=False)

        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error writing JSON to {file_path}: {e}")
        return False
