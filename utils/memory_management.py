#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Memory Management Utilities for Treelib
Reports memory usage while datasets are pinned in memory
"""

import logging
import gc
import os
import sys
from typing import Any, Dict

import psutil

logger = logging.getLogger(__name__)


def get_system_memory_info() -> Dict[str, float]:
    """
    Get system memory information

    Returns:
        Dictionary with memory information in GB:
            - total: Total physical memory
            - available: Available memory
            - used: Used memory
            - percent: Percentage of memory used
    """
    memory = psutil.virtual_memory()

    return {
        'total': memory.total / (1024 ** 3),
        'available': memory.available / (1024 ** 3),
        'used': memory.used / (1024 ** 3),
        'percent': memory.percent
    }


def get_process_memory_usage() -> float:
    """Resident memory of the current process in MB"""
    return psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024)


def monitor_memory_usage(threshold_percent: float = 80.0) -> bool:
    """
    Monitor memory usage and log warnings if it exceeds the threshold

    Args:
        threshold_percent: Percentage threshold to trigger warning

    Returns:
        True if memory usage is below threshold, False otherwise
    """
    memory_info = get_system_memory_info()

    if memory_info['percent'] > threshold_percent:
        logger.warning(f"High memory usage: {memory_info['percent']:.1f}% "
                       f"({memory_info['used']:.1f} GB / {memory_info['total']:.1f} GB)")
        gc.collect()
        return False

    logger.debug(f"Memory usage {memory_info['percent']:.1f}%, process {get_process_memory_usage():.1f} MB")
    return True


def get_object_memory_usage(partitions: Dict[int, Any]) -> float:
    """
    Approximate size of cached partitions in MB

    Args:
        partitions: Mapping partition index -> list of records

    Returns:
        Shallow size of the lists and their records in megabytes
    """
    total = 0
    for rows in partitions.values():
        total += sys.getsizeof(rows)
        total += sum(sys.getsizeof(row) for row in rows)
    return total / (1024 * 1024)
