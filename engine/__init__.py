#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Engine Module for Treelib
Local data-parallel execution of partitioned datasets
"""

from .execution_engine import ExecutionEngine, PartitionedDataset

__all__ = ['ExecutionEngine', 'PartitionedDataset']
