#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Data Module for Treelib
Handles loading raw delimited data
"""

from .data_loader import DataLoader

__all__ = ['DataLoader']
