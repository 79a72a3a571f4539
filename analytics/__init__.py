#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Analytics Module for Treelib
Evaluation of tree and forest predictions
"""

from .evaluation import Evaluation

__all__ = ['Evaluation']
