#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Export Module for Treelib
Handles persisting models and forests
"""

from .model_saver import ModelSaver

__all__ = ['ModelSaver']
