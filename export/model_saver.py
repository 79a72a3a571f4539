#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Model Saver Module for Treelib
Saves and loads tree models and forests as JSON snapshots
"""

import os
import json
import logging
from typing import Dict, Optional, Any
from datetime import datetime

from models.tree_model import TreeModel
from utils.serialization_utils import safe_json_dump

logger = logging.getLogger(__name__)


class ModelSaver:
    """Class for saving decision tree models and forests"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize the model saver

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}

        self.export_settings = self.config.get('export', {})
        self.include_metadata = self.export_settings.get('include_metadata', True)
        self.indent = self.export_settings.get('indent', 2)

    def _metadata(self) -> Dict[str, Any]:
        return {
            'created_by': 'Treelib',
            'version': self.config.get('application', {}).get('version', '1.0.0'),
            'timestamp': datetime.now().isoformat(),
            'format_version': '1.0'
        }

    def _write(self, data: Dict[str, Any], filepath: str) -> bool:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
        except OSError as e:
            logger.error(f"Can not create directory for {filepath}: {e}")
            return False

        if self.include_metadata:
            data['metadata'] = self._metadata()

        return safe_json_dump(data, filepath, indent=self.indent)

    def save_model(self, model: TreeModel, filepath: str) -> bool:
        """
        Save a tree model in JSON format

        Args:
            model: Tree model to save (complete or not)
            filepath: Path to save the model to

        Returns:
            True if the model was saved successfully, False otherwise
        """
        if self._write(model.to_dict(), filepath):
            logger.info(f"Model saved to {filepath} ({model.num_nodes} nodes, complete={model.is_complete})")
            return True

        logger.error(f"Could not save model to {filepath}")
        return False

    def save_forest(self, forest, filepath: str) -> bool:
        """
        Save a random forest in JSON format

        Args:
            forest: RandomForest to save
            filepath: Path to save the forest to

        Returns:
            True if the forest was saved successfully, False otherwise
        """
        if self._write(forest.to_dict(), filepath):
            logger.info(f"Forest of {forest.num_trees} trees saved to {filepath}")
            return True

        logger.error(f"Could not save forest to {filepath}")
        return False

    def _read(self, filepath: str) -> Optional[Any]:
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Model file not found: {filepath}")

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error reading JSON from {filepath}: {e}")
            return None

    def model_type(self, filepath: str) -> Optional[str]:
        """model_type recorded in a snapshot file, None if unreadable"""
        data = self._read(filepath)
        return data.get('model_type') if isinstance(data, dict) else None

    def load_model(self, filepath: str) -> Optional[TreeModel]:
        """
        Load a tree model from a JSON file

        Args:
            filepath: Path to load the model from

        Returns:
            Loaded model, or None if the file holds no valid model

        Raises:
            FileNotFoundError: if the file does not exist
        """
        data = self._read(filepath)
        if not isinstance(data, dict):
            logger.error(f"No tree model in {filepath}")
            return None

        try:
            model = TreeModel.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading model from {filepath}: {e}", exc_info=True)
            return None

        logger.info(f"Model loaded from {filepath}")
        return model

    def load_forest(self, filepath: str):
        """
        Load a random forest from a JSON file

        Args:
            filepath: Path to load the forest from

        Returns:
            Loaded RandomForest, or None if the file holds no valid forest
        """
        from models.random_forest import FOREST_MODEL_TYPE, RandomForest

        data = self._read(filepath)
        if not isinstance(data, dict) or data.get('model_type') != FOREST_MODEL_TYPE:
            logger.error(f"No random forest in {filepath}")
            return None

        try:
            forest = RandomForest.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading forest from {filepath}: {e}", exc_info=True)
            return None

        logger.info(f"Forest of {forest.num_trees} trees loaded from {filepath}")
        return forest
