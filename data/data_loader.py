#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Data Loader Module for Treelib
Turns files and DataFrames into partitioned datasets of delimited lines
"""

import logging
from typing import Dict, List, Tuple, Optional, Union, Any
from pathlib import Path

import pandas as pd

from engine.execution_engine import ExecutionEngine, PartitionedDataset
from models.errors import DataError

logger = logging.getLogger(__name__)


class DataLoader:
    """Class for loading raw training and testing data"""

    def __init__(self, config: Dict[str, Any] = None, engine: Optional[ExecutionEngine] = None):
        """Initialize DataLoader with configuration"""
        self.config = config or {}
        self.engine = engine or ExecutionEngine(self.config)
        self.delimiter = self.config.get('tree_builder', {}).get('delimiter', ',')

    def load_file(self, file_path: Union[str, Path], num_partitions: Optional[int] = None,
                  header: bool = False) -> Tuple[PartitionedDataset, Dict[str, Any]]:
        """
        Load a delimited text file, or every file of a directory

        Args:
            file_path: File or directory
            num_partitions: Number of partitions
            header: Whether the first line holds column names (files only)

        Returns:
            Tuple containing:
                - Dataset of raw lines
                - Metadata dictionary (path, records, column names)

        Raises:
            FileNotFoundError: if the path does not exist
            DataError: if no record was found
        """
        file_path = Path(file_path)

        if header:
            df = pd.read_csv(file_path, sep=self.delimiter, dtype=str, keep_default_na=False)
            dataset = self.from_dataframe(df, num_partitions)
            columns = [str(c) for c in df.columns]
        else:
            dataset = self.engine.load(file_path, num_partitions)
            columns = None

        records = dataset.count()
        if records == 0:
            raise DataError(f"No record found in {file_path}")

        metadata = {'path': str(file_path), 'records': records, 'columns': columns,
                    'partitions': dataset.num_partitions}

        logger.info(f"Successfully loaded dataset '{file_path.stem}' with {records} records")
        return dataset, metadata

    def from_dataframe(self, df: pd.DataFrame, num_partitions: Optional[int] = None) -> PartitionedDataset:
        """
        Convert a DataFrame into a dataset of delimited lines (no header)

        Args:
            df: Data, one column per feature
            num_partitions: Number of partitions

        Returns:
            Dataset of raw lines
        """
        lines = [self.delimiter.join('' if pd.isna(v) else str(v) for v in row)
                 for row in df.itertuples(index=False, name=None)]
        return self.engine.parallelize(lines, num_partitions, name="dataframe")

    def target_values(self, dataset: PartitionedDataset, target_index: int = -1) -> PartitionedDataset:
        """Dataset of the raw target field of every line, aligned with the input"""
        delimiter = self.delimiter
        return self.engine.map_records(dataset, lambda line: line.split(delimiter)[target_index].strip())

    def to_dataframe(self, dataset: PartitionedDataset, columns: Optional[List[str]] = None) -> pd.DataFrame:
        """Collect a dataset of lines into a DataFrame of strings"""
        delimiter = self.delimiter
        rows = [line.split(delimiter) for line in dataset.collect()]
        return pd.DataFrame(rows, columns=columns)
