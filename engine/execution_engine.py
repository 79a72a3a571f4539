#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Execution Engine Module for Treelib
Runs data-parallel transformations over partitioned record sets.

Datasets are lazy: transformations only record what to do and every action
(collect, count, group_and_aggregate, ...) evaluates the partitions with
joblib. A cached dataset keeps each partition once it has been computed.
"""

import logging
import math
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed

from utils.memory_management import get_object_memory_usage, monitor_memory_usage

logger = logging.getLogger(__name__)


class PartitionedDataset:
    """A lazily evaluated record set split into partitions"""

    def __init__(self, engine: 'ExecutionEngine', num_partitions: int,
                 compute: Callable[[int], List[Any]], name: Optional[str] = None):
        """
        Initialize the dataset

        Args:
            engine: Engine which evaluates the partitions
            num_partitions: Number of partitions
            compute: Function returning the records of one partition
            name: Name used in log messages
        """
        self.engine = engine
        self.num_partitions = num_partitions
        self._compute = compute
        self.name = name or "dataset"
        self.is_cached = False
        self._cache: Dict[int, List[Any]] = {}

    def partition(self, index: int) -> List[Any]:
        """Records of one partition"""
        if self.is_cached:
            if index not in self._cache:
                self._cache[index] = self._compute(index)
            return self._cache[index]
        return self._compute(index)

    # transformations

    def map_partitions(self, fn: Callable[[List[Any]], Iterable[Any]],
                       name: Optional[str] = None) -> 'PartitionedDataset':
        parent = self
        return PartitionedDataset(self.engine, self.num_partitions,
                                  lambda i: list(fn(parent.partition(i))),
                                  name or f"{self.name}.map_partitions")

    def map(self, fn: Callable[[Any], Any]) -> 'PartitionedDataset':
        return self.map_partitions(lambda rows: [fn(row) for row in rows], f"{self.name}.map")

    def filter(self, predicate: Callable[[Any], bool]) -> 'PartitionedDataset':
        return self.map_partitions(lambda rows: [row for row in rows if predicate(row)],
                                   f"{self.name}.filter")

    def sample(self, with_replacement: bool = True, fraction: float = 1.0,
               seed: Optional[int] = None) -> 'PartitionedDataset':
        """
        Random sample of the records, drawn independently in each partition

        With replacement every partition keeps its size times fraction
        (bootstrap); without it each record is kept with probability fraction.
        """
        parent = self

        def draw(index: int) -> List[Any]:
            rows = parent.partition(index)
            rng = np.random.default_rng(None if seed is None else [seed, index])
            if not rows:
                return []
            if with_replacement:
                size = int(round(len(rows) * fraction))
                return [rows[i] for i in rng.integers(0, len(rows), size=size)]
            keep = rng.random(len(rows)) < fraction
            return [row for row, kept in zip(rows, keep) if kept]

        return PartitionedDataset(self.engine, self.num_partitions, draw, f"{self.name}.sample")

    # caching

    def cache(self) -> 'PartitionedDataset':
        self.engine.cache(self)
        return self

    def unpersist(self) -> 'PartitionedDataset':
        self.engine.uncache(self)
        return self

    # actions

    def collect_partitions(self) -> List[List[Any]]:
        return self.engine.run_partitions(self, lambda rows: rows)

    def collect(self) -> List[Any]:
        return [row for rows in self.collect_partitions() for row in rows]

    def count(self) -> int:
        return sum(self.engine.run_partitions(self, len))

    def take(self, n: int) -> List[Any]:
        """First n records, reading partitions in order until enough are found"""
        taken = []
        for index in range(self.num_partitions):
            if len(taken) >= n:
                break
            taken.extend(self.partition(index)[:n - len(taken)])
        return taken

    def first(self) -> Optional[Any]:
        rows = self.take(1)
        return rows[0] if rows else None

    def is_empty(self) -> bool:
        return not self.take(1)

    def __repr__(self) -> str:
        return f"PartitionedDataset(name={self.name}, partitions={self.num_partitions}, cached={self.is_cached})"


class ExecutionEngine:
    """Local, partition-parallel execution engine backed by joblib"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize the engine

        Args:
            config: Configuration dictionary (reads the 'engine' section)
        """
        self.config = config or {}
        engine_config = self.config.get('engine', {})

        self.n_jobs = engine_config.get('n_jobs', 1)
        self.backend = engine_config.get('backend', 'threading')
        self.default_partitions = max(1, engine_config.get('default_partitions', 2))
        self.memory_warning_threshold = engine_config.get('memory_warning_threshold', 80.0)

        logger.info(f"Execution engine initialized: n_jobs={self.n_jobs}, backend={self.backend}, "
                    f"default_partitions={self.default_partitions}")

    def run_partitions(self, dataset: PartitionedDataset,
                       fn: Callable[[List[Any]], Any]) -> List[Any]:
        """Apply fn to every partition of a dataset, one result per partition in order"""
        if dataset.num_partitions == 0:
            return []

        if self.n_jobs == 1 or dataset.num_partitions == 1:
            return [fn(dataset.partition(i)) for i in range(dataset.num_partitions)]

        return Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(_apply_to_partition)(dataset, i, fn) for i in range(dataset.num_partitions)
        )

    def parallelize(self, records: Sequence[Any], num_partitions: Optional[int] = None,
                    name: Optional[str] = None) -> PartitionedDataset:
        """
        Split an in-memory sequence into contiguous partitions

        Args:
            records: Records to distribute
            num_partitions: Number of partitions (default from config)
            name: Dataset name

        Returns:
            PartitionedDataset
        """
        records = list(records)
        num_partitions = max(1, num_partitions or self.default_partitions)
        size = max(1, math.ceil(len(records) / num_partitions)) if records else 1
        chunks = [records[i * size:(i + 1) * size] for i in range(num_partitions)]
        return PartitionedDataset(self, num_partitions, lambda i: list(chunks[i]), name or "parallelized")

    def load(self, path: Union[str, Path], num_partitions: Optional[int] = None) -> PartitionedDataset:
        """
        Read a text file (or every file of a directory) as a dataset of lines

        Empty lines are skipped and line endings removed.

        Args:
            path: File or directory
            num_partitions: Number of partitions

        Returns:
            PartitionedDataset of lines
        """
        path = Path(path)

        if path.is_dir():
            files = sorted(p for p in path.iterdir() if p.is_file() and not p.name.startswith('.'))
        elif path.exists():
            files = [path]
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")

        lines = []
        for file_path in files:
            with open(file_path, 'r', encoding='utf-8') as f:
                lines.extend(line.rstrip('\r\n') for line in f if line.strip())

        logger.info(f"Loaded {len(lines)} lines from {len(files)} file(s) under {path}")
        return self.parallelize(lines, num_partitions, name=path.name)

    def map_records(self, dataset: PartitionedDataset, fn: Callable[[Any], Any]) -> PartitionedDataset:
        return dataset.map(fn)

    def group_and_aggregate(self, dataset: PartitionedDataset,
                            key_fn: Callable[[Any], Any],
                            create_combiner: Callable[[Any], Any],
                            merge_value: Callable[[Any, Any], Any],
                            merge_combiners: Callable[[Any, Any], Any]) -> Dict[Any, Any]:
        """
        Group records by key and fold each group into one aggregate

        Every partition is combined locally, then the partial aggregates are
        merged by key. Records whose key is None are dropped.

        Args:
            dataset: Records to aggregate
            key_fn: Key of a record
            create_combiner: New aggregate for a key, given its first record
            merge_value: Fold one more record into an aggregate
            merge_combiners: Merge two aggregates of the same key

        Returns:
            Mapping key -> aggregate
        """
        def combine_partition(rows: List[Any]) -> Dict[Any, Any]:
            combined = {}
            for row in rows:
                key = key_fn(row)
                if key is None:
                    continue
                if key in combined:
                    combined[key] = merge_value(combined[key], row)
                else:
                    combined[key] = create_combiner(row)
            return combined

        result: Dict[Any, Any] = {}
        for partial in self.run_partitions(dataset, combine_partition):
            for key, aggregate in partial.items():
                if key in result:
                    result[key] = merge_combiners(result[key], aggregate)
                else:
                    result[key] = aggregate
        return result

    def zip_partitions(self, datasets: Sequence[PartitionedDataset],
                       fn: Callable[[tuple], Any]) -> PartitionedDataset:
        """
        Combine aligned datasets record by record

        All datasets must have the same partitioning and partition sizes.
        """
        if not datasets:
            raise ValueError("zip_partitions needs at least one dataset")

        num_partitions = datasets[0].num_partitions
        if any(d.num_partitions != num_partitions for d in datasets):
            raise ValueError("Can not zip datasets with different numbers of partitions")

        def zipped(index: int) -> List[Any]:
            partitions = [d.partition(index) for d in datasets]
            if len({len(p) for p in partitions}) > 1:
                raise ValueError(f"Partition {index} has different sizes across zipped datasets")
            return [fn(rows) for rows in zip(*partitions)]

        return PartitionedDataset(self, num_partitions, zipped, "zipped")

    def cache(self, dataset: PartitionedDataset):
        if not dataset.is_cached:
            dataset.is_cached = True
            monitor_memory_usage(self.memory_warning_threshold)
            logger.debug(f"Cached {dataset}")

    def uncache(self, dataset: PartitionedDataset):
        if dataset.is_cached:
            size_mb = get_object_memory_usage(dataset._cache)
            dataset.is_cached = False
            dataset._cache = {}
            logger.debug(f"Released {dataset} ({size_mb:.2f} MB)")


def _apply_to_partition(dataset: PartitionedDataset, index: int, fn: Callable[[List[Any]], Any]) -> Any:
    return fn(dataset.partition(index))
