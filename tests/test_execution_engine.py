import pytest

from engine.execution_engine import ExecutionEngine


def test_parallelize_keeps_order(engine):
    dataset = engine.parallelize(list(range(7)), 3)
    assert dataset.num_partitions == 3
    assert dataset.collect() == list(range(7))
    assert dataset.count() == 7
    assert dataset.take(4) == [0, 1, 2, 3]
    assert dataset.first() == 0


def test_empty_dataset(engine):
    dataset = engine.parallelize([])
    assert dataset.is_empty()
    assert dataset.first() is None
    assert dataset.count() == 0


def test_transformations_are_lazy(engine):
    calls = []

    def record(x):
        calls.append(x)
        return x * 2

    doubled = engine.parallelize([1, 2, 3]).map(record)
    assert calls == []
    assert doubled.filter(lambda x: x > 2).collect() == [4, 6]


def test_cache_computes_partitions_once(engine):
    calls = []
    dataset = engine.parallelize([1, 2, 3, 4]).map(lambda x: calls.append(x) or x)
    dataset.cache()
    dataset.collect()
    dataset.collect()
    assert len(calls) == 4

    dataset.unpersist()
    dataset.collect()
    assert len(calls) == 8
    assert not dataset.is_cached


def test_group_and_aggregate_drops_none_keys(engine):
    dataset = engine.parallelize(["a", "b", "a", "skip", "a", "b"], 3)
    counts = engine.group_and_aggregate(
        dataset,
        lambda x: None if x == "skip" else x,
        lambda x: 1,
        lambda total, x: total + 1,
        lambda left, right: left + right
    )
    assert counts == {"a": 3, "b": 2}


def test_sample_is_seeded(engine):
    dataset = engine.parallelize(list(range(20)), 2)
    first = dataset.sample(True, 1.0, seed=3).collect()
    second = dataset.sample(True, 1.0, seed=3).collect()
    assert first == second
    assert len(first) == 20
    assert set(first) <= set(range(20))

    kept = dataset.sample(False, 0.5, seed=3).collect()
    assert len(set(kept)) == len(kept)


def test_zip_partitions(engine):
    left = engine.parallelize([1, 2, 3])
    right = left.map(lambda x: x * 10)
    assert engine.zip_partitions([left, right], sum).collect() == [11, 22, 33]


def test_zip_partitions_rejects_different_partitioning(engine):
    with pytest.raises(ValueError):
        engine.zip_partitions([engine.parallelize([1, 2], 1), engine.parallelize([1, 2], 2)], sum)


def test_parallel_backend_matches_sequential():
    parallel = ExecutionEngine({"engine": {"n_jobs": 2, "default_partitions": 4}})
    dataset = parallel.parallelize(list(range(10)))
    assert dataset.map(lambda x: x + 1).collect() == list(range(1, 11))


def test_load_directory(engine, tmp_path):
    (tmp_path / "part-0.csv").write_text("a,1\nb,2\n")
    (tmp_path / "part-1.csv").write_text("\nc,3\n")
    (tmp_path / ".hidden").write_text("ignored\n")

    assert engine.load(tmp_path).collect() == ["a,1", "b,2", "c,3"]


def test_load_missing_path(engine, tmp_path):
    with pytest.raises(FileNotFoundError):
        engine.load(tmp_path / "missing.csv")
