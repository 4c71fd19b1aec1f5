import numpy as np
import pytest

from infosift import Broadcast, ExecutionConfig, PartitionedDataset


def _records(n_keys=4, per_key=5, seed=0):
    rng = np.random.default_rng(seed)
    return [(k, rng.integers(0, 10, size=(2, 3))) for k in range(n_keys) for _ in range(per_key)]


def test_from_records_round_robin():
    ds = PartitionedDataset.from_records(range(10), n_partitions=3)

    assert ds.n_partitions == 3
    assert [len(p) for p in ds.partitions] == [4, 3, 3]
    assert ds.count() == 10


def test_from_records_rejects_zero_partitions():
    with pytest.raises(ValueError, match="n_partitions"):
        PartitionedDataset.from_records([(0, 1)], n_partitions=0)


def test_map_values_and_filter_keep_keys():
    ds = PartitionedDataset.from_records([(k, k * 10) for k in range(6)], n_partitions=2)

    mapped = ds.map_values(lambda v: v + 1).filter(lambda r: r[0] % 2 == 0)

    assert mapped.collect_as_map() == {0: 1, 2: 21, 4: 41}
    assert ds.collect_as_map()[2] == 20


@pytest.mark.parametrize("n_partitions", [1, 2, 3, 7])
@pytest.mark.parametrize("n_jobs", [1, 2])
def test_reduce_by_key_independent_of_partitioning(n_partitions, n_jobs):
    records = _records()
    expected = {}
    for k, v in records:
        expected[k] = expected.get(k, 0) + v

    ds = PartitionedDataset.from_records(
        records, n_partitions=n_partitions, config=ExecutionConfig(n_jobs=n_jobs)
    )
    reduced = ds.reduce_by_key(np.add).collect_as_map()

    assert sorted(reduced) == sorted(expected)
    for k in expected:
        np.testing.assert_array_equal(reduced[k], expected[k])


def test_reduce_by_key_does_not_modify_source():
    records = [(0, np.ones(3, dtype=np.int64)), (0, np.ones(3, dtype=np.int64))]
    ds = PartitionedDataset.from_records(records, n_partitions=1)

    ds.reduce_by_key(np.add)

    for _, v in ds.collect():
        np.testing.assert_array_equal(v, np.ones(3))


def test_collect_as_map_rejects_duplicates():
    ds = PartitionedDataset.from_records([(1, "a"), (1, "b")], n_partitions=2)

    with pytest.raises(ValueError, match="Duplicate key"):
        ds.collect_as_map()


def test_lookup_returns_all_values():
    ds = PartitionedDataset.from_records([(1, "a"), (2, "b"), (1, "c")], n_partitions=2)

    assert sorted(ds.lookup(1)) == ["a", "c"]
    assert ds.lookup(3) == []


def test_map_partitions_propagates_errors():
    ds = PartitionedDataset.from_records(
        [(k, k) for k in range(4)], n_partitions=2, config=ExecutionConfig(n_jobs=2)
    )

    def fail(it):
        raise ValueError("bad partition")

    with pytest.raises(ValueError, match="bad partition"):
        ds.map_partitions(fail)


class TestBroadcast:
    def test_array_snapshot_is_read_only(self):
        source = np.arange(5)
        b = Broadcast(source)

        with pytest.raises(ValueError):
            b.value[0] = 10

        source[0] = 99
        assert b.value[0] == 0
        assert source.flags.writeable

    def test_mapping_snapshot_is_read_only(self):
        b = Broadcast({"a": np.zeros(2), "b": [1, 2]})

        with pytest.raises(TypeError):
            b.value["c"] = 1
        with pytest.raises(ValueError):
            b.value["a"][0] = 1.0
        assert b.value["b"] == (1, 2)

    def test_dataset_broadcast(self):
        ds = PartitionedDataset.from_records([(0, 1)])
        b = ds.broadcast({1: 2})

        assert isinstance(b, Broadcast)
        assert b.value[1] == 2
