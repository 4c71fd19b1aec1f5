import numpy as np
import pytest

from infosift import PartitionedDataset, to_dense_dataset, to_sparse_dataset
from infosift.core.cardinality import resolve_cardinality_dense, resolve_cardinality_sparse
from infosift.histograms import (
    code_frequencies,
    dense_conditional_histograms,
    dense_histograms,
    lookup_dense_column,
    lookup_sparse_column,
    snapshot_sparse_column,
    sparse_conditional_histograms,
    sparse_histograms,
)


def _reference_2d(x, y, shape):
    counts = np.zeros(shape, dtype=np.int64)
    np.add.at(counts, (x.astype(np.int64), y.astype(np.int64)), 1)
    return counts


def _reference_3d(x, y, z, shape):
    counts = np.zeros(shape, dtype=np.int64)
    np.add.at(counts, (z.astype(np.int64), x.astype(np.int64), y.astype(np.int64)), 1)
    return counts


@pytest.fixture
def codes():
    """Mostly-zero codes: 300 instances, 5 features."""
    rng = np.random.default_rng(3)
    n, p = 300, 5
    values = rng.integers(1, 6, size=(n, p))
    mask = rng.random((n, p)) < 0.3
    return np.where(mask, values, 0).astype(np.uint8)


def _sparse_tables(codes, y, z=None, n_partitions=3):
    n = codes.shape[0]
    data = to_sparse_dataset(codes, n_partitions=n_partitions)
    card = resolve_cardinality_sparse(data)
    ycol = data.broadcast(snapshot_sparse_column(lookup_sparse_column(data, y), y, n, card.value[y]))
    if z is None:
        return card.value, sparse_histograms(data, ycol, card, n).collect_as_map()
    zcol = data.broadcast(snapshot_sparse_column(lookup_sparse_column(data, z), z, n, card.value[z]))
    return card.value, sparse_conditional_histograms(data, ycol, zcol, card, n).collect_as_map()


def _dense_tables(codes, y, z=None, block_size=64, n_partitions=3):
    n = codes.shape[0]
    data = to_dense_dataset(codes, block_size=block_size, n_partitions=n_partitions)
    card = resolve_cardinality_dense(data)
    ycol = data.broadcast(lookup_dense_column(data, y, n))
    if z is None:
        return card.value, dense_histograms(data, ycol, card).collect_as_map()
    zcol = data.broadcast(lookup_dense_column(data, z, n))
    return card.value, dense_conditional_histograms(data, ycol, zcol, card).collect_as_map()


class TestCodeFrequencies:
    def test_implicit_zeros_counted(self):
        freq = code_frequencies(np.array([1, 1, 2], dtype=np.uint8), n_instances=5, cardinality=3)
        np.testing.assert_array_equal(freq, [2, 2, 1])

    def test_explicit_zeros_do_not_hide_implicit_ones(self):
        freq = code_frequencies(np.array([0, 1], dtype=np.uint8), n_instances=4, cardinality=2)
        np.testing.assert_array_equal(freq, [3, 1])


class TestSparseHistograms:
    def test_small_example(self):
        # y = [0, 1, 1, 2, 0, 1], x = [2, 0, 1, 1, 0, 0]
        data = PartitionedDataset.from_records(
            [(0, {0: 2, 2: 1, 3: 1}), (1, {1: 1, 2: 1, 3: 2, 5: 1})],
            n_partitions=2,
        )
        card = resolve_cardinality_sparse(data)
        ycol = data.broadcast(snapshot_sparse_column(lookup_sparse_column(data, 1), 1, 6, card.value[1]))

        hist = sparse_histograms(data, ycol, card, 6).collect_as_map()

        expected = np.array([[1, 2, 0], [0, 1, 1], [1, 0, 0]])
        np.testing.assert_array_equal(hist[0], expected)
        np.testing.assert_array_equal(hist[1], np.diag([2, 3, 1]))

    def test_count_conservation(self, codes):
        n = codes.shape[0]
        _, hist = _sparse_tables(codes, y=4)

        for counts in hist.values():
            assert counts.sum() == n

    def test_matches_reference(self, codes):
        card, hist = _sparse_tables(codes, y=4)

        for j in range(codes.shape[1]):
            expected = _reference_2d(codes[:, j], codes[:, 4], (card[j], card[4]))
            np.testing.assert_array_equal(hist[j], expected)

    def test_instance_id_out_of_range(self):
        data = PartitionedDataset.from_records([(0, {0: 1, 9: 1}), (1, {1: 1})])
        card = resolve_cardinality_sparse(data)
        ycol = data.broadcast(snapshot_sparse_column(lookup_sparse_column(data, 1), 1, 5, card.value[1]))

        with pytest.raises(ValueError, match="instance ids"):
            sparse_histograms(data, ycol, card, 5)

    def test_unknown_column(self):
        data = PartitionedDataset.from_records([(0, {0: 1})])

        with pytest.raises(ValueError, match="No data found"):
            lookup_sparse_column(data, 3)


class TestSparseConditionalHistograms:
    def test_entries_only_in_y(self):
        # x = [1, 0, 0, 0], y = [0, 1, 2, 0], z = [0, 1, 1, 0]
        data = PartitionedDataset.from_records(
            [(0, {0: 1}), (1, {1: 1, 2: 2}), (2, {1: 1, 2: 1})],
            n_partitions=2,
        )
        card = resolve_cardinality_sparse(data)
        counter = card.value
        ycol = data.broadcast(snapshot_sparse_column(lookup_sparse_column(data, 1), 1, 4, counter[1]))
        zcol = data.broadcast(snapshot_sparse_column(lookup_sparse_column(data, 2), 2, 4, counter[2]))

        tensors = sparse_conditional_histograms(data, ycol, zcol, card, 4).collect_as_map()

        expected = _reference_3d(
            np.array([1, 0, 0, 0]), np.array([0, 1, 2, 0]), np.array([0, 1, 1, 0]), (2, 2, 3)
        )
        np.testing.assert_array_equal(tensors[0], expected)

    def test_count_conservation(self, codes):
        n = codes.shape[0]
        _, tensors = _sparse_tables(codes, y=3, z=4)

        for counts in tensors.values():
            assert counts.sum() == n

    def test_matches_reference(self, codes):
        card, tensors = _sparse_tables(codes, y=3, z=4)

        for j in range(codes.shape[1]):
            shape = (card[4], card[j], card[3])
            expected = _reference_3d(codes[:, j], codes[:, 3], codes[:, 4], shape)
            np.testing.assert_array_equal(tensors[j], expected)


class TestDenseHistograms:
    @pytest.mark.parametrize("block_size", [1, 64, 1000])
    def test_matches_reference(self, codes, block_size):
        n = codes.shape[0]
        card, hist = _dense_tables(codes, y=4, block_size=block_size)

        for j in range(codes.shape[1]):
            expected = _reference_2d(codes[:, j], codes[:, 4], (card[j], card[4]))
            np.testing.assert_array_equal(hist[j], expected)
            assert hist[j].sum() == n

    def test_conditional_matches_reference(self, codes):
        n = codes.shape[0]
        card, tensors = _dense_tables(codes, y=0, z=2)

        for j in range(codes.shape[1]):
            shape = (card[2], card[j], card[0])
            expected = _reference_3d(codes[:, j], codes[:, 0], codes[:, 2], shape)
            np.testing.assert_array_equal(tensors[j], expected)
            assert tensors[j].sum() == n

    def test_block_length_mismatch(self):
        data = PartitionedDataset.from_records(
            [
                (0, (0, np.array([0, 1, 1], dtype=np.uint8))),
                (1, (0, np.array([1, 0], dtype=np.uint8))),
            ]
        )
        card = resolve_cardinality_dense(data)
        ycol = data.broadcast(lookup_dense_column(data, 1))

        with pytest.raises(ValueError, match="conditioning column has"):
            dense_histograms(data, ycol, card)

    def test_missing_block(self):
        data = PartitionedDataset.from_records(
            [
                (0, (0, np.array([0, 1], dtype=np.uint8))),
                (0, (1, np.array([1, 1], dtype=np.uint8))),
                (1, (0, np.array([1, 0], dtype=np.uint8))),
            ]
        )
        card = resolve_cardinality_dense(data)
        ycol = data.broadcast(lookup_dense_column(data, 1))

        with pytest.raises(ValueError, match="block missing"):
            dense_histograms(data, ycol, card)

    def test_column_instance_count_checked(self, codes):
        data = to_dense_dataset(codes, block_size=100)

        with pytest.raises(ValueError, match="n_instances"):
            lookup_dense_column(data, 0, n_instances=codes.shape[0] + 1)


@pytest.mark.parametrize("y, z", [(4, None), (1, 4), (2, 2)])
def test_sparse_dense_tables_equal(codes, y, z):
    _, sparse_tables = _sparse_tables(codes, y=y, z=z, n_partitions=2)
    _, dense_tables = _dense_tables(codes, y=y, z=z, block_size=50, n_partitions=4)

    assert sorted(sparse_tables) == sorted(dense_tables)
    for j in sparse_tables:
        np.testing.assert_array_equal(sparse_tables[j], dense_tables[j])
