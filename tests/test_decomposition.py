"""Tests for work partitioning."""

import numpy as np
import pytest

from Relaxation import (
    CellRange,
    InvalidWorkerCountError,
    OverPartitionedError,
    partition,
    partition_cells,
    partition_rows,
    split_interior,
)
from Relaxation.decomposition import scatter_layout


class TestSplitInterior:
    """Generic (start, length) partition."""

    def test_example_four_cells_three_workers(self):
        assert partition(4, 3) == ((0, 2), (2, 1), (3, 1))

    def test_exact_division(self):
        assert partition(9, 3) == ((0, 3), (3, 3), (6, 3))

    def test_single_worker_owns_everything(self):
        assert partition(25, 1) == ((0, 25),)

    def test_one_unit_per_worker(self):
        assert partition(4, 4) == ((0, 1), (1, 1), (2, 1), (3, 1))

    @pytest.mark.parametrize("n_units,n_parts", [(10, 3), (100, 7), (64, 8), (5, 5), (1000, 33)])
    def test_coverage_and_balance(self, n_units, n_parts):
        """Contiguous, disjoint, complete, lengths differ by at most one."""
        parts = partition(n_units, n_parts)
        assert len(parts) == n_parts

        expected_start = 0
        for start, length in parts:
            assert start == expected_start
            expected_start += length
        assert expected_start == n_units

        lengths = [length for _, length in parts]
        assert max(lengths) - min(lengths) <= 1

    def test_remainder_goes_to_first_workers(self):
        counts, _ = split_interior(11, 4)
        assert counts == [3, 3, 3, 2]

    def test_deterministic(self):
        assert partition(1234, 17) == partition(1234, 17)

    @pytest.mark.parametrize("n_parts", [0, -2])
    def test_non_positive_workers_rejected(self, n_parts):
        with pytest.raises(InvalidWorkerCountError):
            split_interior(10, n_parts)

    def test_more_workers_than_units_rejected(self):
        with pytest.raises(OverPartitionedError):
            split_interior(3, 4)

    def test_no_units_rejected(self):
        with pytest.raises(OverPartitionedError):
            split_interior(0, 1)


class TestPartitionCells:
    """Cell-granular partition for worker threads."""

    def test_worker_ids_and_totals(self):
        ranges = partition_cells(6, 3)
        assert [r.worker for r in ranges] == [0, 1, 2]
        assert sum(r.count for r in ranges) == 16

    @pytest.mark.parametrize("N,W", [(5, 2), (7, 4), (10, 7), (12, 100)])
    def test_every_interior_cell_owned_once(self, N, W):
        owned = np.zeros((N, N), dtype=int)
        for cells in partition_cells(N, W):
            for i0, i1, j0, j1 in cells.blocks(N - 2):
                owned[i0:i1, j0:j1] += 1

        assert np.all(owned[1:-1, 1:-1] == 1)
        assert owned[0, :].sum() == owned[-1, :].sum() == 0
        assert owned[:, 0].sum() == owned[:, -1].sum() == 0

    def test_first_cell_coordinates(self):
        # 3x3 interior split 5 / 4
        first, second = partition_cells(5, 2)
        assert first.first_cell(3) == (1, 1)
        assert second.first_cell(3) == (2, 3)


class TestCellRangeBlocks:
    """Splitting a cell run into rectangles."""

    def test_full_rows(self):
        assert CellRange(0, 0, 6).blocks(3) == [(1, 3, 1, 4)]

    def test_head_body_tail(self):
        # start mid-row 0, cover the rest of it, one full row, two cells of the next
        assert CellRange(0, 2, 6).blocks(3) == [(1, 2, 3, 4), (2, 3, 1, 4), (3, 4, 1, 3)]

    def test_within_single_row(self):
        assert CellRange(0, 4, 1).blocks(5) == [(1, 2, 5, 6)]

    def test_empty(self):
        assert CellRange(0, 0, 0).blocks(4) == []


class TestPartitionRows:
    """Row blocks for MPI ranks."""

    def test_rows_start_after_boundary(self):
        blocks = partition_rows(10, 3)
        assert [(b.start, b.count) for b in blocks] == [(1, 3), (4, 3), (7, 2)]
        assert blocks[-1].stop == 9

    def test_halo(self):
        block = partition_rows(10, 3)[1]
        assert block.halo_start == 3
        assert block.halo_count == 5

    def test_too_many_ranks(self):
        with pytest.raises(OverPartitionedError):
            partition_rows(5, 4)

    def test_scatter_layout(self):
        layout = scatter_layout(6, 2)
        # interior rows 1..4, two per rank
        assert layout.scatter_counts == (24, 24)
        assert layout.scatter_displs == (0, 12)
        assert layout.gather_counts == (12, 12)
        assert layout.gather_displs == (6, 18)
