"""Work partitioning of the grid interior.

Splits the interior either cell by cell (shared-memory threads) or row by
row (distributed ranks). Partitions are pure functions of the grid size and
the worker count: computed once before the first iteration and reused,
unchanged, for every iteration of a run.
"""

from __future__ import annotations

import logging

from .datastructures import CellRange, RowBlock, ScatterLayout
from .errors import InvalidWorkerCountError, OverPartitionedError

log = logging.getLogger(__name__)


def split_interior(n_units: int, n_parts: int) -> tuple[list[int], list[int]]:
    """Split n_units among n_parts workers.

    The first ``n_units % n_parts`` workers receive one extra unit.

    Returns
    -------
    counts : list of int
        Units owned by each worker.
    starts : list of int
        Offset of each worker's first unit (0-based).
    """
    if n_parts < 1:
        raise InvalidWorkerCountError(f"Worker count must be at least 1, got {n_parts}")
    if n_parts > n_units:
        raise OverPartitionedError(
            f"Cannot split {n_units} units among {n_parts} workers"
        )

    base, rem = divmod(n_units, n_parts)
    counts = [base + (1 if i < rem else 0) for i in range(n_parts)]
    starts = [0] * n_parts
    for i in range(1, n_parts):
        starts[i] = starts[i - 1] + counts[i - 1]
    return counts, starts


def partition(interior_cell_count: int, worker_count: int) -> tuple[tuple[int, int], ...]:
    """Generic ``(start, length)`` partition of a run of interior units."""
    counts, starts = split_interior(interior_cell_count, worker_count)
    return tuple(zip(starts, counts))


def partition_cells(N: int, n_workers: int) -> tuple[CellRange, ...]:
    """Cell-granular partition of the (N-2) x (N-2) interior."""
    n_cells = max(N - 2, 0) ** 2
    counts, starts = split_interior(n_cells, n_workers)
    ranges = tuple(CellRange(worker=i, start=s, count=c)
                   for i, (s, c) in enumerate(zip(starts, counts)))

    if log.isEnabledFor(logging.DEBUG):
        width = N - 2
        log.debug(f"Total inner cells: {n_cells}")
        for r in ranges:
            log.debug(f"Worker {r.worker} will compute {r.count} cells "
                      f"starting at {r.first_cell(width)}")
    return ranges


def partition_rows(N: int, n_ranks: int) -> tuple[RowBlock, ...]:
    """Row-granular partition of interior rows 1..N-2 (halo implied)."""
    counts, starts = split_interior(max(N - 2, 0), n_ranks)
    blocks = tuple(RowBlock(rank=i, start=s + 1, count=c)
                   for i, (s, c) in enumerate(zip(starts, counts)))

    if log.isEnabledFor(logging.DEBUG):
        for b in blocks:
            log.debug(f"Rank {b.rank}: rows [{b.start}, {b.stop}), "
                      f"halo rows {b.halo_start} and {b.stop}")
    return blocks


def scatter_layout(N: int, n_ranks: int) -> ScatterLayout:
    """Scatterv/Gatherv counts and displacements for a row partition."""
    return ScatterLayout.from_blocks(partition_rows(N, n_ranks), N)
