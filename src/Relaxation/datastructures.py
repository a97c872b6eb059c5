"""Data structures for solver configuration, partitions and results.

Architecture: 2x2 matrix of Params vs Metrics × Global vs Local

                 Params (input/config)         Metrics (output/results)
                 ─────────────────────         ────────────────────────
Global           GlobalParams                  GlobalMetrics
(same across     N, precision, solver,         wall_time, mlups,
workers / agg)   n_workers, kernel...          converged, iterations...

Local            CellRange / RowBlock          LocalMetrics
(per-worker)     start, count, halo...         compute_times[],
                                               exchange_times[]...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple


# ============================================================================
# Logging
# ============================================================================


class LogLevel(IntEnum):
    """Diagnostic verbosity, lowest is most verbose."""

    ALL = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    NONE = 5

    def to_logging(self) -> int:
        """Map onto a standard ``logging`` level."""
        return {
            LogLevel.ALL: 5,
            LogLevel.DEBUG: logging.DEBUG,
            LogLevel.INFO: logging.INFO,
            LogLevel.WARN: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
            LogLevel.NONE: logging.CRITICAL + 10,
        }[self]


# ============================================================================
# Global (identical across workers, or aggregated by the coordinator)
# ============================================================================


@dataclass
class GlobalParams:
    """Run configuration - validated by Hydra, logged to MLflow as params.

    Immutable configuration set before the run. Identical across all workers.
    """

    # Required
    N: int
    precision: float

    # Solver
    solver: str = "threads"  # "serial" | "threads" | "mpi"
    kernel: str = "numpy"  # "numpy" | "numba"
    max_iter: Optional[int] = None  # None = run until converged

    # Parallelization
    n_workers: int = 1  # threads, or MPI world size

    # Initial interior
    interior: str = "zeros"  # "zeros" | "random"
    seed: int = 42

    log_level: int = int(LogLevel.NONE)

    # Experiment tracking
    experiment_name: str = "default"

    # Auto-detected at runtime (not from config)
    environment: str = field(init=False)
    n_interior: int = field(init=False)

    def __post_init__(self):
        """Compute derived values after initialization."""
        self.n_interior = max(self.N - 2, 0) ** 2
        self.environment = (
            "hpc"
            if os.environ.get("LSB_JOBID") or os.environ.get("SLURM_JOB_ID")
            else "local"
        )

    def to_mlflow(self) -> dict:
        """Convert to MLflow-compatible params dict (None dropped, derived excluded)."""
        exclude = {"n_interior"}
        return {
            k: (int(v) if isinstance(v, bool) else v)
            for k, v in self.__dict__.items()
            if k not in exclude and v is not None
        }


@dataclass
class GlobalMetrics:
    """Aggregated results - logged to MLflow as metrics.

    Final results computed on the coordinating thread / rank 0.
    """

    converged: bool = False
    iterations: int = 0
    wall_time: Optional[float] = None

    # Timing breakdown (sum across all iterations)
    total_compute_time: Optional[float] = None
    total_exchange_time: Optional[float] = None

    # Performance metrics
    mlups: Optional[float] = None  # Million Lattice Updates per Second

    # Workers actually used (after clamping)
    n_workers: Optional[int] = None

    def to_mlflow(self) -> dict:
        """Convert to MLflow-compatible dict (no None, bools as int)."""
        return {
            k: (int(v) if isinstance(v, bool) else v)
            for k, v in self.__dict__.items()
            if v is not None
        }


# ============================================================================
# Local (per-worker / per-iteration)
# ============================================================================


@dataclass
class LocalMetrics:
    """Per-iteration timeseries, accumulated during solve, logged post-solve."""

    compute_times: List[float] = field(default_factory=list)
    exchange_times: List[float] = field(default_factory=list)

    # Workers that had not yet reached precision, per iteration
    unconverged_history: List[int] = field(default_factory=list)

    def clear(self):
        """Clear all timeseries data."""
        self.compute_times.clear()
        self.exchange_times.clear()
        self.unconverged_history.clear()


# ============================================================================
# Partitions
# ============================================================================


@dataclass(frozen=True)
class CellRange:
    """A contiguous run of interior cells owned by one worker.

    ``start`` is a row-major index into the (N-2) x (N-2) interior, so cell
    ``c`` lives at grid position ``(c // (N-2) + 1, c % (N-2) + 1)``.
    """

    worker: int
    start: int
    count: int

    @property
    def stop(self) -> int:
        return self.start + self.count

    def first_cell(self, width: int) -> Tuple[int, int]:
        """Grid coordinates of the first owned cell."""
        row, col = divmod(self.start, width)
        return row + 1, col + 1

    def blocks(self, width: int) -> List[Tuple[int, int, int, int]]:
        """Split the run into rectangular blocks ``(i0, i1, j0, j1)``.

        At most three blocks are produced: a partial head row, a block of
        full rows and a partial tail row. Bounds are in grid coordinates and
        half-open.
        """
        blocks = []
        remaining = self.count
        if remaining <= 0 or width <= 0:
            return blocks

        row, col = divmod(self.start, width)

        if col:
            stop = min(width, col + remaining)
            blocks.append((row + 1, row + 2, col + 1, stop + 1))
            remaining -= stop - col
            row += 1

        full, tail = divmod(remaining, width)
        if full:
            blocks.append((row + 1, row + 1 + full, 1, width + 1))
            row += full
        if tail:
            blocks.append((row + 1, row + 2, 1, tail + 1))

        return blocks


@dataclass(frozen=True)
class RowBlock:
    """Owned global rows ``[start, start + count)`` of one rank, plus halo.

    The halo is the row directly above and below the owned range. It is
    always present, even when it is a global boundary row.
    """

    rank: int
    start: int
    count: int

    @property
    def stop(self) -> int:
        return self.start + self.count

    @property
    def halo_start(self) -> int:
        return self.start - 1

    @property
    def halo_count(self) -> int:
        return self.count + 2


@dataclass(frozen=True)
class ScatterLayout:
    """Counts and displacements (in float64 elements) for Scatterv/Gatherv.

    Scatter sends each rank its owned rows plus both halo rows; gather
    returns only the owned rows.
    """

    scatter_counts: Tuple[int, ...]
    scatter_displs: Tuple[int, ...]
    gather_counts: Tuple[int, ...]
    gather_displs: Tuple[int, ...]

    @classmethod
    def from_blocks(cls, blocks, N: int) -> "ScatterLayout":
        return cls(
            scatter_counts=tuple(b.halo_count * N for b in blocks),
            scatter_displs=tuple(b.halo_start * N for b in blocks),
            gather_counts=tuple(b.count * N for b in blocks),
            gather_displs=tuple(b.start * N for b in blocks),
        )
