"""Base class for relaxation solvers."""

import logging
import time
import warnings
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Optional

import numpy as np
import pandas as pd

from ..datastructures import GlobalMetrics, GlobalParams, LocalMetrics, LogLevel
from ..grid import (allocate_like, initialize_grid, validate_interior, validate_precision,
                    validate_size)
from ..kernels import create_kernel

log = logging.getLogger(__name__)


class BaseSolver(ABC):
    """Abstract base for all relaxation solvers.

    Provides common infrastructure for validation, kernel selection,
    initial grid construction, results tracking and I/O.

    Parameters
    ----------
    N : int
        Grid size (N x N including boundaries).
    precision : float
        Largest per-cell change still counted as converged.
    kernel : str
        'numpy' (default) or 'numba'.
    interior : str
        Initial interior, 'zeros' (default) or 'random'.
    seed : int
        Seed for the 'random' interior.
    max_iter : int, optional
        Stop (not converged) after this many iterations. None runs until
        convergence.
    initial_grid : np.ndarray, optional
        Explicit N x N starting grid, copied before use. Overrides
        ``interior``.
    log_level : int
        0 (ALL) .. 5 (NONE), recorded in ``config``.
    experiment_name : str
        MLflow experiment the run is logged under, recorded in ``config``.
    """

    def __init__(
        self,
        N: int,
        precision: float,
        kernel: str = "numpy",
        interior: str = "zeros",
        seed: int = 42,
        max_iter: Optional[int] = None,
        initial_grid: Optional[np.ndarray] = None,
        solver_name: str = "serial",
        n_workers: int = 1,
        log_level: int = int(LogLevel.NONE),
        experiment_name: str = "default",
    ):
        self.N = validate_size(N)
        self.precision = validate_precision(precision)
        if max_iter is not None and (isinstance(max_iter, bool) or max_iter < 1):
            raise ValueError(f"max_iter must be at least 1, got {max_iter!r}")
        self.max_iter = max_iter
        self.interior = validate_interior(interior)
        self.seed = seed

        if initial_grid is not None and np.shape(initial_grid) != (self.N, self.N):
            raise ValueError(f"initial_grid must have shape {(self.N, self.N)}, "
                             f"got {np.shape(initial_grid)}")
        self._initial_grid = initial_grid

        self.kernel = create_kernel(kernel, self.precision)

        self.config = GlobalParams(
            N=self.N,
            precision=self.precision,
            solver=solver_name,
            kernel=kernel,
            max_iter=max_iter,
            n_workers=n_workers,
            interior=interior,
            seed=seed,
            log_level=int(log_level),
            experiment_name=experiment_name,
        )

        # Metrics containers (match datastructures.py naming)
        self.metrics = GlobalMetrics(n_workers=n_workers)
        self.timeseries = LocalMetrics()

        # Final grid, set by solve()
        self.u: Optional[np.ndarray] = None

    @property
    def n_interior(self) -> int:
        return self.config.n_interior

    @abstractmethod
    def solve(self) -> GlobalMetrics:
        """Execute the solver. Returns results."""
        pass

    def warmup(self, warmup_size: int = 10):
        """Warmup kernel (trigger Numba JIT if used)."""
        self.kernel.warmup(warmup_size=warmup_size)

    def _make_initial_grid(self) -> np.ndarray:
        """Fresh starting grid; never shared between runs."""
        if self._initial_grid is not None:
            return allocate_like(np.asarray(self._initial_grid, dtype=np.float64))
        return initialize_grid(self.N, interior=self.interior, seed=self.seed)

    def _reset(self):
        """Clear results and timeseries from a previous solve."""
        self.metrics = GlobalMetrics(n_workers=self.metrics.n_workers)
        self.timeseries.clear()
        self.u = None

    def _get_time(self) -> float:
        """Get current time. Override for MPI timing."""
        return time.perf_counter()

    def _is_root(self) -> bool:
        """True if this rank holds the final grid and logs metrics. Override for MPI."""
        return True

    def _finalize(self, wall_time: float, u_solution: Optional[np.ndarray],
                  converged: bool, iterations: int):
        """Finalize results after solve."""
        self.u = u_solution
        self.metrics.converged = converged
        self.metrics.iterations = iterations
        self.metrics.wall_time = wall_time
        self.metrics.total_compute_time = sum(self.timeseries.compute_times)
        if self.timeseries.exchange_times:
            self.metrics.total_exchange_time = sum(self.timeseries.exchange_times)
        if wall_time > 0 and iterations > 0:
            self.metrics.mlups = self.n_interior * iterations / (wall_time * 1e6)

        if self._is_root():
            log.info(f"Done: {iterations} iter, converged={converged}, "
                     f"time={wall_time:.3f}s"
                     + (f", {self.metrics.mlups:.1f} Mlup/s" if self.metrics.mlups else ""))

    def save_hdf5(self, path: str) -> None:
        """Save config, results, timeseries and the final grid to HDF5 (root only)."""
        if not self._is_root():
            return

        # Combine config and results
        row = {**asdict(self.config), **asdict(self.metrics)}
        df_results = pd.DataFrame([row])

        # Convert string columns to avoid PyTables pickle warning
        for col in df_results.select_dtypes(include=['object']).columns:
            df_results[col] = df_results[col].astype(str)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.PerformanceWarning)
            df_results.to_hdf(path, key="results", mode="w", format="table")

            # Save timeseries data for per-iteration analysis
            ts_dict = asdict(self.timeseries)
            ts_data = {k: v for k, v in ts_dict.items() if v}
            if ts_data:
                max_len = max(len(v) for v in ts_data.values())
                # Pad shorter lists with NaN
                for k, v in ts_data.items():
                    if len(v) < max_len:
                        ts_data[k] = list(v) + [float('nan')] * (max_len - len(v))
                pd.DataFrame(ts_data).to_hdf(path, key="timeseries", mode="a", format="table")

            if self.u is not None:
                pd.DataFrame(self.u).to_hdf(path, key="grid", mode="a")
