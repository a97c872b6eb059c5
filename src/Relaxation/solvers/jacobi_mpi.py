"""MPI-parallel Jacobi solver (scatter / relax / allreduce / gather)."""

import logging

import numpy as np
from mpi4py import MPI

from .base import BaseSolver
from ..coordinator import AllreduceCoordinator
from ..grid import format_grid
from ..mpi.grid import DistributedGrid

log = logging.getLogger(__name__)


class JacobiMPISolver(BaseSolver):
    """Parallel relaxation with row-block decomposition over MPI ranks.

    Rank 0 owns the authoritative grid and also works on its own block.
    Per iteration every rank joins four collectives, always in the same
    order: Scatterv (owned rows + halo), relax, allreduce(LAND) of the local
    flags, Gatherv (owned rows). The next scatter re-reads the freshly
    gathered grid, so no buffer swap is needed.

    ``timeseries.unconverged_history`` is not recorded: the reduction only
    carries the boolean AND.

    Parameters
    ----------
    N : int
        Grid size (N x N).
    precision : float
        Convergence threshold per cell.
    comm : MPI.Comm, optional
        Communicator (default: MPI.COMM_WORLD). Its size must not exceed
        the N - 2 interior rows.
    **kwargs
        Forwarded to BaseSolver (kernel, interior, seed, max_iter,
        initial_grid). ``initial_grid`` is only read on rank 0.
    """

    def __init__(self, N: int, precision: float, comm=None, **kwargs):
        # MPI setup before parent init
        self.comm = comm if comm is not None else MPI.COMM_WORLD
        self.rank = self.comm.Get_rank()
        self.size = self.comm.Get_size()

        super().__init__(N, precision, solver_name="mpi", n_workers=self.size, **kwargs)

        # Create distributed grid (raises OverPartitionedError on every rank)
        self.grid = DistributedGrid(self.N, self.comm)

    def _get_time(self) -> float:
        """Get current time using MPI.Wtime()."""
        return MPI.Wtime()

    def _is_root(self) -> bool:
        return self.grid.is_root

    def solve(self):
        """Run relaxation until all ranks agree on convergence."""
        self._reset()
        slab = self.grid.allocate()
        out = self.grid.allocate()
        u = self._make_initial_grid() if self._is_root() else None
        coordinator = AllreduceCoordinator(self.comm, max_iter=self.max_iter)

        t_start = self._get_time()

        while True:
            t0 = self._get_time()
            self.grid.scatter(u, slab)

            t1 = self._get_time()
            converged = self.kernel.step_rows(slab, out)
            t2 = self._get_time()

            coordinator.report_local(converged)
            self.grid.gather(out, u)
            t3 = self._get_time()

            self.timeseries.compute_times.append(t2 - t1)
            self.timeseries.exchange_times.append((t1 - t0) + (t3 - t2))

            if self._is_root() and log.isEnabledFor(logging.DEBUG):
                log.debug(f"Finished iteration {coordinator.iterations}\n" + format_grid(u))

            if coordinator.is_terminal():
                break

        wall_time = self._get_time() - t_start
        self._finalize(wall_time, u, coordinator.is_global_converged(), coordinator.iterations)
        return self.metrics

    def gather_metrics(self) -> list:
        """Collect each rank's compute / exchange totals on rank 0."""
        local = {
            "rank": self.rank,
            "rows": self.grid.block.count,
            "exchange_bytes": self.grid.get_exchange_size_bytes() * len(self.timeseries.exchange_times),
            "compute_time": float(np.sum(self.timeseries.compute_times)),
            "exchange_time": float(np.sum(self.timeseries.exchange_times)),
        }
        return self.comm.gather(local, root=self.grid.root)
