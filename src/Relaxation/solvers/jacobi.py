"""Serial Jacobi relaxation - the single-threaded reference solver."""

import logging

from .base import BaseSolver
from ..grid import format_grid
from ..kernels import whole_interior
from ..shared import DoubleBuffer

log = logging.getLogger(__name__)


class JacobiSolver(BaseSolver):
    """Sequential relaxation of the whole interior.

    No threads and no MPI - runs entirely on the calling thread. Used as
    the correctness oracle for the parallel variants, which must reach the
    same grid in the same number of iterations.

    Parameters
    ----------
    N : int
        Grid size (N x N).
    precision : float
        Convergence threshold per cell.
    **kwargs
        Forwarded to BaseSolver (kernel, interior, seed, max_iter,
        initial_grid).
    """

    def __init__(self, N: int, precision: float, **kwargs):
        super().__init__(N, precision, solver_name="serial", n_workers=1, **kwargs)

    def solve(self):
        """Run relaxation until every cell is within precision."""
        self._reset()
        buffers = DoubleBuffer.from_grid(self._make_initial_grid())

        if self.n_interior == 0:
            self._finalize(0.0, buffers.current, converged=True, iterations=0)
            return self.metrics

        cells = whole_interior(buffers.current)
        iterations = 0
        t_start = self._get_time()

        while True:
            t0 = self._get_time()
            converged = self.kernel.step(buffers.current, buffers.next, cells)
            self.timeseries.compute_times.append(self._get_time() - t0)
            self.timeseries.unconverged_history.append(0 if converged else 1)
            iterations += 1

            if log.isEnabledFor(logging.DEBUG):
                log.debug(f"Matrix after iteration {iterations}\n" + format_grid(buffers.next))

            if converged or (self.max_iter is not None and iterations >= self.max_iter):
                break

            # Swap buffers
            buffers.swap()

        wall_time = self._get_time() - t_start
        self._finalize(wall_time, buffers.next, converged, iterations)
        return self.metrics
