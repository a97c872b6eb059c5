"""Shared-memory parallel Jacobi solver (worker threads + barrier)."""

import logging
import threading

from .base import BaseSolver
from ..coordinator import BarrierCoordinator
from ..decomposition import partition_cells
from ..errors import InvalidWorkerCountError
from ..grid import format_grid, validate_size
from ..shared import DoubleBuffer

log = logging.getLogger(__name__)


class JacobiThreadedSolver(BaseSolver):
    """Parallel relaxation with a fixed pool of worker threads.

    Every worker owns a contiguous run of interior cells and relaxes it from
    ``current`` into ``next`` of two shared grids. The calling thread acts as
    coordinator: it ANDs the per-worker flags between the two barrier waits
    of each iteration. Grids are never locked; writes are disjoint and the
    barriers order reads after writes.

    Parameters
    ----------
    N : int
        Grid size (N x N).
    precision : float
        Convergence threshold per cell.
    n_workers : int
        Number of worker threads. Clamped to the number of interior cells.
    **kwargs
        Forwarded to BaseSolver (kernel, interior, seed, max_iter,
        initial_grid).
    """

    def __init__(self, N: int, precision: float, n_workers: int = 1, **kwargs):
        if n_workers < 1:
            raise InvalidWorkerCountError(f"Thread count must be greater than 0, got {n_workers}")

        N = validate_size(N)
        n_cells = (N - 2) ** 2
        if 0 < n_cells < n_workers:
            log.warning(f"Thread count is greater than the number of cells. "
                        f"Using {n_cells} threads.")
            n_workers = n_cells

        super().__init__(N, precision, solver_name="threads", n_workers=n_workers, **kwargs)
        self.n_workers = n_workers

        # Fixed for the whole run
        self.cells = partition_cells(self.N, n_workers) if self.n_interior else ()

    def solve(self):
        """Run relaxation on the worker pool until global convergence."""
        self._reset()
        buffers = DoubleBuffer.from_grid(self._make_initial_grid())

        if self.n_interior == 0:
            self._finalize(0.0, buffers.current, converged=True, iterations=0)
            return self.metrics

        coordinator = BarrierCoordinator(self.n_workers, max_iter=self.max_iter)
        errors = []
        threads = [
            threading.Thread(
                target=self._relax_cells,
                args=(cells, buffers.view(), coordinator, errors),
                name=f"relax-worker-{cells.worker}",
                daemon=True,
            )
            for cells in self.cells
        ]

        t_start = self._get_time()
        for t in threads:
            t.start()
        log.debug(f"{len(threads)} threads created")

        try:
            self._coordinate(buffers, coordinator)
        except threading.BrokenBarrierError:
            # A worker failed and aborted the barrier; its error is raised below
            if not errors:
                raise
        except BaseException:
            coordinator.abort()
            raise
        finally:
            for t in threads:
                log.debug(f"Joining thread {t.name}")
                t.join()

        if errors:
            raise errors[0]

        wall_time = self._get_time() - t_start
        self._finalize(wall_time, buffers.next, coordinator.is_global_converged(),
                       coordinator.iterations)
        return self.metrics

    def _coordinate(self, buffers: DoubleBuffer, coordinator: BarrierCoordinator):
        """Coordinating thread: aggregate flags, publish decision, mirror swaps."""
        while True:
            t0 = self._get_time()
            coordinator.collect()
            coordinator.aggregate()
            self.timeseries.compute_times.append(self._get_time() - t0)
            self.timeseries.unconverged_history.append(coordinator.unconverged)

            # Workers are parked on the second barrier, so next is stable
            if log.isEnabledFor(logging.DEBUG):
                log.debug(f"Matrix after iteration {coordinator.iterations}\n"
                          + format_grid(buffers.next))

            coordinator.publish()
            if coordinator.is_terminal():
                return
            buffers.swap()

    def _relax_cells(self, cells, buffers: DoubleBuffer, coordinator: BarrierCoordinator,
                     errors: list):
        """Worker thread body."""
        try:
            while True:
                converged = self.kernel.step(buffers.current, buffers.next, cells)
                coordinator.report_local(cells.worker, converged)

                # Wait for all computation to finish, then for the decision
                coordinator.wait_computed()
                coordinator.wait_decided()

                if coordinator.is_terminal():
                    break
                buffers.swap()
        except threading.BrokenBarrierError:
            # Aborted by a failing peer or the coordinating thread
            return
        except Exception as e:
            errors.append(e)
            coordinator.abort()
            return

        log.debug(f"Worker {cells.worker} finished")
