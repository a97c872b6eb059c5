"""Convergence coordination.

Each iteration moves through COMPUTING -> AGGREGATING -> CONTINUE or
CONVERGED. Aggregation is always a logical AND over every worker's local
flag: no worker ever decides termination from its own flag alone.

Two implementations share the interface ``report_local`` /
``is_global_converged``:

- BarrierCoordinator: shared-memory threads, two barrier waits per iteration.
- AllreduceCoordinator: MPI ranks, one boolean allreduce per iteration.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from mpi4py import MPI

log = logging.getLogger(__name__)


class Phase(Enum):
    COMPUTING = "computing"
    AGGREGATING = "aggregating"
    CONTINUE = "continue"
    CONVERGED = "converged"
    STOPPED = "stopped"  # max_iter reached before convergence


TERMINAL_PHASES = (Phase.CONVERGED, Phase.STOPPED)


class ConvergenceCoordinator(ABC):
    """Abstract base for per-iteration convergence decisions."""

    def __init__(self, max_iter: Optional[int] = None):
        self.max_iter = max_iter
        self.iterations = 0
        self.phase = Phase.COMPUTING

    @abstractmethod
    def report_local(self, *args):
        """Hand in a worker's local convergence flag."""
        pass

    def is_global_converged(self) -> bool:
        return self.phase is Phase.CONVERGED

    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def _decide(self, all_converged: bool) -> Phase:
        """Advance the state machine after aggregation."""
        self.iterations += 1
        if all_converged:
            self.phase = Phase.CONVERGED
        elif self.max_iter is not None and self.iterations >= self.max_iter:
            self.phase = Phase.STOPPED
        else:
            self.phase = Phase.CONTINUE
        return self.phase


class BarrierCoordinator(ConvergenceCoordinator):
    """Shared-memory coordinator for W worker threads plus one coordinating thread.

    The barrier has ``n_workers + 1`` parties. Per iteration:

    1. workers compute, ``report_local`` and ``wait_computed``;
    2. the coordinating thread, released from the same barrier by
       ``collect``, calls ``aggregate`` and then ``publish``;
    3. workers, released from ``wait_decided``, read the decision.

    Each worker writes only its own flag slot, and all reads of the slots
    happen between the two barriers, so no lock is needed. Only the
    coordinating thread changes ``phase``.
    """

    def __init__(self, n_workers: int, max_iter: Optional[int] = None):
        super().__init__(max_iter)
        self.n_workers = n_workers
        self._flags = [True] * n_workers
        self._barrier = threading.Barrier(n_workers + 1)
        self.unconverged = 0

    def report_local(self, worker_id: int, flag: bool):
        self._flags[worker_id] = bool(flag)

    # Worker side

    def wait_computed(self):
        """First barrier: this worker has finished writing the iteration."""
        self._barrier.wait()

    def wait_decided(self):
        """Second barrier: wait for the decision to be published."""
        self._barrier.wait()

    # Coordinating thread side

    def collect(self):
        """Wait at the first barrier until every worker has reported."""
        self._barrier.wait()
        self.phase = Phase.AGGREGATING

    def aggregate(self) -> Phase:
        """AND the local flags and reset them for the next iteration."""
        self.unconverged = self._flags.count(False)
        phase = self._decide(self.unconverged == 0)
        if phase is Phase.CONTINUE:
            for i in range(self.n_workers):
                self._flags[i] = True
        log.debug(f"Finished iteration {self.iterations}: {phase.value} "
                  f"({self.unconverged}/{self.n_workers} workers above precision)")
        return phase

    def publish(self):
        """Second barrier: release the workers with the decision."""
        self._barrier.wait()
        if self.phase is Phase.CONTINUE:
            self.phase = Phase.COMPUTING

    def abort(self):
        """Break the barrier so no thread waits forever on a failed peer."""
        self._barrier.abort()


class AllreduceCoordinator(ConvergenceCoordinator):
    """Distributed coordinator: one collective logical AND per iteration."""

    def __init__(self, comm, max_iter: Optional[int] = None):
        super().__init__(max_iter)
        self.comm = comm

    def report_local(self, flag: bool) -> bool:
        """Reduce the local flag over all ranks. Returns the global result."""
        self.phase = Phase.AGGREGATING
        global_flag = self.comm.allreduce(bool(flag), op=MPI.LAND)
        self._decide(bool(global_flag))
        return self.is_global_converged()
