"""Shared fixtures: an in-process, thread-backed stand-in for an MPI communicator.

Each fake rank is a thread. Collectives follow the mpi4py call signatures
used by the solvers (Scatterv / Gatherv with ``[buf, counts, displs, type]``
buffer specs, lowercase ``allreduce`` / ``gather`` for Python objects) and
are built on a shared barrier: write own slot, wait, read, wait.
"""

import threading

import numpy as np
import pytest
from mpi4py import MPI


class FakeCommGroup:
    """State shared by all fake ranks of one communicator."""

    def __init__(self, size):
        self.size = size
        self.barrier = threading.Barrier(size, timeout=30)
        self.slots = [None] * size
        self.payload = None


class FakeComm:
    """Single fake rank of a FakeCommGroup."""

    def __init__(self, rank, group):
        self.rank = rank
        self.group = group

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.group.size

    def _exchange(self, value):
        """Publish ``value`` and return every rank's value."""
        self.group.slots[self.rank] = value
        self.group.barrier.wait()
        values = list(self.group.slots)
        self.group.barrier.wait()
        return values

    def allreduce(self, value, op=MPI.SUM):
        values = self._exchange(value)
        if op is MPI.LAND:
            return all(values)
        if op is MPI.MAX:
            return max(values)
        return sum(values)

    def gather(self, value, root=0):
        values = self._exchange(value)
        return values if self.rank == root else None

    def Scatterv(self, sendbuf, recvbuf, root=0):
        if self.rank == root:
            self.group.payload = sendbuf
        self.group.barrier.wait()
        grid, counts, displs, _ = self.group.payload
        flat = np.asarray(grid).reshape(-1)
        start = displs[self.rank]
        recvbuf.reshape(-1)[:] = flat[start:start + counts[self.rank]]
        self.group.barrier.wait()

    def Gatherv(self, sendbuf, recvbuf, root=0):
        values = self._exchange(np.array(sendbuf, copy=True))
        if self.rank == root:
            grid, counts, displs, _ = recvbuf
            flat = grid.reshape(-1)
            for r, chunk in enumerate(values):
                flat[displs[r]:displs[r] + counts[r]] = chunk.reshape(-1)


def run_on_ranks(size, fn):
    """Run ``fn(comm)`` on ``size`` fake ranks; return the per-rank results.

    The first exception raised by any rank is re-raised after all ranks
    have stopped.
    """
    group = FakeCommGroup(size)
    results = [None] * size
    errors = []

    def target(rank):
        try:
            results[rank] = fn(FakeComm(rank, group))
        except threading.BrokenBarrierError:
            pass
        except Exception as e:
            errors.append(e)
            group.barrier.abort()

    threads = [threading.Thread(target=target, args=(r,), daemon=True) for r in range(size)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    if errors:
        raise errors[0]
    return results


@pytest.fixture
def fake_ranks():
    """Fixture giving access to ``run_on_ranks``."""
    return run_on_ranks
