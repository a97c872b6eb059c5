"""Distributed grid: row-block scatter/gather around a root-owned grid.

This module provides the DistributedGrid class that encapsulates:
- Row decomposition of the interior across ranks (with one halo row on
  each side of every block)
- The collective Scatterv / Gatherv data movement against the
  authoritative grid held by the root rank
- Allocation of each rank's slab and output buffers

Solvers interact with this single interface rather than managing
counts and displacements directly.
"""

from __future__ import annotations

import numpy as np
from mpi4py import MPI

from ..datastructures import ScatterLayout
from ..decomposition import partition_rows
from ..grid import allocate


class DistributedGrid:
    """Row-block distributed view of an N x N grid.

    Parameters
    ----------
    N : int
        Global grid size (N x N including boundaries)
    comm : MPI.Comm
        MPI communicator. Every rank, the root included, owns a block.
    root : int
        Rank holding the authoritative grid.

    Example
    -------
    >>> dgrid = DistributedGrid(N=64, comm=MPI.COMM_WORLD)
    >>> slab, out = dgrid.allocate(), dgrid.allocate()
    >>> dgrid.scatter(grid, slab)   # owned rows + halo
    >>> dgrid.gather(out, grid)     # owned rows only
    """

    def __init__(self, N: int, comm: MPI.Comm = MPI.COMM_WORLD, root: int = 0):
        self.N = N
        self.comm = comm
        self.rank = self.comm.Get_rank()
        self.size = self.comm.Get_size()
        self.root = root

        # Raises OverPartitionedError on every rank alike
        self.blocks = partition_rows(N, self.size)
        self.block = self.blocks[self.rank]
        self.layout = ScatterLayout.from_blocks(self.blocks, N)

        self.halo_shape = (self.block.halo_count, N)

    @property
    def is_root(self) -> bool:
        return self.rank == self.root

    def allocate(self) -> np.ndarray:
        """Allocate a local slab (owned rows plus both halo rows)."""
        return allocate(self.halo_shape)

    def scatter(self, grid: np.ndarray | None, slab: np.ndarray):
        """Deliver every rank its owned rows plus halo from the root's grid."""
        sendbuf = None
        if self.is_root:
            sendbuf = [grid, self.layout.scatter_counts, self.layout.scatter_displs, MPI.DOUBLE]
        self.comm.Scatterv(sendbuf, slab, root=self.root)

    def gather(self, out: np.ndarray, grid: np.ndarray | None):
        """Write every rank's owned rows of ``out`` back into the root's grid."""
        recvbuf = None
        if self.is_root:
            recvbuf = [grid, self.layout.gather_counts, self.layout.gather_displs, MPI.DOUBLE]
        self.comm.Gatherv(out[1:-1], recvbuf, root=self.root)

    def get_exchange_size_bytes(self) -> int:
        """Bytes this rank moves per iteration (scatter in + gather out)."""
        return (self.block.halo_count + self.block.count) * self.N * 8
