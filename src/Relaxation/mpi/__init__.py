"""MPI row decomposition and collective exchange.

This package provides:
- DistributedGrid: Scatterv/Gatherv of row blocks around a root-owned grid
- ScatterLayout: Exported from datastructures for convenience
"""

from .grid import DistributedGrid
from ..datastructures import ScatterLayout

__all__ = [
    "DistributedGrid",
    "ScatterLayout",
]
