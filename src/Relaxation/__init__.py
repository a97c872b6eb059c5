"""Parallel relaxation (Jacobi) solver package.

Computes the steady state of a square grid whose border is fixed at 1.0 by
repeatedly replacing every interior cell with the average of its four
neighbours, until no cell changes by more than a precision threshold.

Solvers
-------
Sequential:
- JacobiSolver: Reference implementation (correctness oracle)

Parallel:
- JacobiThreadedSolver: Worker threads with barrier synchronisation
- JacobiMPISolver: MPI ranks with collective scatter / gather
"""

from pathlib import Path

from .datastructures import (
    GlobalParams,
    GlobalMetrics,
    LocalMetrics,
    LogLevel,
    CellRange,
    RowBlock,
    ScatterLayout,
)
from .errors import (
    RelaxationError,
    InvalidSizeError,
    InvalidPrecisionError,
    InvalidWorkerCountError,
    OverPartitionedError,
    AllocationError,
)
from .grid import initialize_grid, boundary_intact, format_grid
from .decomposition import partition, partition_cells, partition_rows, split_interior
from .kernels import NumPyKernel, NumbaKernel, create_kernel
from .coordinator import Phase, BarrierCoordinator, AllreduceCoordinator
from .shared import DoubleBuffer
from .mpi import DistributedGrid
from .solvers import (
    JacobiSolver,
    JacobiThreadedSolver,
    JacobiMPISolver,
    create_solver,
)
from .runner import run_solver

__all__ = [
    # Data structures
    "GlobalParams",
    "GlobalMetrics",
    "LocalMetrics",
    "LogLevel",
    "CellRange",
    "RowBlock",
    "ScatterLayout",
    # Errors
    "RelaxationError",
    "InvalidSizeError",
    "InvalidPrecisionError",
    "InvalidWorkerCountError",
    "OverPartitionedError",
    "AllocationError",
    # Grid
    "initialize_grid",
    "boundary_intact",
    "format_grid",
    # Partitioning
    "partition",
    "partition_cells",
    "partition_rows",
    "split_interior",
    # Kernels
    "NumPyKernel",
    "NumbaKernel",
    "create_kernel",
    # Coordination
    "Phase",
    "BarrierCoordinator",
    "AllreduceCoordinator",
    # Exchange
    "DoubleBuffer",
    "DistributedGrid",
    # Solvers
    "JacobiSolver",
    "JacobiThreadedSolver",
    "JacobiMPISolver",
    "create_solver",
    # Utilities
    "run_solver",
    "get_project_root",
]


def get_project_root() -> Path:
    """Get project root directory.

    Returns
    -------
    Path
        Project root directory (contains pyproject.toml).
    """
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent

    # Fallback: assume standard src layout
    return Path(__file__).resolve().parent.parent.parent
