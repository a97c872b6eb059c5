"""Relaxation Solvers.

Consistent naming: JacobiSolver for sequential, Jacobi{Model}Solver for parallel.

Sequential:
- JacobiSolver: Single-threaded reference (correctness oracle)

Parallel:
- JacobiThreadedSolver: Worker threads on shared grids, barrier synchronised
- JacobiMPISolver: MPI ranks with Scatterv / allreduce / Gatherv
"""

from .jacobi import JacobiSolver
from .jacobi_threaded import JacobiThreadedSolver
from .jacobi_mpi import JacobiMPISolver

__all__ = [
    "JacobiSolver",
    "JacobiThreadedSolver",
    "JacobiMPISolver",
]


def create_solver(solver: str, N: int, precision: float, **kwargs):
    """Factory: 'serial', 'threads' or 'mpi'."""
    if solver == "serial":
        kwargs.pop("n_workers", None)
        return JacobiSolver(N, precision, **kwargs)
    elif solver == "threads":
        return JacobiThreadedSolver(N, precision, **kwargs)
    elif solver == "mpi":
        kwargs.pop("n_workers", None)
        return JacobiMPISolver(N, precision, **kwargs)
    else:
        raise ValueError(f"Unknown solver: {solver}. Use 'serial', 'threads' or 'mpi'.")
