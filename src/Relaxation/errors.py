"""Exceptions raised by the relaxation solvers.

All startup validation errors are raised before any worker thread or MPI
collective is started, so a failed validation never leaves a run half-begun.
"""


class RelaxationError(Exception):
    """Base class for all solver errors."""


class InvalidSizeError(RelaxationError, ValueError):
    """Grid size is not an integer in [2, MAX_GRID_SIZE]."""


class InvalidPrecisionError(RelaxationError, ValueError):
    """Precision is not a positive, finite number."""


class InvalidWorkerCountError(RelaxationError, ValueError):
    """Worker or rank count is smaller than one."""


class OverPartitionedError(RelaxationError, ValueError):
    """More workers than there are interior cells (or rows) to hand out."""


class AllocationError(RelaxationError, MemoryError):
    """Memory for a grid or working buffer could not be obtained."""
