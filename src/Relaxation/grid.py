"""Grid allocation, initialization and boundary handling.

The grid is a dense N x N float64 array. Row 0, row N-1, column 0 and
column N-1 are boundary cells fixed at ``BOUNDARY_VALUE``; no kernel ever
writes to them.
"""

from __future__ import annotations

import logging
import math
import numbers

import numpy as np

from .errors import AllocationError, InvalidPrecisionError, InvalidSizeError

log = logging.getLogger(__name__)

BOUNDARY_VALUE = 1.0
MIN_GRID_SIZE = 2
MAX_GRID_SIZE = 10_000_000
INTERIORS = ("zeros", "random")


def validate_size(N) -> int:
    """Return N as an int, or raise InvalidSizeError."""
    if isinstance(N, bool) or not isinstance(N, numbers.Integral):
        raise InvalidSizeError(f"Grid size must be an integer, got {N!r}")
    if N < MIN_GRID_SIZE or N > MAX_GRID_SIZE:
        raise InvalidSizeError(
            f"Grid size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}, got {N}"
        )
    return int(N)


def validate_precision(precision) -> float:
    """Return precision as a float, or raise InvalidPrecisionError."""
    try:
        value = float(precision)
    except (TypeError, ValueError) as e:
        raise InvalidPrecisionError(f"Precision must be a number, got {precision!r}") from e
    if not math.isfinite(value) or value <= 0:
        raise InvalidPrecisionError(f"Precision must be greater than 0, got {precision!r}")
    return value


def validate_interior(interior: str) -> str:
    """Return ``interior`` if it names a known initial interior, else raise ValueError."""
    if interior not in INTERIORS:
        raise ValueError(f"Unknown interior: {interior}. Use 'zeros' or 'random'.")
    return interior


def allocate(shape, fill: float = 0.0) -> np.ndarray:
    try:
        return np.full(shape, fill, dtype=np.float64)
    except (MemoryError, ValueError) as e:
        raise AllocationError(f"Could not allocate array of shape {shape}") from e


def allocate_like(grid: np.ndarray) -> np.ndarray:
    """Allocate a working buffer holding a copy of ``grid``."""
    buf = allocate(grid.shape)
    buf[...] = grid
    return buf


def initialize_grid(N: int, interior: str = "zeros", seed: int = 42) -> np.ndarray:
    """Create an N x N grid with 1.0 on all four sides.

    Parameters
    ----------
    N : int
        Grid dimension (including boundaries).
    interior : str
        'zeros' for a 0.0 interior (default), 'random' for a reproducible
        uniform [0, 1) interior drawn from ``seed``.
    seed : int
        Seed for the 'random' interior.

    Returns
    -------
    np.ndarray
        Freshly allocated C-contiguous grid. Every call returns a new array.
    """
    N = validate_size(N)
    validate_interior(interior)
    log.debug(f"Initializing grid of size {N} x {N} ({interior} interior)")

    grid = allocate((N, N), BOUNDARY_VALUE)

    if N > 2:
        if interior == "zeros":
            interior_view(grid)[...] = 0.0
        else:
            rng = np.random.default_rng(seed)
            interior_view(grid)[...] = rng.random((N - 2, N - 2))

    if log.isEnabledFor(logging.DEBUG):
        log.debug("Grid initialized\n" + format_grid(grid))

    return grid


def boundary_mask(N: int) -> np.ndarray:
    """Boolean mask that is True on boundary cells."""
    mask = np.ones((N, N), dtype=bool)
    mask[1:-1, 1:-1] = False
    return mask


def interior_view(grid: np.ndarray) -> np.ndarray:
    """View of the mutable interior cells."""
    return grid[1:-1, 1:-1]


def boundary_intact(grid: np.ndarray, value: float = BOUNDARY_VALUE) -> bool:
    """True if every boundary cell still holds ``value``."""
    return bool(np.all(grid[boundary_mask(grid.shape[0])] == value))


def format_grid(grid: np.ndarray) -> str:
    """Render a grid as text for debug logging."""
    rows = [" ".join(f"{v:f}" for v in row) for row in grid]
    return f"Display {grid.shape[0]} x {grid.shape[1]} matrix\n" + "\n".join(rows)
