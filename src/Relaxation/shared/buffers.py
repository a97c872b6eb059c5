"""Double buffering for in-place shared-memory relaxation."""

from __future__ import annotations

import numpy as np

from ..grid import allocate_like


class DoubleBuffer:
    """Two named grid handles, ``current`` (read) and ``next`` (write).

    Swapping re-binds the handles; no data is copied. Every participant
    (each worker thread and the coordinating thread) holds its own
    DoubleBuffer via ``view()`` and swaps it independently, so all views
    stay in step only if every participant swaps on every CONTINUE.
    """

    __slots__ = ("current", "next")

    def __init__(self, current: np.ndarray, next: np.ndarray):
        if current.shape != next.shape:
            raise ValueError(f"Buffer shapes differ: {current.shape} vs {next.shape}")
        self.current = current
        self.next = next

    @classmethod
    def from_grid(cls, grid: np.ndarray) -> "DoubleBuffer":
        """Use ``grid`` as the current buffer and a copy of it as the next one.

        The copy carries the boundary, which no kernel ever rewrites.
        """
        return cls(grid, allocate_like(grid))

    def swap(self):
        self.current, self.next = self.next, self.current

    def view(self) -> "DoubleBuffer":
        """A new pair of handles onto the same two arrays."""
        return DoubleBuffer(self.current, self.next)
