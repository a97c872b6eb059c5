"""Relaxation kernels.

Each kernel updates a worker's cells to the average of their four
neighbours and reports whether every updated cell moved by at most the
precision. Kernels read only from ``src`` and write only to the owned
cells of ``dst``, so iteration k+1 only ever sees iteration-k values.
"""

import numpy as np
from numba import njit

from .datastructures import CellRange


@njit(nogil=True)
def _relax_cells_numba(src, dst, start, count, precision):
    """Numba JIT implementation of one relaxation pass over a cell run."""
    width = src.shape[1] - 2
    i = start // width + 1
    j = start % width + 1
    converged = True

    for _ in range(count):
        new = 0.25 * (src[i - 1, j] + src[i + 1, j] + src[i, j - 1] + src[i, j + 1])
        dst[i, j] = new

        # Short circuit the check, never the update
        if converged and not (abs(new - src[i, j]) <= precision):
            converged = False

        j += 1
        if j == width + 1:
            j = 1
            i += 1

    return converged


def whole_interior(arr: np.ndarray) -> CellRange:
    """CellRange covering every interior cell of ``arr``."""
    rows, cols = arr.shape
    return CellRange(worker=0, start=0, count=max(rows - 2, 0) * max(cols - 2, 0))


class _BaseKernel:
    """Shared driver logic for the concrete kernels."""

    def __init__(self, precision: float):
        self.precision = precision

    def step(self, src: np.ndarray, dst: np.ndarray, cells: CellRange) -> bool:
        raise NotImplementedError

    def step_rows(self, slab: np.ndarray, out: np.ndarray) -> bool:
        """Relax the owned rows of a halo slab into ``out``.

        Rows 1..-2 of ``slab`` are owned, rows 0 and -1 are halo. The global
        boundary columns of the owned rows are copied verbatim.
        """
        converged = self.step(slab, out, whole_interior(slab))
        out[1:-1, 0] = slab[1:-1, 0]
        out[1:-1, -1] = slab[1:-1, -1]
        return converged

    def apply(self, local_view: np.ndarray, cells: CellRange = None):
        """Return ``(updated_values, local_converged)`` without touching the input."""
        if cells is None:
            cells = whole_interior(local_view)
        updated = local_view.copy()
        converged = self.step(local_view, updated, cells)
        return updated, converged

    def warmup(self, warmup_size: int = 10):
        """No-op unless the kernel needs compilation."""
        pass


class NumPyKernel(_BaseKernel):
    """NumPy-based relaxation kernel."""

    name = "numpy"

    def __init__(self, precision: float):
        super().__init__(precision)
        self._blocks = {}  # (cells, width) -> blocks

    def _get_blocks(self, cells: CellRange, width: int):
        key = (cells, width)
        if key not in self._blocks:
            self._blocks[key] = cells.blocks(width)
        return self._blocks[key]

    def step(self, src: np.ndarray, dst: np.ndarray, cells: CellRange) -> bool:
        """Perform one relaxation pass over ``cells``."""
        converged = True

        for i0, i1, j0, j1 in self._get_blocks(cells, src.shape[1] - 2):
            new = 0.25 * (
                src[i0 - 1:i1 - 1, j0:j1]
                + src[i0 + 1:i1 + 1, j0:j1]
                + src[i0:i1, j0 - 1:j1 - 1]
                + src[i0:i1, j0 + 1:j1 + 1]
            )
            dst[i0:i1, j0:j1] = new

            if converged:
                converged = bool(np.all(np.abs(new - src[i0:i1, j0:j1]) <= self.precision))

        return converged


class NumbaKernel(_BaseKernel):
    """Numba JIT-compiled relaxation kernel (releases the GIL)."""

    name = "numba"

    def step(self, src: np.ndarray, dst: np.ndarray, cells: CellRange) -> bool:
        """Perform one relaxation pass over ``cells``."""
        if cells.count <= 0:
            return True
        return bool(_relax_cells_numba(src, dst, cells.start, cells.count, self.precision))

    def warmup(self, warmup_size: int = 10):
        """Trigger JIT compilation with a small problem."""
        u1 = np.ones((warmup_size, warmup_size), dtype=np.float64)
        u2 = np.ones_like(u1)
        cells = whole_interior(u1)
        for _ in range(2):
            self.step(u1, u2, cells)
            u1, u2 = u2, u1


def create_kernel(name: str, precision: float):
    """Factory: 'numpy' for vectorised slices, 'numba' for JIT loops."""
    if name == "numpy":
        return NumPyKernel(precision)
    elif name == "numba":
        return NumbaKernel(precision)
    else:
        raise ValueError(f"Unknown kernel: {name}. Use 'numpy' or 'numba'.")
