"""Tests for relaxation kernels."""

import numpy as np
import pytest

from Relaxation import CellRange, NumPyKernel, NumbaKernel, create_kernel, initialize_grid
from Relaxation.grid import boundary_intact
from Relaxation.kernels import whole_interior


@pytest.fixture(scope="module")
def numba_kernel():
    kernel = NumbaKernel(precision=1e-3)
    kernel.warmup()
    return kernel


def run_iterations(kernel, grid, n_iter):
    """Run n_iter relaxation passes over the whole interior, return final grid."""
    u1, u2 = grid.copy(), grid.copy()
    cells = whole_interior(u1)
    for _ in range(n_iter):
        kernel.step(u1, u2, cells)
        u1, u2 = u2, u1
    return u1


class TestStep:
    """Single relaxation pass."""

    def test_n4_first_iteration(self):
        """Every interior cell of the 4x4 zero grid has two boundary neighbours."""
        src = initialize_grid(4)
        dst = src.copy()
        converged = NumPyKernel(precision=0.1).step(src, dst, whole_interior(src))

        np.testing.assert_array_equal(dst[1:-1, 1:-1], np.full((2, 2), 0.5))
        assert not converged

    def test_n4_second_iteration(self):
        src = initialize_grid(4)
        src[1:-1, 1:-1] = 0.5
        dst = src.copy()
        converged = NumPyKernel(precision=0.1).step(src, dst, whole_interior(src))

        np.testing.assert_array_equal(dst[1:-1, 1:-1], np.full((2, 2), 0.75))
        assert not converged

    def test_large_precision_converges_in_one_pass(self):
        src = initialize_grid(4)
        dst = src.copy()
        assert NumPyKernel(precision=1.0).step(src, dst, whole_interior(src))

    def test_boundary_never_written(self):
        src = initialize_grid(8, interior="random")
        dst = np.full_like(src, -7.0)
        NumPyKernel(precision=1e-3).step(src, dst, whole_interior(src))

        assert np.all(dst[0, :] == -7.0)
        assert np.all(dst[:, -1] == -7.0)

    def test_source_not_mutated(self):
        src = initialize_grid(8, interior="random")
        before = src.copy()
        NumPyKernel(precision=1e-3).step(src, src.copy(), whole_interior(src))
        np.testing.assert_array_equal(src, before)

    def test_only_owned_cells_written(self):
        src = initialize_grid(5, interior="random")
        dst = np.zeros_like(src)
        NumPyKernel(precision=1e-3).step(src, dst, CellRange(worker=1, start=2, count=3))

        written = dst != 0.0
        expected = np.zeros_like(written)
        expected[1, 3] = expected[2, 1] = expected[2, 2] = True
        np.testing.assert_array_equal(written, expected)

    def test_all_cells_updated_after_violation(self):
        """Cells after the first violating one are still written."""
        src = initialize_grid(6)
        src[1:-1, 1:-1] = 1.0
        src[1, 1] = 0.0  # violates precision, every other cell does not
        dst = np.zeros_like(src)

        converged = NumPyKernel(precision=1e-6).step(src, dst, whole_interior(src))

        assert not converged
        assert np.all(dst[1:-1, 1:-1] != 0.0)
        assert dst[4, 4] == 1.0

    def test_apply_returns_copy(self):
        grid = initialize_grid(5)
        updated, converged = NumPyKernel(precision=1e-3).apply(grid)
        assert not converged
        assert np.all(grid[1:-1, 1:-1] == 0.0)
        assert updated[1, 1] == 0.5


class TestKernelEquivalence:
    """NumPy and Numba kernels produce bit-identical results."""

    @pytest.mark.parametrize("N", [3, 6, 17])
    def test_identical_grids(self, numba_kernel, N):
        grid = initialize_grid(N, interior="random", seed=N)
        numpy_kernel = NumPyKernel(precision=numba_kernel.precision)

        u_numpy = run_iterations(numpy_kernel, grid, 25)
        u_numba = run_iterations(numba_kernel, grid, 25)
        np.testing.assert_array_equal(u_numpy, u_numba)
        assert boundary_intact(u_numba)

    @pytest.mark.parametrize("start,count", [(0, 49), (3, 11), (20, 29), (48, 1)])
    def test_identical_partial_ranges(self, numba_kernel, start, count):
        src = initialize_grid(9, interior="random")
        cells = CellRange(worker=0, start=start, count=count)
        numpy_kernel = NumPyKernel(precision=numba_kernel.precision)

        dst_numpy = src.copy()
        dst_numba = src.copy()
        flag_numpy = numpy_kernel.step(src, dst_numpy, cells)
        flag_numba = numba_kernel.step(src, dst_numba, cells)

        np.testing.assert_array_equal(dst_numpy, dst_numba)
        assert flag_numpy == flag_numba

    def test_empty_range_is_converged(self, numba_kernel):
        grid = initialize_grid(2)
        assert numba_kernel.step(grid, grid.copy(), whole_interior(grid))
        assert NumPyKernel(precision=1e-3).step(grid, grid.copy(), whole_interior(grid))


class TestStepRows:
    """Slab relaxation used by the distributed solver."""

    def test_matches_full_grid_rows(self):
        grid = initialize_grid(8, interior="random")
        kernel = NumPyKernel(precision=1e-3)
        full = grid.copy()
        kernel.step(grid, full, whole_interior(grid))

        # owned rows 3..5 with halo rows 2 and 6
        slab = grid[2:7].copy()
        out = np.zeros_like(slab)
        kernel.step_rows(slab, out)

        np.testing.assert_array_equal(out[1:-1], full[3:6])

    def test_edge_columns_copied(self):
        slab = initialize_grid(6)[0:4].copy()
        out = np.zeros_like(slab)
        NumPyKernel(precision=1e-3).step_rows(slab, out)
        assert np.all(out[1:-1, 0] == 1.0)
        assert np.all(out[1:-1, -1] == 1.0)


def test_create_kernel():
    assert isinstance(create_kernel("numpy", 1e-3), NumPyKernel)
    assert isinstance(create_kernel("numba", 1e-3), NumbaKernel)
    with pytest.raises(ValueError):
        create_kernel("cuda", 1e-3)
