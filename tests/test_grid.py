"""Tests for grid validation, allocation and initialization."""

import math

import numpy as np
import pytest

from Relaxation import AllocationError, InvalidPrecisionError, InvalidSizeError, RelaxationError
from Relaxation.grid import (
    BOUNDARY_VALUE,
    MAX_GRID_SIZE,
    allocate,
    allocate_like,
    boundary_intact,
    format_grid,
    initialize_grid,
    validate_precision,
    validate_interior,
    validate_size,
)


class TestValidation:
    """Startup validation of size and precision."""

    @pytest.mark.parametrize("N", [2, 3, 100, MAX_GRID_SIZE])
    def test_valid_sizes_accepted(self, N):
        assert validate_size(N) == N

    @pytest.mark.parametrize("N", [-1, 0, 1, MAX_GRID_SIZE + 1])
    def test_out_of_range_sizes_rejected(self, N):
        with pytest.raises(InvalidSizeError):
            validate_size(N)

    @pytest.mark.parametrize("N", [4.0, "4", None, True])
    def test_non_integer_sizes_rejected(self, N):
        with pytest.raises(InvalidSizeError):
            validate_size(N)

    def test_numpy_integer_accepted(self):
        assert validate_size(np.int64(8)) == 8

    @pytest.mark.parametrize("precision", [1e-12, 0.01, 1, 2.5])
    def test_positive_precision_accepted(self, precision):
        assert validate_precision(precision) == float(precision)

    @pytest.mark.parametrize("precision", [0, 0.0, -1e-3, math.inf, math.nan, "abc", None])
    def test_bad_precision_rejected(self, precision):
        with pytest.raises(InvalidPrecisionError):
            validate_precision(precision)

    def test_errors_are_value_errors(self):
        """Validation errors are catchable both as RelaxationError and ValueError."""
        with pytest.raises(RelaxationError):
            validate_size(1)
        with pytest.raises(ValueError):
            validate_precision(0)


    @pytest.mark.parametrize("interior", ["zeros", "random"])
    def test_known_interiors_accepted(self, interior):
        assert validate_interior(interior) == interior

    @pytest.mark.parametrize("interior", ["ones", "", None])
    def test_unknown_interiors_rejected(self, interior):
        with pytest.raises(ValueError):
            validate_interior(interior)


class TestAllocation:
    """Allocation failures surface as AllocationError."""

    def test_is_memory_error(self):
        assert issubclass(AllocationError, MemoryError)
        assert issubclass(AllocationError, RelaxationError)

    def test_numpy_memory_error_translated(self, monkeypatch):
        def no_memory(*args, **kwargs):
            raise MemoryError("out of memory")

        monkeypatch.setattr(np, "full", no_memory)
        with pytest.raises(AllocationError):
            allocate((4, 4))
        with pytest.raises(MemoryError):
            initialize_grid(4)

    def test_invalid_shape_translated(self):
        with pytest.raises(AllocationError):
            allocate((-1, 4))

    def test_allocate_like_copies(self):
        grid = initialize_grid(4, interior="random")
        buf = allocate_like(grid)
        assert buf is not grid
        np.testing.assert_array_equal(buf, grid)


class TestInitializeGrid:
    """Initial grid: 1.0 boundary, chosen interior."""

    def test_n4_layout(self):
        grid = initialize_grid(4)
        expected = np.array([
            [1.0, 1.0, 1.0, 1.0],
            [1.0, 0.0, 0.0, 1.0],
            [1.0, 0.0, 0.0, 1.0],
            [1.0, 1.0, 1.0, 1.0],
        ])
        np.testing.assert_array_equal(grid, expected)

    def test_n2_is_all_boundary(self):
        grid = initialize_grid(2)
        assert grid.shape == (2, 2)
        assert np.all(grid == BOUNDARY_VALUE)

    @pytest.mark.parametrize("N", [3, 7, 16])
    def test_boundary_and_dtype(self, N):
        grid = initialize_grid(N)
        assert grid.dtype == np.float64
        assert grid.flags["C_CONTIGUOUS"]
        assert boundary_intact(grid)
        assert np.all(grid[1:-1, 1:-1] == 0.0)

    def test_random_interior_reproducible(self):
        a = initialize_grid(10, interior="random", seed=7)
        b = initialize_grid(10, interior="random", seed=7)
        c = initialize_grid(10, interior="random", seed=8)
        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, c)
        assert boundary_intact(a)
        assert np.all((a[1:-1, 1:-1] >= 0.0) & (a[1:-1, 1:-1] < 1.0))

    def test_each_call_returns_fresh_grid(self):
        a = initialize_grid(5)
        b = initialize_grid(5)
        a[2, 2] = 42.0
        assert b[2, 2] == 0.0

    def test_unknown_interior_rejected(self):
        with pytest.raises(ValueError):
            initialize_grid(2, interior="ones")

    def test_invalid_size_rejected(self):
        with pytest.raises(InvalidSizeError):
            initialize_grid(1)


class TestBoundaryHelpers:
    """boundary_intact and format_grid."""

    def test_boundary_change_detected(self):
        grid = initialize_grid(5)
        grid[0, 3] = 0.5
        assert not boundary_intact(grid)

    def test_interior_change_ignored(self):
        grid = initialize_grid(5)
        grid[2, 2] = 0.5
        assert boundary_intact(grid)

    def test_format_grid(self):
        text = format_grid(initialize_grid(3))
        lines = text.splitlines()
        assert lines[0] == "Display 3 x 3 matrix"
        assert lines[2] == "1.000000 0.000000 1.000000"
        assert len(lines) == 4
