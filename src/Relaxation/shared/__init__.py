"""Shared-memory exchange: double-buffered grids for worker threads."""

from .buffers import DoubleBuffer

__all__ = ["DoubleBuffer"]
