"""Cone projections, Anderson acceleration and sparse equilibration for conic solvers."""

__version__ = "3.2.2"
__all__ = ["anderson", "cones", "interrupt", "linalg", "matrix", "projections"]