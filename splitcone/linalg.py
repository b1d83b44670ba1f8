"""Small dense vector routines used throughout the solver."""

from __future__ import annotations

import math
from typing import Sequence, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]


def _vec(v: ArrayLike) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    if arr.ndim != 1:
        arr = arr.ravel()
    return arr


def _pair(a: ArrayLike, b: ArrayLike) -> tuple[np.ndarray, np.ndarray]:
    va, vb = _vec(a), _vec(b)
    if va.shape != vb.shape:
        raise ValueError(
            f"vectors have different lengths: {va.size} and {vb.size}"
        )
    return va, vb


def norm_diff(a: ArrayLike, b: ArrayLike) -> float:
    """Euclidean norm of ``a - b``."""
    va, vb = _pair(a, b)
    diff = va - vb
    return math.sqrt(float(np.dot(diff, diff)))


def norm_inf_diff(a: ArrayLike, b: ArrayLike) -> float:
    """Largest absolute entry of ``a - b`` (0 for empty vectors)."""
    va, vb = _pair(a, b)
    if va.size == 0:
        return 0.0
    return float(np.max(np.abs(va - vb)))


def norm_2(v: ArrayLike) -> float:
    """Euclidean norm, computed without intermediate overflow."""
    arr = _vec(v)
    if arr.size == 0:
        return 0.0
    return float(np.linalg.norm(arr))


def norm_sq(v: ArrayLike) -> float:
    """Squared Euclidean norm."""
    nrm = norm_2(v)
    return nrm * nrm


def norm_inf(v: ArrayLike) -> float:
    """Largest absolute entry (0 for an empty vector)."""
    arr = _vec(v)
    if arr.size == 0:
        return 0.0
    return float(np.max(np.abs(arr)))


def dot(x: ArrayLike, y: ArrayLike) -> float:
    """Inner product ``x'y``."""
    vx, vy = _pair(x, y)
    return float(np.dot(vx, vy))


def mean(x: ArrayLike) -> float:
    """Arithmetic mean; NaN for an empty vector."""
    arr = _vec(x)
    if arr.size == 0:
        return math.nan
    return float(np.sum(arr)) / arr.size