"""Sparse matrices in compressed sparse column form and their equilibration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence, Union

import numpy as np

from splitcone.cones import ConeWork
from splitcone.linalg import mean, norm_inf

ArrayLike = Union[Sequence[float], np.ndarray]

MIN_NORMALIZATION_FACTOR = 1e-4
MAX_NORMALIZATION_FACTOR = 1e4
NUM_RUIZ_PASSES = 25  # additional passes don't help much
NUM_L2_PASSES = 1  # one or zero, more is not stable


@dataclass(eq=False)
class CscMatrix:
    """An ``m x n`` matrix: values ``x``, row indices ``i``, column pointers ``p``."""

    m: int
    n: int
    x: Optional[ArrayLike]
    i: Optional[ArrayLike]
    p: Optional[ArrayLike]

    def __post_init__(self) -> None:
        self.m = int(self.m)
        self.n = int(self.n)
        if self.x is not None:
            self.x = np.array(self.x, dtype=float).ravel()
        if self.i is not None:
            self.i = np.array(self.i, dtype=np.int64).ravel()
        if self.p is not None:
            self.p = np.array(self.p, dtype=np.int64).ravel()

    def copy(self) -> "CscMatrix":
        """Return an independent copy of the matrix."""
        return CscMatrix(
            self.m,
            self.n,
            None if self.x is None else self.x.copy(),
            None if self.i is None else self.i.copy(),
            None if self.p is None else self.p.copy(),
        )


@dataclass(eq=False)
class Scaling:
    """Diagonal equilibration ``A -> D A E`` and ``P -> E P E``."""

    D: np.ndarray
    E: np.ndarray
    primal_scale: float = 1.0
    dual_scale: float = 1.0
    m: int = field(init=False)
    n: int = field(init=False)

    def __post_init__(self) -> None:
        self.D = np.asarray(self.D, dtype=float)
        self.E = np.asarray(self.E, dtype=float)
        self.m = self.D.size
        self.n = self.E.size


class Normalized(NamedTuple):
    """Equilibrated copies of ``P`` and ``A`` with the scaling applied."""

    p: Optional[CscMatrix]
    a: CscMatrix
    scaling: Scaling


def _entries(mat: CscMatrix) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Rows, columns and values of the stored entries."""
    nnz = int(mat.p[mat.n])
    cols = np.repeat(np.arange(mat.n), np.diff(mat.p[: mat.n + 1]))
    return mat.i[:nnz], cols, mat.x[:nnz]


def validate_lin_sys(a: CscMatrix, p: Optional[CscMatrix] = None) -> None:
    """Raise ``ValueError`` if ``A`` or ``P`` is malformed."""
    if a.x is None or a.i is None or a.p is None:
        raise ValueError("data incompletely specified")
    if a.p.size < a.n + 1:
        raise ValueError("data incompletely specified")
    anz = int(a.p[a.n])
    if a.m:
        ratio = anz / a.m
    else:
        ratio = np.inf if anz > 0 else np.nan
    if ratio > a.n or anz < 0:
        raise ValueError(f"Anz (nonzeros in A) = {anz}, outside of valid range")
    if a.i.size < anz or a.x.size < anz:
        raise ValueError("data incompletely specified")
    r_max = max(0, int(np.max(a.i[:anz]))) if anz else 0
    if r_max > a.m - 1:
        raise ValueError("number of rows in A inconsistent with input dimension")
    if p is None:
        return
    if p.n != a.n:
        raise ValueError(f"P dimension = {p.n}, inconsistent with n = {a.n}")
    if p.m != p.n:
        raise ValueError("P is not square")
    if p.x is None or p.i is None or p.p is None or p.p.size < p.n + 1:
        raise ValueError("data incompletely specified")
    rows, cols, _ = _entries(p)
    if np.any(rows > cols):
        raise ValueError("P is not upper triangular")


def _apply_limit(v: np.ndarray) -> np.ndarray:
    # Rows/columns of all zeros would blow up without bounding to 1.
    v = np.where(v < MIN_NORMALIZATION_FACTOR, 1.0, v)
    return np.where(v > MAX_NORMALIZATION_FACTOR, MAX_NORMALIZATION_FACTOR, v)


def _ruiz_factors(
    p: Optional[CscMatrix], a: CscMatrix, cone_work: ConeWork
) -> tuple[np.ndarray, np.ndarray]:
    rows, cols, vals = _entries(a)
    abs_vals = np.abs(vals)
    dt = np.zeros(a.m)
    np.maximum.at(dt, rows, abs_vals)
    dt = cone_work.enforce_cone_boundaries(dt, norm_inf)
    dt = 1.0 / np.sqrt(_apply_limit(dt))

    et = np.zeros(a.n)
    if p is not None:
        prow, pcol, pval = _entries(p)
        w = np.abs(pval)
        np.maximum.at(et, pcol, w)
        off = prow != pcol
        np.maximum.at(et, prow[off], w[off])
    col_inf = np.zeros(a.n)
    np.maximum.at(col_inf, cols, abs_vals)
    et = np.maximum(et, col_inf)
    et = 1.0 / np.sqrt(_apply_limit(et))
    return dt, et


def _l2_factors(
    p: Optional[CscMatrix], a: CscMatrix, cone_work: ConeWork
) -> tuple[np.ndarray, np.ndarray]:
    rows, cols, vals = _entries(a)
    sq_vals = vals * vals
    dt = np.zeros(a.m)
    np.add.at(dt, rows, sq_vals)
    dt = np.sqrt(dt)
    dt = cone_work.enforce_cone_boundaries(dt, mean)
    dt = 1.0 / np.sqrt(_apply_limit(dt))

    et = np.zeros(a.n)
    if p is not None:
        prow, pcol, pval = _entries(p)
        w = pval * pval
        np.add.at(et, pcol, w)
        off = prow != pcol
        np.add.at(et, prow[off], w[off])
    np.add.at(et, cols, sq_vals)
    et = 1.0 / np.sqrt(_apply_limit(np.sqrt(et)))
    return dt, et


def _rescale(
    p: Optional[CscMatrix], a: CscMatrix, dt: np.ndarray, et: np.ndarray
) -> None:
    rows, cols, vals = _entries(a)
    a.x[: vals.size] = vals * dt[rows] * et[cols]
    if p is not None:
        prow, pcol, pval = _entries(p)
        p.x[: pval.size] = pval * et[prow] * et[pcol]


def normalize_a_p(
    p: Optional[CscMatrix], a: CscMatrix, cone_work: ConeWork
) -> Normalized:
    """Equilibrate ``A -> D A E`` and ``P -> E P E``.

    ``D`` rescales the rows of ``A`` and is constant within each multi-row
    cone; ``E`` rescales the columns of ``A`` and rows and columns of ``P``.
    The inputs are left unchanged; scaled copies are returned.
    """
    a = a.copy()
    p = None if p is None else p.copy()
    d_total = np.ones(a.m)
    e_total = np.ones(a.n)
    for _ in range(NUM_RUIZ_PASSES):
        dt, et = _ruiz_factors(p, a, cone_work)
        _rescale(p, a, dt, et)
        d_total *= dt
        e_total *= et
    for _ in range(NUM_L2_PASSES):
        dt, et = _l2_factors(p, a, cone_work)
        _rescale(p, a, dt, et)
        d_total *= dt
        e_total *= et
    return Normalized(p, a, Scaling(d_total, e_total))


def _vectors(x: ArrayLike, y: ArrayLike, nx: int, ny: int) -> tuple[np.ndarray, np.ndarray]:
    xv = np.asarray(x, dtype=float).ravel()
    out = np.array(y, dtype=float).ravel()
    if xv.size != nx:
        raise ValueError(f"expected x of length {nx}, got {xv.size}")
    if out.size != ny:
        raise ValueError(f"expected y of length {ny}, got {out.size}")
    return xv, out


def accum_by_atrans(a: CscMatrix, x: ArrayLike, y: ArrayLike) -> np.ndarray:
    """Return ``y + A' x``."""
    xv, out = _vectors(x, y, a.m, a.n)
    rows, cols, vals = _entries(a)
    np.add.at(out, cols, vals * xv[rows])
    return out


def accum_by_a(a: CscMatrix, x: ArrayLike, y: ArrayLike) -> np.ndarray:
    """Return ``y + A x``."""
    xv, out = _vectors(x, y, a.n, a.m)
    rows, cols, vals = _entries(a)
    np.add.at(out, rows, vals * xv[cols])
    return out


def accum_by_p(p: CscMatrix, x: ArrayLike, y: ArrayLike) -> np.ndarray:
    """Return ``y + P x`` where ``P`` is stored as its upper triangle."""
    xv, out = _vectors(x, y, p.n, p.n)
    rows, cols, vals = _entries(p)
    off = rows != cols
    np.add.at(out, rows[off], vals[off] * xv[cols[off]])
    return accum_by_atrans(p, xv, out)