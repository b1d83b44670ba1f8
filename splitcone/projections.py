"""Euclidean projections onto the individual cones the solver supports.

Every function takes its input by value and returns new arrays.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Union

import numpy as np

from splitcone.linalg import norm_2

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]

CONE_TOL = 1e-9
CONE_THRESH = 1e-8
EXP_CONE_MAX_ITERS = 100
BOX_CONE_MAX_ITERS = 25
POW_CONE_MAX_ITERS = 20
# Box cone limits at or beyond this magnitude are taken to be infinite.
MAX_BOX_VAL = 1e15


def _vector(v: ArrayLike) -> np.ndarray:
    return np.array(v, dtype=float).ravel()


def _exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _div(a: float, b: float) -> float:
    if b != 0:
        return a / b
    if a == 0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


# ---------------------------------------------------------------- exp cone


def _exp_newton_one_d(rho: float, y_hat: float, z_hat: float, w: float) -> float:
    t = max(w - z_hat, max(-z_hat, 1e-9))
    t_prev = t
    f = fp = 1.0
    for _ in range(EXP_CONE_MAX_ITERS):
        t_prev = t
        f = t * (t + z_hat) / rho / rho - y_hat / rho + math.log(t / rho) + 1
        fp = (2 * t + z_hat) / rho / rho + 1 / t
        t = t - f / fp
        if t <= -z_hat:
            t = -z_hat
            break
        if t <= 0:
            t = 0.0
            break
        if abs(t - t_prev) < CONE_TOL:
            break
        if math.sqrt(f * f / fp) < CONE_TOL:
            break
    else:
        logger.warning(
            "exp cone newton step hit maximum %i iters: rho=%1.5e; y_hat=%1.5e; "
            "z_hat=%1.5e; w=%1.5e; f=%1.5e, fp=%1.5e, t=%1.5e, t_prev= %1.5e",
            EXP_CONE_MAX_ITERS, rho, y_hat, z_hat, w, f, fp, t, t_prev,
        )
    return t + z_hat


def _exp_solve_for_x(v: np.ndarray, x: list, rho: float, w: float) -> None:
    x[2] = _exp_newton_one_d(rho, v[1], v[2], w)
    x[1] = (x[2] - v[2]) * x[2] / rho
    x[0] = v[0] - rho


def _exp_calc_grad(v: np.ndarray, x: list, rho: float, w: float) -> float:
    _exp_solve_for_x(v, x, rho, w)
    if x[1] <= 1e-12:
        return x[0]
    return x[0] + x[1] * math.log(x[1] / x[2])


def proj_exp_cone(v: ArrayLike) -> np.ndarray:
    """Project a 3-vector ``(r, s, t)`` onto the exponential cone."""
    arr = _vector(v)
    if arr.size != 3:
        raise ValueError(f"exponential cone vectors have length 3, got {arr.size}")
    r, s, t = (float(c) for c in arr)

    # v in cl(Kexp)
    if (s > 0 and s * _exp(r / s) - t <= CONE_THRESH) or (
        r <= 0 and s == 0 and t >= 0
    ):
        return arr
    # -v in Kexp^*
    if (r > 0 and r * _exp(s / r) + math.e * t <= CONE_THRESH) or (
        r == 0 and s <= 0 and t <= 0
    ):
        return np.zeros(3)
    # analytical solution
    if r < 0 and s < 0:
        return np.array([r, 0.0, max(t, 0.0)])

    x = [0.0, 0.0, 0.0]
    lb, ub = 0.0, 0.125
    while _exp_calc_grad(arr, x, ub, arr[1]) > 0:
        lb = ub
        ub *= 2
    for _ in range(EXP_CONE_MAX_ITERS):
        rho = (ub + lb) / 2
        g = _exp_calc_grad(arr, x, rho, x[1])
        if g > 0:
            lb = rho
        else:
            ub = rho
        if ub - lb < CONE_TOL:
            break
    else:
        logger.warning(
            "exp cone outer step hit maximum %i iters: r=%1.5e; s=%1.5e; t=%1.5e",
            EXP_CONE_MAX_ITERS, r, s, t,
        )
    return np.array(x, dtype=float)


# ---------------------------------------------------------------- SOC


def proj_soc(x: ArrayLike) -> np.ndarray:
    """Project onto the second-order cone ``{(t, z) : ||z|| <= t}``."""
    arr = _vector(x)
    q = arr.size
    if q == 0:
        return arr
    if q == 1:
        arr[0] = max(arr[0], 0.0)
        return arr
    v1 = float(arr[0])
    s = norm_2(arr[1:])
    alpha = (s + v1) / 2.0
    if s <= v1:
        return arr
    if s <= -v1:
        return np.zeros(q)
    arr[0] = alpha
    arr[1:] *= alpha / s
    return arr


# ---------------------------------------------------------------- power cone


def _pow_calc_x(r: float, xh: float, rh: float, a: float) -> float:
    x = 0.5 * (xh + math.sqrt(max(xh * xh + 4 * a * (rh - r) * r, 0.0)))
    return max(x, 1e-12)


def _pow_calc_dxdr(x: float, xh: float, rh: float, r: float, a: float) -> float:
    return _div(a * (rh - 2 * r), 2 * x - xh)


def _pow_calc_f(x: float, y: float, r: float, a: float) -> float:
    return x**a * y ** (1 - a) - r


def _pow_calc_fp(x: float, y: float, dxdr: float, dydr: float, a: float) -> float:
    return x**a * y ** (1 - a) * (a * dxdr / x + (1 - a) * dydr / y) - 1


def proj_power_cone(v: ArrayLike, a: float) -> np.ndarray:
    """Project ``(x, y, z)`` onto ``{x^a y^(1-a) >= |z|, x, y >= 0}``."""
    arr = _vector(v)
    if arr.size != 3:
        raise ValueError(f"power cone vectors have length 3, got {arr.size}")
    a = float(a)
    xh, yh, z = (float(c) for c in arr)
    rh = abs(z)

    if xh >= 0 and yh >= 0 and CONE_THRESH + xh**a * yh ** (1 - a) >= rh:
        return arr
    if (
        xh <= 0
        and yh <= 0
        and CONE_THRESH + (-xh) ** a * (-yh) ** (1 - a)
        >= rh * a**a * (1 - a) ** (1 - a)
    ):
        return np.zeros(3)

    x = y = 0.0
    r = rh / 2
    for _ in range(POW_CONE_MAX_ITERS):
        x = _pow_calc_x(r, xh, rh, a)
        y = _pow_calc_x(r, yh, rh, 1 - a)
        f = _pow_calc_f(x, y, r, a)
        if abs(f) < CONE_TOL:
            break
        dxdr = _pow_calc_dxdr(x, xh, rh, r, a)
        dydr = _pow_calc_dxdr(y, yh, rh, r, 1 - a)
        fp = _pow_calc_fp(x, y, dxdr, dydr, a)
        r = max(r - _div(f, fp), 0.0)
        r = min(r, rh)
    return np.array([x, y, -r if z < 0 else r])


# ---------------------------------------------------------------- box cone


def normalize_box_cone(
    bl: ArrayLike, bu: ArrayLike, d: Optional[ArrayLike]
) -> tuple[np.ndarray, np.ndarray]:
    """Rescale box limits by the diagonal ``d`` (``d[0]`` scales ``t``).

    Limits at or beyond ``MAX_BOX_VAL`` in magnitude become infinite.
    Returns the new ``(bl, bu)``.
    """
    lower = _vector(bl)
    upper = _vector(bu)
    if lower.size != upper.size:
        raise ValueError("box bounds have different lengths")
    scale = None if d is None else _vector(d)
    if scale is not None and scale.size < upper.size + 1:
        raise ValueError("scaling vector too short for box cone")
    for j in range(upper.size):
        factor = 1.0 if scale is None else scale[j + 1] / scale[0]
        if upper[j] >= MAX_BOX_VAL:
            upper[j] = math.inf
        elif scale is not None:
            upper[j] = scale[j + 1] * upper[j] / scale[0]
        if lower[j] <= -MAX_BOX_VAL:
            lower[j] = -math.inf
        elif scale is not None:
            lower[j] = scale[j + 1] * lower[j] / scale[0]
        del factor
    return lower, upper


def proj_box_cone(
    tx: ArrayLike,
    bl: ArrayLike,
    bu: ArrayLike,
    t_warm_start: float,
    r_box: Optional[ArrayLike],
) -> tuple[np.ndarray, float]:
    """Project ``(t, s)`` onto ``{t * bl <= s <= t * bu, t >= 0}``.

    Newton's method on ``t``; ``r_box`` gives the inverse diagonal metric.
    Returns the projected vector and the final ``t``.
    """
    arr = _vector(tx)
    bsize = arr.size
    if bsize == 0:
        raise ValueError("box cone must have at least one entry")
    if bsize == 1:
        arr[0] = max(arr[0], 0.0)
        return arr, float(arr[0])
    lower = _vector(bl)
    upper = _vector(bu)
    if lower.size != bsize - 1 or upper.size != bsize - 1:
        raise ValueError("box bounds must have one entry fewer than the cone")
    rb = None if r_box is None else _vector(r_box)
    if rb is not None and rb.size != bsize:
        raise ValueError("metric vector must match the cone length")

    t0 = float(arr[0])
    x = arr[1:]
    rho_t = 1.0 if rb is None else 1.0 / rb[0]
    weights = np.ones(bsize - 1) if rb is None else rb[1:]
    t = float(t_warm_start)

    with np.errstate(invalid="ignore"):
        for _ in range(BOX_CONE_MAX_ITERS):
            t_prev = t
            gt = rho_t * (t - t0)
            ht = rho_t
            for xj, lj, uj, wj in zip(x, lower, upper, weights):
                if xj > t * uj:
                    gt += wj * (t * uj - xj) * uj
                    ht += wj * uj * uj
                elif xj < t * lj:
                    gt += wj * (t * lj - xj) * lj
                    ht += wj * lj * lj
            t = max(t - gt / max(ht, 1e-8), 0.0)
            if abs(gt / max(ht, 1e-6)) < 1e-12 * max(t, 1.0) or abs(
                t - t_prev
            ) < 1e-11 * max(t, 1.0):
                break
        else:
            logger.warning("box cone proj hit maximum %i iters", BOX_CONE_MAX_ITERS)

        hi = t * upper
        lo = t * lower
        x = np.where(x > hi, hi, np.where(x < lo, lo, x))
    out = np.empty(bsize)
    out[0] = t
    out[1:] = x
    return out, float(t)


# ---------------------------------------------------------------- PSD cone


def proj_semi_definite_cone(x: ArrayLike, n: int) -> np.ndarray:
    """Project a packed ``n x n`` symmetric matrix onto the PSD cone.

    ``x`` holds the lower triangle column by column, with off-diagonal
    entries scaled by ``sqrt(2)``.
    """
    n = int(n)
    if n < 0:
        raise ValueError("matrix dimension must be non-negative")
    arr = _vector(x)
    size = n * (n + 1) // 2
    if arr.size != size:
        raise ValueError(f"packed matrix of dimension {n} has {size} entries")
    if n == 0:
        return arr
    if n == 1:
        arr[0] = max(arr[0], 0.0)
        return arr

    cols, rows = np.triu_indices(n)
    sqrt2 = math.sqrt(2.0)
    full = np.zeros((n, n))
    full[rows, cols] = arr
    full[cols, rows] = arr
    full[np.diag_indices(n)] *= sqrt2

    eigvals, eigvecs = np.linalg.eigh(full)
    positive = eigvals > 0
    if not positive.any():
        return np.zeros(size)
    z = eigvecs[:, positive] * np.sqrt(eigvals[positive])
    xs = z @ z.T
    xs[np.diag_indices(n)] /= sqrt2
    return xs[rows, cols].copy()