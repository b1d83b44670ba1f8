"""Anderson acceleration of a fixed-point map.

Notation, for an iterate ``x`` and the map output ``f = f(x)``:
``g = x - f``, ``s = x - x_prev``, ``y = g - g_prev`` and ``d = f - f_prev``.
Capital letters are the quantities stacked as columns of a circular memory.

Type-I:  ``f <- f - D (S'Y + r I)^{-1} S'g``
Type-II: ``f <- f - D (Y'Y + r I)^{-1} Y'g``
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]

# Only solve once the memory holds a full set of columns.
_FILL_MEMORY_BEFORE_SOLVE = True


class AAStep(NamedTuple):
    """Result of one acceleration step."""

    f: np.ndarray
    aa_norm: float


class SafeguardResult(NamedTuple):
    """Result of a safeguard check; ``rejected`` means the step was undone."""

    f: np.ndarray
    x: np.ndarray
    rejected: bool


class AndersonAccelerator:
    """Accelerates a fixed-point iteration ``x <- f(x)`` of dimension ``dim``."""

    def __init__(
        self,
        dim: int,
        mem: int,
        type1: bool,
        regularization: float,
        relaxation: float,
        safeguard_factor: float,
        max_weight_norm: float,
        verbosity: int,
    ) -> None:
        self.dim = int(dim)
        self.mem = min(int(mem), self.dim)  # for rank stability
        self.type1 = bool(type1)
        self.regularization = float(regularization)
        self.relaxation = float(relaxation)
        self.safeguard_factor = float(safeguard_factor)
        self.max_weight_norm = float(max_weight_norm)
        self.verbosity = int(verbosity)
        self.iteration = 0
        self.success = False
        self.norm_g = 0.0
        if self.mem <= 0:
            return
        dim, mem = self.dim, self.mem
        self._x = np.zeros(dim)
        self._f = np.zeros(dim)
        self._g = np.zeros(dim)
        self._g_prev = np.zeros(dim)
        self._Y = np.zeros((dim, mem))
        self._S = np.zeros((dim, mem))
        self._D = np.zeros((dim, mem))
        self._work = np.zeros(mem)
        self._x_work: Optional[np.ndarray] = (
            np.zeros(dim) if self.relaxation != 1.0 else None
        )

    def _as_vector(self, v: ArrayLike) -> np.ndarray:
        arr = np.array(v, dtype=float).ravel()
        if arr.size != self.dim:
            raise ValueError(f"expected a vector of length {self.dim}, got {arr.size}")
        return arr

    def _init_params(self, x: np.ndarray, f: np.ndarray) -> None:
        self._x = x.copy()
        self._f = f.copy()
        self._g_prev = x - f

    def _update_params(self, x: np.ndarray, f: np.ndarray) -> None:
        idx = (self.iteration - 1) % self.mem
        g = x - f
        s = x - self._x
        d = f - self._f
        y = g - self._g_prev
        self._Y[:, idx] = y
        self._S[:, idx] = s
        self._D[:, idx] = d
        self._f = f.copy()
        self._x = x.copy()
        if self._x_work is not None:
            self._x_work = x.copy()
        self._g = g
        self._g_prev = g.copy()
        self._norm_g_update()

    def _norm_g_update(self) -> None:
        self.norm_g = float(np.linalg.norm(self._g))

    def _left(self, length: int) -> np.ndarray:
        return (self._S if self.type1 else self._Y)[:, :length]

    def _build_m(self, length: int) -> np.ndarray:
        m = self._left(length).T @ self._Y[:, :length]
        if self.regularization > 0:
            nrm_m = float(np.linalg.norm(m))
            r = self.regularization * nrm_m
            if self.verbosity > 2:
                logger.info(
                    "iter: %i, norm: M %.2e, r: %.2e", self.iteration, nrm_m, r
                )
            m = m + r * np.eye(length)
        return m

    def _solve(self, f: np.ndarray, length: int) -> tuple[np.ndarray, float]:
        m = self._build_m(length)
        rhs = self._left(length).T @ self._g
        try:
            work = np.linalg.solve(m, rhs)
            info = 0
        except np.linalg.LinAlgError:
            work = rhs
            info = 1
        aa_norm = float(np.linalg.norm(work))
        kind = 1 if self.type1 else 2
        if self.verbosity > 1:
            logger.info(
                "AA type %i, iter: %i, len %i, info: %i, aa_norm %.2e",
                kind, self.iteration, length, info, aa_norm,
            )
        if info != 0 or aa_norm >= self.max_weight_norm:
            if self.verbosity > 0:
                logger.warning(
                    "Error in AA type %i, iter: %i, len %i, info: %i, aa_norm %.2e",
                    kind, self.iteration, length, info, aa_norm,
                )
            self.success = False
            self.reset()
            return f, -aa_norm

        self._work = work
        f = f - self._D[:, :length] @ work
        if self.relaxation != 1.0 and self._x_work is not None:
            x_work = self._x_work - self._S[:, :length] @ work
            self._x_work = x_work
            f = self.relaxation * f + (1.0 - self.relaxation) * x_work
        self.success = True
        return f, aa_norm

    def apply(self, f: ArrayLike, x: ArrayLike) -> AAStep:
        """Take one step given map output ``f`` at input ``x``.

        Returns the (possibly accelerated) next iterate and the norm of the
        acceleration weights; the norm is 0 when no solve happened and
        negative when the solve was rejected.
        """
        f_arr = self._as_vector(f)
        x_arr = self._as_vector(x)
        self.success = False
        if self.mem <= 0:
            return AAStep(f_arr, 0.0)
        length = min(self.iteration, self.mem)
        if self.iteration == 0:
            self._init_params(x_arr, f_arr)
            self.iteration += 1
            return AAStep(f_arr, 0.0)

        self._update_params(x_arr, f_arr)
        aa_norm = 0.0
        if not _FILL_MEMORY_BEFORE_SOLVE or self.iteration >= self.mem:
            f_arr, aa_norm = self._solve(f_arr, length)
        self.iteration += 1
        return AAStep(f_arr, aa_norm)

    def safeguard(self, f_new: ArrayLike, x_new: ArrayLike) -> SafeguardResult:
        """Reject the last accelerated step if it increased the residual.

        On rejection the previous map input and output are returned and the
        accelerator is reset.
        """
        f_arr = self._as_vector(f_new)
        x_arr = self._as_vector(x_new)
        if not self.success:
            return SafeguardResult(f_arr, x_arr, False)
        self.success = False
        norm_diff = float(np.linalg.norm(x_arr - f_arr))
        if norm_diff > self.safeguard_factor * self.norm_g:
            if self.verbosity > 0:
                logger.warning(
                    "AA rejection, iter: %i, norm_diff %.4e, prev_norm_diff %.4e",
                    self.iteration, norm_diff, self.norm_g,
                )
            f_prev, x_prev = self._f.copy(), self._x.copy()
            self.reset()
            return SafeguardResult(f_prev, x_prev, True)
        return SafeguardResult(f_arr, x_arr, False)

    def reset(self) -> None:
        """Forget the stored history."""
        if self.verbosity > 0:
            logger.info("AA reset.")
        self.iteration = 0