"""Cone descriptions and the combined projection onto a product of cones.

The rows of the constraint matrix are laid out cone by cone in this order:
zero cone, positive orthant, box cone, second-order cones, PSD cones,
primal exponential cones, dual exponential cones and power cones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from splitcone.projections import (
    normalize_box_cone,
    proj_box_cone,
    proj_exp_cone,
    proj_power_cone,
    proj_semi_definite_cone,
    proj_soc,
)

ArrayLike = Union[Sequence[float], np.ndarray]


def sd_cone_size(n: int) -> int:
    """Number of entries in the packed lower triangle of an ``n x n`` matrix."""
    return (n * (n + 1)) // 2


@dataclass
class Cone:
    """A product of cones.

    ``bsize`` counts the box cone's ``t`` entry, so ``bl`` and ``bu`` hold
    ``bsize - 1`` bounds. ``q`` and ``s`` list second-order and PSD cone
    sizes, ``p`` the power cone exponents (negative means the dual cone).
    """

    z: int = 0
    l: int = 0
    bsize: int = 0
    bl: Optional[Sequence[float]] = None
    bu: Optional[Sequence[float]] = None
    q: Sequence[int] = ()
    s: Sequence[int] = ()
    ep: int = 0
    ed: int = 0
    p: Sequence[float] = ()

    def __post_init__(self) -> None:
        self.z = int(self.z)
        self.l = int(self.l)
        self.bsize = int(self.bsize)
        self.ep = int(self.ep)
        self.ed = int(self.ed)
        self.q = tuple(int(v) for v in self.q)
        self.s = tuple(int(v) for v in self.s)
        self.p = tuple(float(v) for v in self.p)
        if self.bl is not None:
            self.bl = tuple(float(v) for v in self.bl)
        if self.bu is not None:
            self.bu = tuple(float(v) for v in self.bu)

    @property
    def qsize(self) -> int:
        return len(self.q)

    @property
    def ssize(self) -> int:
        return len(self.s)

    @property
    def psize(self) -> int:
        return len(self.p)


def cone_dims(cone: Cone) -> int:
    """Total number of rows the cone occupies."""
    total = cone.z + cone.l + cone.bsize
    total += sum(cone.q)
    total += sum(sd_cone_size(n) for n in cone.s)
    total += 3 * (cone.ed + cone.ep + cone.psize)
    return total


def validate_cones(cone: Cone, m: int) -> None:
    """Raise ``ValueError`` if the cone is malformed or does not span ``m`` rows."""
    dims = cone_dims(cone)
    if dims != m:
        raise ValueError(
            f"cone dimensions {dims} not equal to num rows in A = m = {m}"
        )
    if cone.z < 0:
        raise ValueError("free cone dimension error")
    if cone.l < 0:
        raise ValueError("lp cone dimension error")
    if cone.bsize:
        if cone.bsize < 0:
            raise ValueError("box cone dimension error")
        nbounds = cone.bsize - 1
        lower = cone.bl or ()
        upper = cone.bu or ()
        if len(lower) < nbounds or len(upper) < nbounds:
            raise ValueError("box cone bounds missing")
        for lo, hi in zip(lower[:nbounds], upper[:nbounds]):
            if lo > hi:
                raise ValueError(
                    "infeasible: box lower bound larger than upper bound"
                )
    if any(size < 0 for size in cone.q):
        raise ValueError("soc cone dimension error")
    if any(size < 0 for size in cone.s):
        raise ValueError("sd cone dimension error")
    if cone.ed < 0:
        raise ValueError("ed cone dimension error")
    if cone.ep < 0:
        raise ValueError("ep cone dimension error")
    if any(a < -1 or a > 1 for a in cone.p):
        raise ValueError("power cone error, values must be in [-1,1]")


def cone_header(cone: Cone) -> str:
    """Human-readable summary of the cone sizes."""
    lines = ["cones: "]
    if cone.z:
        lines.append(f"\t  z: primal zero / dual free vars: {cone.z}\n")
    if cone.l:
        lines.append(f"\t  l: linear vars: {cone.l}\n")
    if cone.bsize:
        lines.append(f"\t  b: box cone vars: {cone.bsize}\n")
    if cone.q:
        lines.append(f"\t  q: soc vars: {sum(cone.q)}, qsize: {cone.qsize}\n")
    if cone.s:
        sd_vars = sum(sd_cone_size(n) for n in cone.s)
        lines.append(f"\t  s: psd vars: {sd_vars}, ssize: {cone.ssize}\n")
    if cone.ep or cone.ed:
        lines.append(
            f"\t  e: exp vars: {3 * cone.ep}, dual exp vars: {3 * cone.ed}\n"
        )
    if cone.p:
        lines.append(f"\t  p: primal + dual power vars: {3 * cone.psize}\n")
    return "".join(lines)


def _cone_boundaries(cone: Cone) -> tuple[int, ...]:
    # First entry: rows that can be scaled independently; then block sizes.
    sizes = [cone.z + cone.l + cone.bsize]
    sizes.extend(cone.q)
    sizes.extend(sd_cone_size(n) for n in cone.s)
    sizes.extend([3] * (cone.ep + cone.ed))
    sizes.extend([3] * cone.psize)
    return tuple(sizes)


class ConeWork:
    """Per-solve state for projecting onto the product cone of ``m`` rows."""

    def __init__(self, cone: Cone, m: int) -> None:
        self.cone = cone
        self.m = int(m)
        self.scaled_cones = False
        self.box_t_warm_start = 0.0
        self.cone_boundaries = _cone_boundaries(cone)
        nbounds = max(cone.bsize - 1, 0)
        self.box_lower = np.array((cone.bl or ())[:nbounds], dtype=float)
        self.box_upper = np.array((cone.bu or ())[:nbounds], dtype=float)

    def set_r_y(self, scale: float) -> np.ndarray:
        """Diagonal metric for the ``y`` variable given the current scale."""
        r_y = np.full(self.m, 1.0 / scale)
        # The zero cone is the dual free cone: penalise it lightly.
        r_y[: self.cone.z] = 1.0 / (1000.0 * scale)
        return r_y

    def enforce_cone_boundaries(
        self, vec: ArrayLike, f: Callable[[np.ndarray], float]
    ) -> np.ndarray:
        """Replace each multi-row cone block of ``vec`` by ``f`` of that block."""
        out = np.array(vec, dtype=float).ravel()
        count = self.cone_boundaries[0]
        for delta in self.cone_boundaries[1:]:
            block = out[count : count + delta]
            out[count : count + delta] = f(block.copy())
            count += delta
        return out

    def _scale_box_cone(self, scaling: Any) -> None:
        cone = self.cone
        if cone.bsize and cone.bu is not None and cone.bl is not None:
            self.box_t_warm_start = 1.0
            if scaling is not None:
                start = cone.z + cone.l
                d = np.asarray(scaling.D, dtype=float)[start : start + cone.bsize]
                self.box_lower, self.box_upper = normalize_box_cone(
                    self.box_lower, self.box_upper, d
                )

    def _proj_cone(self, x: np.ndarray, r_y: Optional[np.ndarray]) -> np.ndarray:
        cone = self.cone
        count = 0
        if cone.z:
            x[: cone.z] = 0.0
            count += cone.z
        if cone.l:
            x[count : count + cone.l] = np.maximum(x[count : count + cone.l], 0.0)
            count += cone.l
        if cone.bsize:
            end = count + cone.bsize
            r_box = None if r_y is None else r_y[count:end]
            x[count:end], self.box_t_warm_start = proj_box_cone(
                x[count:end],
                self.box_lower,
                self.box_upper,
                self.box_t_warm_start,
                r_box,
            )
            count = end
        for size in cone.q:
            x[count : count + size] = proj_soc(x[count : count + size])
            count += size
        for n in cone.s:
            size = sd_cone_size(n)
            x[count : count + size] = proj_semi_definite_cone(
                x[count : count + size], n
            )
            count += size
        for _ in range(cone.ep):
            x[count : count + 3] = proj_exp_cone(x[count : count + 3])
            count += 3
        for _ in range(cone.ed):
            # Dual exponential cone via Moreau on the negated block.
            v = -x[count : count + 3]
            x[count : count + 3] = proj_exp_cone(v) - v
            count += 3
        for a in cone.p:
            block = x[count : count + 3]
            if a >= 0:
                x[count : count + 3] = proj_power_cone(block, a)
            else:
                x[count : count + 3] = block + proj_power_cone(-block, -a)
            count += 3
        return x

    def proj_dual_cone(
        self,
        x: ArrayLike,
        scaling: Any = None,
        r_y: Optional[ArrayLike] = None,
    ) -> np.ndarray:
        """Project ``x`` onto the dual cone, under the ``diag(r_y)^-1`` norm.

        Uses ``x + R^{-1} Pi_K(-R x)``. ``scaling``, if given, must carry a
        diagonal ``D`` used once to rescale the box cone bounds.
        """
        if not self.scaled_cones:
            self._scale_box_cone(scaling)
            self.scaled_cones = True
        s = np.array(x, dtype=float).ravel()
        if s.size != self.m:
            raise ValueError(f"expected a vector of length {self.m}, got {s.size}")
        ry = None if r_y is None else np.array(r_y, dtype=float).ravel()
        if ry is not None and ry.size != self.m:
            raise ValueError("metric vector must have one entry per row")
        work = -s * ry if ry is not None else -s
        projected = self._proj_cone(work, ry)
        if ry is not None:
            return projected / ry + s
        return projected + s