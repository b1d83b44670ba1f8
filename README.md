# splitcone

Numerical building blocks for a first-order splitting solver of conic
optimization problems. It is built on NumPy. Every routine returns new arrays
and leaves its inputs unchanged.

## Modules

- `splitcone.linalg` has small vector helpers: `norm_2`, `norm_sq`,
  `norm_inf`, `norm_diff`, `norm_inf_diff`, `dot` and `mean`.
  - Vectors of different lengths raise `ValueError`.
  - `norm_inf` and `norm_inf_diff` return 0 for empty input.
  - `mean` of an empty vector is NaN.
- `splitcone.projections` has Euclidean projections onto single cones:
  - `proj_soc` projects onto the second-order cone.
  - `proj_exp_cone` projects a 3-vector onto the exponential cone.
  - `proj_power_cone(v, a)` projects onto a power cone with exponent `a`.
  - `proj_box_cone(tx, bl, bu, t_warm_start, r_box)` projects onto a box cone. It returns the projected vector and the final `t`.
  - `normalize_box_cone(bl, bu, d)` rescales the box limits. Limits at or beyond `MAX_BOX_VAL` in size become infinite.
  - `proj_semi_definite_cone(x, n)` projects onto the PSD cone. The vector holds the lower triangle column by column, with off-diagonal entries scaled by `sqrt(2)`.
- `splitcone.cones` describes a product of cones:
  - A `Cone` dataclass with fields `z`, `l`, `bsize`, `bl`, `bu`, `q`, `s`, `ep`, `ed` and `p`. `bsize` counts the box cone's `t` entry, so `bl` and `bu` hold `bsize - 1` bounds.
  - `cone_dims` gives the number of rows the cone spans.
  - `validate_cones(cone, m)` raises `ValueError` when the cone is malformed.
  - `cone_header` returns a text summary.
  - `sd_cone_size(n)` gives the number of entries in a packed `n x n` triangle.
  - `ConeWork(cone, m)` holds the state of a projection.
    - `proj_dual_cone(x, scaling, r_y)` returns the projection of `x` onto the dual of the product cone. `r_y` is an optional diagonal metric.
    - `set_r_y(scale)` returns the per-row metric vector.
    - `enforce_cone_boundaries(vec, f)` replaces each multi-row cone block by `f` of that block.
- `splitcone.anderson` provides `AndersonAccelerator`, type-I or type-II Anderson acceleration of a fixed-point map. It supports regularization and relaxation, and has a safeguard step.
  - `apply(f, x)` returns an `AAStep(f, aa_norm)`.
  - `safeguard(f_new, x_new)` returns a `SafeguardResult(f, x, rejected)`.
  - `reset()` clears the stored history.
- `splitcone.matrix` provides `CscMatrix`, a matrix in compressed sparse column form with `copy()`. The module also has:
  - `accum_by_a`, `accum_by_atrans` and `accum_by_p`, which return `y + A x`, `y + A' x` and `y + P x`. `P` is stored as its upper triangle.
  - `validate_lin_sys(a, p)`, which raises `ValueError` on bad input.
  - `normalize_a_p(p, a, cone_work)`, which runs Ruiz and l2 equilibration. It returns a `Normalized(p, a, scaling)` with a `Scaling` holding the diagonals `D` and `E`.
- `splitcone.interrupt` provides `InterruptListener`, a context manager. While it is active, Ctrl-C is recorded instead of raising `KeyboardInterrupt`. A loop can poll `is_interrupted()` and stop cleanly.

## What is not included

This package holds the parts of a conic solver, not the solver itself:

- There is no top-level solve function and no linear-system solver.
- It cannot read or write problem files.
- It has no command-line program.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Examples

Projecting onto the dual of a product cone:

```python
import numpy as np
from splitcone.cones import Cone, ConeWork

cone = Cone(l=2, q=[3])
work = ConeWork(cone, m=5)

y = np.array([-1.0, 2.0, 0.5, 3.0, 4.0])
projected = work.proj_dual_cone(y, None, None)
print(projected)
```

Anderson acceleration of a fixed-point iteration:

```python
import numpy as np
from splitcone.anderson import AndersonAccelerator

acc = AndersonAccelerator(dim=3, mem=3, type1=False, regularization=1e-8,
                          relaxation=1.0, safeguard_factor=1.0,
                          max_weight_norm=1e10, verbosity=0)
x = np.zeros(3)
for _ in range(20):
    f = 0.5 * x + 1.0          # the map
    step = acc.apply(f, x)
    x = step.f                 # accelerated next iterate
print(x)                       # close to [2, 2, 2]
```