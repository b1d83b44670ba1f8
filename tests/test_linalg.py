import math

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st

from splitcone.linalg import (
    dot,
    mean,
    norm_2,
    norm_diff,
    norm_inf,
    norm_inf_diff,
    norm_sq,
)

finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False)
vectors = st.lists(finite, min_size=1, max_size=20)


def test_norm_2_pythagorean_triple():
    assert norm_2([3.0, 4.0]) == pytest.approx(5.0)


@given(vectors)
def test_norm_sq_matches_self_dot(v):
    assert norm_sq(v) == pytest.approx(dot(v, v), rel=1e-9, abs=1e-9)


@given(vectors)
def test_norm_2_is_root_of_norm_sq(v):
    assert norm_2(v) == pytest.approx(math.sqrt(norm_sq(v)), rel=1e-12, abs=1e-12)


@given(st.floats(allow_nan=True, allow_infinity=True))
def test_norm_sq_single_value_never_fails(f):
    result = norm_sq([f])
    if math.isnan(f):
        assert math.isnan(result)
    else:
        assert result >= 0.0


@given(vectors)
def test_norm_diff_with_self_is_zero(v):
    assert norm_diff(v, v) == 0.0
    assert norm_inf_diff(v, v) == 0.0


@given(vectors, vectors)
def test_norm_inf_diff_matches_norm_inf_of_difference(a, b):
    n = min(len(a), len(b))
    a, b = a[:n], b[:n]
    diff = np.asarray(a) - np.asarray(b)
    assert norm_inf_diff(a, b) == norm_inf(diff)
    assert norm_diff(a, b) == pytest.approx(norm_2(diff), rel=1e-9, abs=1e-9)


@given(vectors)
def test_norm_inf_bounds_norm_2(v):
    assert norm_inf(v) <= norm_2(v) * (1 + 1e-12) + 1e-300
    assert norm_2(v) <= norm_inf(v) * math.sqrt(len(v)) * (1 + 1e-12) + 1e-300


@given(finite, st.integers(min_value=1, max_value=30))
def test_mean_of_constant_vector(value, count):
    assert mean([value] * count) == pytest.approx(value, rel=1e-12, abs=1e-12)


def test_empty_vectors():
    assert norm_inf([]) == 0.0
    assert norm_2([]) == 0.0
    assert math.isnan(mean([]))


def test_length_mismatch_raises():
    with pytest.raises(ValueError):
        dot([1.0, 2.0], [1.0])
    with pytest.raises(ValueError):
        norm_diff([1.0], [1.0, 2.0])
    with pytest.raises(ValueError):
        norm_inf_diff([1.0, 2.0, 3.0], [1.0])


@given(vectors, finite)
def test_dot_is_linear(v, scale):
    w = [scale * e for e in v]
    assert dot(v, w) == pytest.approx(scale * dot(v, v), rel=1e-9, abs=1e-6)