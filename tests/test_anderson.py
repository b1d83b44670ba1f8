import numpy as np
import pytest

from splitcone.anderson import AndersonAccelerator


def _make(dim=3, mem=3, type1=False, regularization=1e-10, relaxation=1.0,
          safeguard_factor=1.0, max_weight_norm=1e10):
    return AndersonAccelerator(dim, mem, type1, regularization, relaxation,
                               safeguard_factor, max_weight_norm, 0)


def _linear_map():
    m = np.array([[0.9, 0.05, 0.0], [0.0, 0.8, 0.1], [0.02, 0.0, 0.95]])
    b = np.array([1.0, -2.0, 0.5])
    x_star = np.linalg.solve(np.eye(3) - m, b)
    return (lambda x: m @ x + b), x_star


def test_memory_is_clamped_to_dimension():
    aa = _make(dim=2, mem=5)
    assert aa.mem == 2


def test_zero_memory_passes_through():
    aa = _make(mem=0)
    f = np.array([1.0, 2.0, 3.0])
    step = aa.apply(f, np.zeros(3))
    assert step.aa_norm == 0.0
    np.testing.assert_array_equal(step.f, f)
    assert aa.success is False


def test_no_solve_until_memory_full():
    g, _ = _linear_map()
    aa = _make(mem=3)
    x = np.zeros(3)
    norms = []
    for _ in range(4):
        f = g(x)
        step = aa.apply(f, x)
        norms.append(step.aa_norm)
        x = step.f
    assert norms[:3] == [0.0, 0.0, 0.0]
    assert norms[3] != 0.0
    assert aa.iteration == 4


@pytest.mark.parametrize("type1", [False, True])
def test_acceleration_beats_plain_iteration(type1):
    g, x_star = _linear_map()
    aa = _make(type1=type1)
    x_acc = np.zeros(3)
    x_plain = np.zeros(3)
    best_acc = np.inf
    for _ in range(12):
        x_acc = aa.apply(g(x_acc), x_acc).f
        x_plain = g(x_plain)
        best_acc = min(best_acc, np.linalg.norm(x_acc - x_star))
    plain_err = np.linalg.norm(x_plain - x_star)
    assert best_acc < 1e-6
    assert best_acc < plain_err


def test_relaxation_still_converges():
    g, x_star = _linear_map()
    aa = _make(relaxation=0.5)
    x = np.zeros(3)
    start = np.linalg.norm(x - x_star)
    best = np.inf
    for _ in range(15):
        x = aa.apply(g(x), x).f
        best = min(best, np.linalg.norm(x - x_star))
    assert best < start * 1e-3


def test_weight_norm_limit_rejects_and_resets():
    g, _ = _linear_map()
    aa = _make(max_weight_norm=1e-30)
    x = np.zeros(3)
    for _ in range(3):
        x = aa.apply(g(x), x).f
    f = g(x)
    step = aa.apply(f, x)
    assert step.aa_norm < 0
    np.testing.assert_array_equal(step.f, f)
    assert aa.success is False
    assert aa.iteration == 1


def test_safeguard_without_success_keeps_inputs():
    aa = _make()
    f = np.array([1.0, 2.0, 3.0])
    x = np.array([4.0, 5.0, 6.0])
    result = aa.safeguard(f, x)
    assert result.rejected is False
    np.testing.assert_array_equal(result.f, f)
    np.testing.assert_array_equal(result.x, x)


def test_safeguard_rejects_worse_step():
    g, _ = _linear_map()
    aa = _make()
    x = np.zeros(3)
    for _ in range(4):
        x_in = x
        f_in = g(x_in)
        x = aa.apply(f_in, x_in).f
    assert aa.success is True
    x_bad = np.full(3, 1e6)
    result = aa.safeguard(-x_bad, x_bad)
    assert result.rejected is True
    np.testing.assert_allclose(result.f, f_in)
    np.testing.assert_allclose(result.x, x_in)
    assert aa.iteration == 0
    assert aa.success is False


def test_safeguard_accepts_good_step():
    g, _ = _linear_map()
    aa = _make(safeguard_factor=1e6)
    x = np.zeros(3)
    for _ in range(4):
        x = aa.apply(g(x), x).f
    f_new = g(x)
    result = aa.safeguard(f_new, x)
    assert result.rejected is False
    np.testing.assert_array_equal(result.f, f_new)
    assert aa.success is False


def test_reset_sets_iteration_to_zero():
    aa = _make()
    aa.apply(np.ones(3), np.zeros(3))
    assert aa.iteration == 1
    aa.reset()
    assert aa.iteration == 0


def test_wrong_length_raises():
    aa = _make()
    with pytest.raises(ValueError):
        aa.apply(np.ones(2), np.ones(3))