"""
Tests for weight, normalisation, density evaluation and sampling.
"""

import numpy as np
import pytest
from scipy import integrate

from densityshift import (
    BruteForceSpatial,
    ExemplarSet,
    KDTreeSpatial,
    PhiloxRNG,
    calc_norm,
    calc_weight,
    draw,
    get_kernel,
    prob,
)


def test_calc_weight_sums_weights():
    ex = ExemplarSet([[0.0], [1.0], [2.0]], weights=[0.5, 2.0, 1.5])
    assert calc_weight(ex) == pytest.approx(4.0)


def test_calc_weight_grows_with_positive_weight():
    ex = ExemplarSet([[0.0], [1.0]])
    before = calc_weight(ex)
    ex.append([[3.0]], weights=[0.25])
    assert calc_weight(ex) > before


def test_calc_weight_empty():
    assert calc_weight(ExemplarSet(np.empty((0, 2)))) == 0.0


def test_calc_norm(gaussian):
    ex = ExemplarSet([[0.0, 0.0], [1.0, 1.0]], scale=[2.0, 4.0])
    expected = (2.0 * np.pi) ** -1.0 * 8.0 / 2.0
    assert calc_norm(ex, gaussian, None, calc_weight(ex)) == pytest.approx(expected)
    assert calc_norm(ex, gaussian, None, 0.0) == 0.0


@pytest.mark.parametrize(
    "name, config",
    [("gaussian", None), ("student_t", 3.0), ("uniform", None), ("triangular", None), ("epanechnikov", None)],
)
def test_prob_integrates_to_one(name, config):
    kernel = get_kernel(name)
    ex = ExemplarSet([[0.0], [1.0], [3.0]], weights=[1.0, 2.0, 1.0], scale=2.0)
    spatial = KDTreeSpatial(ex)
    norm = calc_norm(ex, kernel, config, calc_weight(ex))

    xs = np.arange(-15.0, 18.0, 0.01)
    ps = np.array([prob(spatial, kernel, config, np.array([x]) * ex.scale, norm, 1.0) for x in xs])

    assert np.all(ps >= 0.0)
    assert integrate.trapezoid(ps, xs) == pytest.approx(1.0, abs=0.02)


def test_prob_matches_direct_sum(gaussian):
    ex = ExemplarSet([[0.0, 0.0], [1.0, 0.5]], weights=[1.0, 3.0], scale=[1.0, 2.0])
    spatial = BruteForceSpatial(ex)
    norm = calc_norm(ex, gaussian, None, calc_weight(ex))
    x = np.array([0.5, 0.25])

    h = 1.0 / ex.scale
    direct = sum(
        w * np.exp(-0.5 * np.sum(((x - d) / h) ** 2)) / (2.0 * np.pi * np.prod(h))
        for d, w in zip(ex.data, ex.weights)
    ) / 4.0
    assert prob(spatial, gaussian, None, x * ex.scale, norm, 1.0) == pytest.approx(direct, rel=1e-6)


def test_prob_uses_point_weights(gaussian):
    plain = ExemplarSet([[0.0], [2.0]])
    weighted = ExemplarSet([[0.0], [2.0]], point_weights=[1.0, 0.0])
    norm = calc_norm(plain, gaussian, None, 2.0)
    x = np.array([2.0])
    assert prob(BruteForceSpatial(weighted), gaussian, None, x, norm, 1.0) < prob(
        BruteForceSpatial(plain), gaussian, None, x, norm, 1.0
    )


def test_prob_zero_outside_support():
    kernel = get_kernel("uniform")
    ex = ExemplarSet([[0.0, 0.0]])
    spatial = BruteForceSpatial(ex)
    assert prob(spatial, kernel, None, np.array([10.0, 10.0]), 1.0, 0.5) == 0.0


def test_draw_is_deterministic(gaussian):
    ex = ExemplarSet([[0.0, 0.0], [4.0, 4.0]], scale=2.0)
    rng = PhiloxRNG(seed=9)
    a = draw(ex, gaussian, None, rng, 3)
    b = draw(ex, gaussian, None, PhiloxRNG(seed=9), 3)
    np.testing.assert_array_equal(a, b)
    assert not np.array_equal(a, draw(ex, gaussian, None, rng, 4))


def test_draw_respects_weights():
    kernel = get_kernel("uniform")
    ex = ExemplarSet([[0.0, 0.0], [10.0, 10.0]], weights=[1.0, 0.0])
    rng = PhiloxRNG()
    out = np.empty(2)
    for i in range(50):
        draw(ex, kernel, None, rng, i, out)
        assert np.linalg.norm(out) <= 1.0


def test_draw_moments_in_unscaled_space(gaussian):
    ex = ExemplarSet([[3.0]], scale=2.0)
    rng = PhiloxRNG(seed=1)
    samples = np.array([draw(ex, gaussian, None, rng, i)[0] for i in range(2000)])
    assert samples.mean() == pytest.approx(3.0, abs=0.05)
    assert samples.std() == pytest.approx(0.5, abs=0.05)


def test_draw_checks_output_length(gaussian):
    ex = ExemplarSet([[0.0, 0.0]])
    with pytest.raises(ValueError):
        draw(ex, gaussian, None, PhiloxRNG(), 0, np.empty(3))
