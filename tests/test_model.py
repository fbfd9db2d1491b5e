"""
Tests for the MeanShift facade.
"""

import numpy as np
import pytest

from densityshift import MeanShift, calc_norm, prob
from densityshift.datasets import generate_mixture, mode_mse


@pytest.fixture
def scenario():
    ms = MeanShift()
    ms.set_data([[0.0, 0.0], [0.0, 0.01], [5.0, 5.0]])
    ms.set_bandwidth(0.1)
    return ms


def test_requires_data():
    with pytest.raises(RuntimeError):
        MeanShift().prob([0.0])


def test_rejects_unknown_options():
    with pytest.raises(ValueError):
        MeanShift(kernel="box")
    with pytest.raises(ValueError):
        MeanShift(spatial="octree")
    with pytest.raises(ValueError):
        MeanShift(balls="tree")


def test_prob_matches_free_function(scenario):
    x = np.array([0.02, 0.03])
    expected = prob(
        scenario.spatial, scenario.kernel, None, x * scenario.exemplars.scale,
        calc_norm(scenario.exemplars, scenario.kernel, None, 3.0), scenario.quality,
    )
    assert scenario.prob(x) == pytest.approx(expected)
    assert scenario.probs([x, x]).shape == (2,)


def test_norm_recomputed_after_scale_change(scenario):
    before = scenario.norm()
    scenario.set_bandwidth(0.2)
    assert scenario.norm() == pytest.approx(before / 4.0)


def test_norm_recomputed_after_append(scenario):
    before = scenario.norm()
    scenario.exemplars.append([[1.0, 1.0]])
    assert scenario.weight() == 4.0
    assert scenario.norm() == pytest.approx(before * 3.0 / 4.0)


def test_cluster_scenario(scenario):
    labels, modes = scenario.cluster()
    assert len(modes) == 2
    assert labels[0] == labels[1] != labels[2]
    np.testing.assert_allclose(modes[labels[2]], [5.0, 5.0], atol=1e-3)
    assert scenario.assign_cluster([5.0, 5.01]) == labels[2]
    assert scenario.assign_cluster([20.0, 20.0]) == -1
    np.testing.assert_array_equal(scenario.assign_clusters([[0.0, 0.005], [5.0, 5.0]]), labels[[0, 2]])


@pytest.mark.parametrize("balls", ["list", "grid"])
def test_cluster_mixture_modes(balls):
    data, means = generate_mixture(400, [[-4.0, 0.0], [4.0, 0.0]], sd=1.0, seed=5)
    ms = MeanShift(balls=balls, ident_dist=0.1)
    ms.set_data(data)
    ms.set_bandwidth(1.0)
    labels, modes = ms.cluster()
    assert len(modes) == 2
    assert mode_mse(means, modes) < 0.3
    assert len(set(labels[:200])) == 1


def test_assign_requires_cluster(scenario):
    with pytest.raises(RuntimeError):
        scenario.assign_cluster([0.0, 0.0])


def test_set_scale_discards_clusters(scenario):
    scenario.cluster()
    scenario.set_bandwidth(0.2)
    assert scenario.balls is None


def test_mode_returns_unscaled_point(scenario):
    np.testing.assert_allclose(scenario.mode([0.0, 0.02]), [0.0, 0.005], atol=1e-3)
    assert scenario.modes([[5.0, 5.0], [0.0, 0.0]]).shape == (2, 2)


def test_draws_are_reproducible(scenario):
    a = scenario.draws(5, start=10)
    b = scenario.draws(5, start=10)
    np.testing.assert_array_equal(a, b)
    np.testing.assert_array_equal(scenario.draw(12), a[2])


def test_scores(scenario):
    assert np.isfinite(scenario.loo_nll(limit=1e-6))
    assert np.isfinite(scenario.entropy())
    assert scenario.kl(scenario) == pytest.approx(0.0, abs=1e-9)


def test_manifold_requires_gaussian():
    ms = MeanShift(kernel="epanechnikov")
    ms.set_data([[0.0, 0.0], [1.0, 0.0]])
    with pytest.raises(ValueError):
        ms.manifold([0.5, 0.5], 1)


def test_manifold_projects_scaled_line():
    xs = np.linspace(-10.0, 10.0, 201)
    ms = MeanShift(epsilon=1e-6)
    ms.set_data(np.column_stack([xs, np.full_like(xs, 3.0)]))
    ms.set_bandwidth(2.0)
    projected = ms.manifolds([[0.6, 4.5], [-2.0, 2.0]], 1)
    np.testing.assert_allclose(projected[:, 1], [3.0, 3.0], atol=1e-3)


def test_scale_loo_nll_picks_candidate():
    data, _ = generate_mixture(200, [0.0], seed=2)
    ms = MeanShift()
    ms.set_data(data)
    best = ms.scale_loo_nll(multipliers=[0.01, 1.0, 50.0])
    assert best == 1.0


def test_scale_rules_set_scale():
    data, _ = generate_mixture(200, [[0.0, 0.0]], sd=2.0, seed=2)
    ms = MeanShift()
    ms.set_data(data)
    for rule in (ms.scale_silverman, ms.scale_scott, ms.scale_robust, ms.scale_quantile):
        rule()
        assert np.all(ms.exemplars.scale != 1.0)


def test_scale_cv():
    data, _ = generate_mixture(150, [0.0], seed=6)
    ms = MeanShift()
    ms.set_data(data)
    assert ms.scale_cv(multipliers=[0.05, 1.0, 20.0], n_folds=3) == 1.0


def test_scale_robust():
    data, _ = generate_mixture(200, [[0.0, 0.0]], sd=2.0, seed=3)
    ms = MeanShift()
    ms.set_data(data)
    ms.scale_robust(c=0.5)
    mad = np.median(np.abs(data - np.median(data, axis=0)), axis=0) / 0.6745
    np.testing.assert_allclose(ms.exemplars.scale, 1.0 / (0.5 * mad))
