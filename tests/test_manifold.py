"""
Tests for subspace constrained mean shift.
"""

import numpy as np
import pytest

from densityshift import BruteForceSpatial, ExemplarSet, KDTreeSpatial, manifold, mode


def test_projects_onto_line(line_exemplars):
    spatial = KDTreeSpatial(line_exemplars)
    fv = np.array([0.3, 0.8])
    manifold(spatial, 1, fv, epsilon=1e-6)
    assert fv[1] == pytest.approx(0.0, abs=1e-3)
    assert fv[0] == pytest.approx(0.3, abs=0.1)


def test_single_hessian_on_clean_data(line_exemplars):
    spatial = KDTreeSpatial(line_exemplars)
    fv = np.array([-1.2, -0.6])
    manifold(spatial, 1, fv, epsilon=1e-6, always_hessian=False)
    assert fv[1] == pytest.approx(0.0, abs=1e-3)
    assert fv[0] == pytest.approx(-1.2, abs=0.1)


def test_caller_buffers_are_filled(line_exemplars):
    spatial = BruteForceSpatial(line_exemplars)
    grad, hess = np.empty(2), np.empty((2, 2))
    eigen_val, eigen_vec = np.empty(2), np.empty((2, 2))
    manifold(spatial, 1, np.array([0.0, 0.5]), grad, hess, eigen_val, eigen_vec, epsilon=1e-6)

    np.testing.assert_array_equal(hess, hess.T)
    np.testing.assert_allclose(hess @ eigen_vec, eigen_vec * eigen_val, atol=1e-8)
    assert np.all(eigen_val < 1e-6)


def test_zero_degrees_is_mean_shift(gaussian):
    ex = ExemplarSet([[0.0, 0.0], [0.5, 0.2], [0.1, 0.6], [0.8, 0.9]])
    spatial = BruteForceSpatial(ex)
    start = np.array([1.0, -0.5])

    projected = start.copy()
    manifold(spatial, 0, projected, epsilon=1e-7)
    converged = start.copy()
    mode(spatial, gaussian, None, converged, epsilon=1e-7)
    np.testing.assert_allclose(projected, converged, atol=1e-4)


def test_plane_in_three_dimensions():
    grid = np.linspace(-3.0, 3.0, 25)
    xs, ys = np.meshgrid(grid, grid)
    data = np.column_stack([xs.ravel(), ys.ravel(), np.zeros(xs.size)])
    spatial = KDTreeSpatial(ExemplarSet(data))
    fv = np.array([0.2, -0.4, 0.7])
    manifold(spatial, 2, fv, epsilon=1e-6)
    assert fv[2] == pytest.approx(0.0, abs=1e-3)
    np.testing.assert_allclose(fv[:2], [0.2, -0.4], atol=0.1)


def test_degrees_checked(line_exemplars):
    spatial = BruteForceSpatial(line_exemplars)
    with pytest.raises(ValueError):
        manifold(spatial, 2, np.zeros(2))
    with pytest.raises(ValueError):
        manifold(spatial, 1, np.zeros(2), grad=np.zeros(3))
