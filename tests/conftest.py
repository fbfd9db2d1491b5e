import numpy as np
import pytest

from densityshift import BruteForceSpatial, ExemplarSet, GaussianKernel, KDTreeSpatial


@pytest.fixture
def gaussian():
    return GaussianKernel()


@pytest.fixture
def scenario_exemplars():
    """Two near-identical points and one far away, with a bandwidth of 0.1."""
    return ExemplarSet([[0.0, 0.0], [0.0, 0.01], [5.0, 5.0]], scale=10.0)


@pytest.fixture(params=[BruteForceSpatial, KDTreeSpatial], ids=["brute_force", "kd_tree"])
def spatial_type(request):
    return request.param


@pytest.fixture
def line_exemplars():
    """Evenly spaced points along the x axis."""
    xs = np.linspace(-5.0, 5.0, 101)
    return ExemplarSet(np.column_stack([xs, np.zeros_like(xs)]))


@pytest.fixture
def normal_sample():
    rng = np.random.default_rng(7)
    return rng.standard_normal((1000, 1))
