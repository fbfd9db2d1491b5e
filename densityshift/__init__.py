# densityshift
"""
Kernel density estimation with mean shift mode seeking, clustering by mode
convergence and subspace constrained mean shift onto density ridges.
"""
from .balls import Balls, GridBalls, ListBalls, merge_balls
from .bandwidth import (
    calibrate_multiplier_cv,
    quantile_bandwidth,
    robust_fixed_bandwidth,
    scott_bandwidth,
    silverman_bandwidth,
)
from .density import calc_norm, calc_weight, draw, prob
from .exemplars import ExemplarSet
from .kernels import (
    EpanechnikovKernel,
    GaussianKernel,
    Kernel,
    StudentTKernel,
    TriangularKernel,
    UniformKernel,
    get_kernel,
)
from .manifold import manifold
from .model import MeanShift
from .modes import assign_cluster, cluster, mode, mode_merge
from .rng import PhiloxRNG
from .scoring import entropy, kl_divergence, loo_nll
from .spatial import BruteForceSpatial, KDTreeSpatial, Spatial

__version__ = "0.1.0"
