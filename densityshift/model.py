# model.py
"""
MeanShift: one object holding the data, kernel and settings of a density estimate.

Points given to and returned from its methods are in the data's own (unscaled)
space; the object converts to and from transformed space, caches the weight and
normalising constant, and rebuilds the spatial index when the data changes.
"""
import logging

import numpy as np

from . import density, modes, scoring
from .balls import GridBalls, ListBalls
from .bandwidth import (
    calibrate_multiplier_cv,
    quantile_bandwidth,
    robust_fixed_bandwidth,
    scott_bandwidth,
    silverman_bandwidth,
)
from .exemplars import ExemplarSet
from .kernels import GaussianKernel, Kernel, get_kernel
from .manifold import manifold as project_to_manifold
from .rng import PhiloxRNG
from .spatial import SPATIALS

logger = logging.getLogger(__name__)

BALLS = {"list": ListBalls, "grid": GridBalls}


class MeanShift:
    """
    Kernel density estimate with mean shift clustering and ridge projection.

    Args:
        kernel (str or Kernel): Kernel family, by name or instance.
        config: Kernel configuration (e.g. degrees of freedom for 'student_t').
        spatial (str): 'kd_tree' or 'brute_force'.
        balls (str): Mode registry used by `cluster`, 'list' or 'grid'.
        quality (float): Search range quality in [0, 1].
        epsilon (float): Convergence threshold on step size, transformed space.
        iter_cap (int): Maximum steps of any iterative method.
        ident_dist (float): Path shortening distance for `cluster`, 0 disables.
        merge_range (float): Radius of the balls that define clusters.
        check_step (int): Steps between ball checks while clustering.
        seed (int): Key of the counter based random source.
    """

    def __init__(
        self,
        kernel="gaussian",
        config=None,
        spatial="kd_tree",
        balls="list",
        quality=0.5,
        epsilon=1e-3,
        iter_cap=1024,
        ident_dist=0.0,
        merge_range=0.5,
        check_step=4,
        seed=0,
    ):
        self.set_kernel(kernel, config)
        if spatial not in SPATIALS:
            raise ValueError(f"Unknown spatial '{spatial}', expected one of {sorted(SPATIALS)}")
        if balls not in BALLS:
            raise ValueError(f"Unknown balls '{balls}', expected one of {sorted(BALLS)}")
        self.spatial_type = spatial
        self.balls_type = balls
        self.quality = quality
        self.epsilon = epsilon
        self.iter_cap = iter_cap
        self.ident_dist = ident_dist
        self.merge_range = merge_range
        self.check_step = check_step
        self.rng = PhiloxRNG(seed)

        self._exemplars = None
        self._spatial = None
        self._norm_key = None
        self._norm = None
        self.balls = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def set_data(self, data, weights=None, point_weights=None):
        self._exemplars = ExemplarSet(data, weights, point_weights)
        self._spatial = None
        self.balls = None

    def set_kernel(self, kernel, config=None):
        if isinstance(kernel, str):
            kernel = get_kernel(kernel)
        elif not isinstance(kernel, Kernel):
            raise ValueError(f"kernel must be a name or a Kernel, got {type(kernel).__name__}")
        self.kernel = kernel
        self.config = config

    def set_scale(self, scale):
        """Set the per-dimension scale; clusters found so far are discarded."""
        self.exemplars.set_scale(scale)
        self.balls = None

    def set_bandwidth(self, bandwidth):
        self.set_scale(1.0 / np.asarray(bandwidth, dtype=float))

    @property
    def exemplars(self):
        if self._exemplars is None:
            raise RuntimeError("MeanShift has no data; call set_data first.")
        return self._exemplars

    @property
    def dims(self):
        return self.exemplars.dims

    @property
    def spatial(self):
        if self._spatial is None or self._spatial.exemplars is not self.exemplars:
            self._spatial = SPATIALS[self.spatial_type](self.exemplars)
        return self._spatial

    def weight(self):
        return self.exemplars.total_weight

    def norm(self):
        key = (self.exemplars.version, id(self.exemplars), self.kernel, self.config)
        if key != self._norm_key:
            self._norm = density.calc_norm(self.exemplars, self.kernel, self.config, self.weight())
            self._norm_key = key
        return self._norm

    def _to_fv(self, x):
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.shape != (self.dims,):
            raise ValueError(f"expected a point with {self.dims} features, got {x.shape[0]}")
        return x * self.exemplars.scale

    def _rows(self, X):
        X = np.asarray(X, dtype=float)
        return X.reshape(-1, self.dims)

    # ------------------------------------------------------------------
    # Density
    # ------------------------------------------------------------------

    def prob(self, x):
        return density.prob(self.spatial, self.kernel, self.config, self._to_fv(x), self.norm(), self.quality)

    def probs(self, X):
        return np.array([self.prob(x) for x in self._rows(X)])

    def draw(self, index=None):
        """One sample; the same index always gives the same sample."""
        if index is None:
            index = self.rng.index
        return density.draw(self.exemplars, self.kernel, self.config, self.rng, index)

    def draws(self, count, start=0):
        out = np.empty((count, self.dims))
        for i in range(count):
            density.draw(self.exemplars, self.kernel, self.config, self.rng, start + i, out[i])
        return out

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def loo_nll(self, limit=1e-16, sample_clamp=None):
        return scoring.loo_nll(
            self.spatial, self.kernel, self.config, self.norm(), self.quality, limit, sample_clamp, self.rng
        )

    def entropy(self, sample_clamp=None):
        return scoring.entropy(
            self.spatial, self.kernel, self.config, self.norm(), self.quality, sample_clamp, self.rng
        )

    def kl(self, other, limit=1e-16, sample_clamp=None):
        """KL divergence D(self || other) in nats; may come out slightly negative."""
        return scoring.kl_divergence(
            self.spatial, self.kernel, self.config, self.norm(), self.quality,
            other.spatial, other.kernel, other.config, other.norm(), other.quality,
            limit, sample_clamp, self.rng,
        )

    # ------------------------------------------------------------------
    # Modes and clusters
    # ------------------------------------------------------------------

    def mode(self, x):
        fv = self._to_fv(x)
        modes.mode(self.spatial, self.kernel, self.config, fv, None, self.quality, self.epsilon, self.iter_cap)
        return fv / self.exemplars.scale

    def modes(self, X):
        return np.array([self.mode(x) for x in self._rows(X)])

    def _new_balls(self):
        if self.balls_type == "grid":
            return GridBalls(self.dims, cell=2.0 * self.merge_range)
        return ListBalls(self.dims)

    def cluster(self):
        """
        Cluster the exemplars by the mode they converge to.

        Returns:
            tuple: (label of each exemplar, modes of shape (n_clusters, n_features))
        """
        self.balls = self._new_balls()
        labels = modes.cluster(
            self.spatial, self.kernel, self.config, self.balls, None,
            self.quality, self.epsilon, self.iter_cap,
            self.ident_dist, self.merge_range, self.check_step,
        )
        return labels, self.balls.centres / self.exemplars.scale

    def assign_cluster(self, x):
        """Cluster index of `x` from the last `cluster` call, or -1 if it joins none."""
        if self.balls is None:
            raise RuntimeError("No clusters available; call cluster first.")
        return modes.assign_cluster(
            self.spatial, self.kernel, self.config, self.balls, self._to_fv(x), None,
            self.quality, self.epsilon, self.iter_cap, self.check_step,
        )

    def assign_clusters(self, X):
        return np.array([self.assign_cluster(x) for x in self._rows(X)], dtype=int)

    # ------------------------------------------------------------------
    # Ridges
    # ------------------------------------------------------------------

    def manifold(self, x, degrees, always_hessian=True):
        """Project `x` onto the `degrees`-dimensional density ridge (Gaussian kernel only)."""
        if not isinstance(self.kernel, GaussianKernel):
            raise ValueError("manifold projection requires the gaussian kernel")
        fv = self._to_fv(x)
        project_to_manifold(
            self.spatial, degrees, fv,
            quality=self.quality, epsilon=self.epsilon, iter_cap=self.iter_cap,
            always_hessian=always_hessian,
        )
        return fv / self.exemplars.scale

    def manifolds(self, X, degrees, always_hessian=True):
        return np.array([self.manifold(x, degrees, always_hessian) for x in self._rows(X)])

    # ------------------------------------------------------------------
    # Scale selection
    # ------------------------------------------------------------------

    def scale_silverman(self):
        self.set_bandwidth(silverman_bandwidth(self.exemplars.data))

    def scale_scott(self):
        self.set_bandwidth(scott_bandwidth(self.exemplars.data))

    def scale_robust(self, c=0.2):
        self.set_bandwidth(robust_fixed_bandwidth(self.exemplars.data, c))

    def scale_quantile(self, lower_q=1.0, upper_q=99.0, c=0.05):
        self.set_bandwidth(quantile_bandwidth(self.exemplars.data, lower_q, upper_q, c))

    def scale_loo_nll(self, multipliers=np.arange(0.2, 2.1, 0.2), base_bandwidth=None, limit=1e-16, sample_clamp=None):
        """
        Pick the multiplier of a base bandwidth with the lowest leave-one-out NLL.

        Args:
            multipliers (list): Candidate multipliers.
            base_bandwidth (np.ndarray): Bandwidth to multiply; Silverman's if None.
            limit (float): Probability clamp passed to `loo_nll`.
            sample_clamp (int): Optional subsample size passed to `loo_nll`.

        Returns:
            float: the chosen multiplier, which is also applied.
        """
        if base_bandwidth is None:
            base_bandwidth = silverman_bandwidth(self.exemplars.data)
        base_bandwidth = np.asarray(base_bandwidth, dtype=float)

        best_c, best_score = None, np.inf
        for c in multipliers:
            self.set_bandwidth(c * base_bandwidth)
            score = self.loo_nll(limit, sample_clamp)
            logger.debug(f"c = {c:.3f} -> LOO NLL = {score:.6f}")
            if score < best_score:
                best_c, best_score = float(c), score

        self.set_bandwidth(best_c * base_bandwidth)
        return best_c

    def scale_cv(self, multipliers=np.arange(0.2, 2.1, 0.2), base_bandwidth=None, n_folds=5, seed=0):
        """Like `scale_loo_nll` but scored by KFold held-out NLL."""
        best_c, _ = calibrate_multiplier_cv(
            self.exemplars.data, self.kernel, self.config, base_bandwidth,
            multipliers, n_folds, self.quality, seed=seed,
        )
        if base_bandwidth is None:
            base_bandwidth = silverman_bandwidth(self.exemplars.data)
        self.set_bandwidth(best_c * np.asarray(base_bandwidth, dtype=float))
        return best_c
