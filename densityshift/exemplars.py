# exemplars.py
import numpy as np


class ExemplarSet:
    """
    Weighted set of feature vectors defining a kernel density estimate.

    Data is stored unscaled; `features` applies the per-dimension scale so that
    every density and mean shift routine works in transformed space, where the
    kernel has unit size. Each exemplar carries a weight (default 1) and may
    carry an extra per-point weight multiplier, which only the local weighting
    used by density evaluation and mean shift consumes.

    data, weights and point_weights are read-only arrays; change the set through
    `append` and `set_scale` so that cached totals and the version stay in step.
    """

    def __init__(self, data, weights=None, point_weights=None, scale=None):
        data = np.array(data, dtype=float)
        if data.ndim == 1:
            data = data.reshape(-1, 1)
        if data.ndim != 2:
            raise ValueError("data must be of shape (n_samples, n_features)")

        self.data = _read_only(data)
        self.weights = _read_only(self._check_weights(weights, "weights"))
        self.point_weights = None
        if point_weights is not None:
            self.point_weights = _read_only(self._check_weights(point_weights, "point_weights"))

        self.scale = np.ones(self.dims)
        self.version = 0
        self._total_weight = None
        self._features = None
        if scale is not None:
            self.set_scale(scale)

    def _check_weights(self, values, name):
        if values is None:
            return np.ones(len(self.data))
        values = np.array(values, dtype=float).reshape(-1)
        if len(values) != len(self.data):
            raise ValueError(f"{name} has length {len(values)}, expected {len(self.data)}")
        if np.any(values < 0):
            raise ValueError(f"{name} must be non-negative")
        return values

    def __len__(self):
        return self.data.shape[0]

    @property
    def dims(self):
        return self.data.shape[1]

    @property
    def features(self):
        """Feature vectors in transformed space, shape (n_samples, n_features)."""
        if self._features is None:
            self._features = self.data * self.scale
        return self._features

    @property
    def local_weights(self):
        """Exemplar weight times the per-point multiplier, when one is present."""
        if self.point_weights is None:
            return self.weights
        return self.weights * self.point_weights

    @property
    def total_weight(self):
        if self._total_weight is None:
            self._total_weight = float(np.sum(self.weights)) if len(self) else 0.0
        return self._total_weight

    def set_scale(self, scale):
        scale = np.broadcast_to(np.asarray(scale, dtype=float), (self.dims,)).copy()
        if np.any(scale <= 0) or not np.all(np.isfinite(scale)):
            raise ValueError("scale must be positive and finite")
        self.scale = scale
        self._invalidate()

    def append(self, data, weights=None, point_weights=None):
        """
        Add exemplars to the set.

        Args:
            data (np.ndarray): New rows, shape (m, n_features).
            weights (np.ndarray): Optional weights for the new rows.
            point_weights (np.ndarray): Optional multipliers; required if the set has them.
        """
        data = np.asarray(data, dtype=float).reshape(-1, self.dims)
        extra = ExemplarSet(data, weights, point_weights)
        if (self.point_weights is None) != (extra.point_weights is None):
            raise ValueError("point_weights must be given for all exemplars or none")

        self.data = _read_only(np.vstack([self.data, extra.data]))
        self.weights = _read_only(np.concatenate([self.weights, extra.weights]))
        if self.point_weights is not None:
            self.point_weights = _read_only(np.concatenate([self.point_weights, extra.point_weights]))
        self._invalidate()

    def _invalidate(self):
        self._total_weight = None
        self._features = None
        self.version += 1


def _read_only(values):
    values.setflags(write=False)
    return values
