# spatial.py
"""
Range queries over an exemplar set's feature vectors (transformed space).
"""
from abc import ABC, abstractmethod

import numpy as np
from scipy.spatial import cKDTree


class Spatial(ABC):
    """Answers "which exemplars lie within radius of this point"."""

    def __init__(self, exemplars):
        self.exemplars = exemplars

    @property
    def dims(self):
        return self.exemplars.dims

    @abstractmethod
    def neighbours(self, centre, radius):
        """Indices of exemplars within `radius` of `centre`, in ascending order."""

    def query(self, kernel, config, centre, quality):
        """Neighbours inside the kernel's search range at the given quality."""
        return self.neighbours(centre, kernel.range(self.dims, config, quality))


class BruteForceSpatial(Spatial):
    def neighbours(self, centre, radius):
        features = self.exemplars.features
        if not np.isfinite(radius):
            return np.arange(len(features))
        d2 = np.sum((features - np.asarray(centre)) ** 2, axis=1)
        return np.flatnonzero(d2 <= radius * radius)


class KDTreeSpatial(Spatial):
    """
    scipy cKDTree over the transformed features.

    The tree is rebuilt lazily whenever the exemplar set reports a new version,
    i.e. after its data or scale changed.
    """

    def __init__(self, exemplars, leafsize=16):
        super().__init__(exemplars)
        self.leafsize = leafsize
        self._tree = None
        self._version = None

    @property
    def tree(self):
        if self._tree is None or self._version != self.exemplars.version:
            self._tree = cKDTree(self.exemplars.features, leafsize=self.leafsize)
            self._version = self.exemplars.version
        return self._tree

    def neighbours(self, centre, radius):
        if not np.isfinite(radius):
            return np.arange(len(self.exemplars))
        found = self.tree.query_ball_point(np.asarray(centre, dtype=float), radius)
        return np.array(sorted(found), dtype=int)


SPATIALS = {"brute_force": BruteForceSpatial, "kd_tree": KDTreeSpatial}
