# balls.py
"""
Registries of hyper-spheres, one per discovered mode.

Clustering converges each trajectory until it enters an existing ball (merge)
or, failing that, creates a new ball at its end point. Ball indices are the
cluster ids handed back to callers.
"""
import logging
from abc import ABC, abstractmethod

import numpy as np
from sklearn.cluster import DBSCAN

logger = logging.getLogger(__name__)


class Balls(ABC):
    def __init__(self, dims):
        self.dims = dims
        self._centres = []
        self._radii = []

    def __len__(self):
        return len(self._centres)

    def __getitem__(self, index):
        return self._centres[index], self._radii[index]

    def __iter__(self):
        return zip(self._centres, self._radii)

    @property
    def centres(self):
        if not self._centres:
            return np.empty((0, self.dims))
        return np.array(self._centres)

    @property
    def radii(self):
        return np.array(self._radii, dtype=float)

    def _check(self, point):
        point = np.asarray(point, dtype=float)
        if point.shape != (self.dims,):
            raise ValueError(f"expected a point of shape ({self.dims},), got {point.shape}")
        return point

    def create(self, centre, radius):
        """Add a ball and return its index."""
        centre = self._check(centre).copy()
        self._centres.append(centre)
        self._radii.append(float(radius))
        index = len(self._centres) - 1
        self._register(index)
        return index

    def _register(self, index):
        pass

    def within(self, point):
        """Index of the nearest ball containing `point`, or None."""
        point = self._check(point)
        best, best_d2 = None, np.inf
        for index in self._candidates(point):
            d2 = np.sum((self._centres[index] - point) ** 2)
            if d2 < self._radii[index] ** 2 and d2 < best_d2:
                best, best_d2 = index, d2
        return best

    @abstractmethod
    def _candidates(self, point):
        """Indices of balls that might contain `point`."""


class ListBalls(Balls):
    def _candidates(self, point):
        return range(len(self._centres))


class GridBalls(Balls):
    """
    Balls hashed into a grid of cubic cells with side `cell`.

    A ball is registered in every cell its bounding box touches, so a lookup
    only scans the balls of the point's own cell.
    """

    def __init__(self, dims, cell=1.0):
        super().__init__(dims)
        if cell <= 0:
            raise ValueError("cell must be positive")
        self.cell = float(cell)
        self._grid = {}

    def _key(self, point):
        return tuple(np.floor(point / self.cell).astype(int))

    def _register(self, index):
        centre, radius = self._centres[index], self._radii[index]
        low = np.floor((centre - radius) / self.cell).astype(int)
        high = np.floor((centre + radius) / self.cell).astype(int)
        for key in np.ndindex(*(high - low + 1)):
            self._grid.setdefault(tuple(low + np.array(key)), []).append(index)

    def _candidates(self, point):
        return self._grid.get(self._key(point), ())


def merge_balls(balls_list, merge_range, balls_factory=None):
    """
    Merge mode registries built independently, e.g. one per worker.

    Ball centres from every registry are grouped with DBSCAN (eps=merge_range,
    min_samples=1); each group becomes one ball at the group mean.

    Args:
        balls_list (list[Balls]): Registries sharing one dimensionality.
        merge_range (float): Distance under which two centres are merged; also
            the radius of the merged balls.
        balls_factory (callable): Builds the empty output registry from dims.
            Defaults to ListBalls.

    Returns:
        tuple: (merged Balls, list of int arrays mapping each input registry's
            ball indices to merged indices)
    """
    if not balls_list:
        raise ValueError("balls_list is empty")
    dims = balls_list[0].dims
    if any(b.dims != dims for b in balls_list):
        raise ValueError("all registries must share one dimensionality")
    if balls_factory is None:
        balls_factory = ListBalls

    merged = balls_factory(dims)
    sizes = [len(b) for b in balls_list]
    if sum(sizes) == 0:
        return merged, [np.empty(0, dtype=int) for _ in balls_list]

    centres = np.vstack([b.centres for b in balls_list if len(b)])
    labels = DBSCAN(eps=merge_range, min_samples=1).fit(centres).labels_

    # Merged indices follow first appearance so the result is order stable
    remap = {}
    for label in labels:
        if label not in remap:
            remap[label] = merged.create(centres[labels == label].mean(axis=0), merge_range)

    mappings = []
    offset = 0
    for size in sizes:
        mappings.append(np.array([remap[label] for label in labels[offset:offset + size]], dtype=int))
        offset += size

    logger.debug(f"Merged {len(centres)} balls from {len(balls_list)} registries into {len(merged)}")
    return merged, mappings
