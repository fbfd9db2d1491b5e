# kernels.py
"""
Kernel families for the density estimate.

Kernels work in transformed space, where each has unit size; the bandwidth is
carried by the exemplar set's scale. A kernel evaluates the unnormalised
contribution of an offset, supplies the matching normalising constant, draws
noise from itself, and maps a quality in [0, 1] to a search radius.
"""
from abc import ABC, abstractmethod

import numpy as np
from scipy import special, stats


def _squared_norm(offsets):
    offsets = np.asarray(offsets, dtype=float)
    return np.sum(offsets ** 2, axis=-1)


def unit_ball_volume(dims):
    return np.exp(0.5 * dims * np.log(np.pi) - special.gammaln(0.5 * dims + 1.0))


class Kernel(ABC):
    name = None

    def __init__(self):
        self._bounds = {}

    @abstractmethod
    def weight(self, offsets, config=None):
        """Unnormalised kernel value for each offset row (transformed space)."""

    @abstractmethod
    def norm(self, dims, config=None):
        """Constant that turns `weight` into a probability density."""

    @abstractmethod
    def sample(self, dims, config, generator):
        """Draw one offset of length `dims` from the kernel using `generator`."""

    @abstractmethod
    def range_bounds(self, dims, config=None):
        """Search radius at quality 0 and at quality 1."""

    def range(self, dims, config=None, quality=0.5):
        if not 0.0 <= quality <= 1.0:
            raise ValueError(f"quality must be in [0, 1], got {quality}")
        key = (dims, config)
        if key not in self._bounds:
            self._bounds[key] = self.range_bounds(dims, config)
        low, high = self._bounds[key]
        return (1.0 - quality) * low + quality * high

    def __repr__(self):
        return f"{type(self).__name__}()"


class GaussianKernel(Kernel):
    """Unit isotropic Gaussian; config is unused."""

    name = "gaussian"
    low_mass = 0.99
    high_mass = 0.99999

    def weight(self, offsets, config=None):
        return np.exp(-0.5 * _squared_norm(offsets))

    def norm(self, dims, config=None):
        return (2.0 * np.pi) ** (-0.5 * dims)

    def sample(self, dims, config, generator):
        return generator.standard_normal(dims)

    def range_bounds(self, dims, config=None):
        return (
            float(stats.chi.ppf(self.low_mass, dims)),
            float(stats.chi.ppf(self.high_mass, dims)),
        )


class StudentTKernel(Kernel):
    """
    Multivariate Student-t kernel with unit scale.

    config is the degrees of freedom (defaults to 1, the Cauchy kernel). The
    tails are heavy, so the search range is taken from the F distribution of
    the squared radius rather than fixed multiples of the scale.
    """

    name = "student_t"
    low_mass = 0.95
    high_mass = 0.999

    @staticmethod
    def _dof(config):
        dof = 1.0 if config is None else float(config)
        if dof <= 0:
            raise ValueError("degrees of freedom must be positive")
        return dof

    def weight(self, offsets, config=None):
        dof = self._dof(config)
        dims = np.shape(offsets)[-1]
        return (1.0 + _squared_norm(offsets) / dof) ** (-0.5 * (dof + dims))

    def norm(self, dims, config=None):
        dof = self._dof(config)
        log_norm = (
            special.gammaln(0.5 * (dof + dims))
            - special.gammaln(0.5 * dof)
            - 0.5 * dims * np.log(dof * np.pi)
        )
        return float(np.exp(log_norm))

    def sample(self, dims, config, generator):
        dof = self._dof(config)
        z = generator.standard_normal(dims)
        return z * np.sqrt(dof / generator.chisquare(dof))

    def range_bounds(self, dims, config=None):
        dof = self._dof(config)
        low = np.sqrt(dims * stats.f.ppf(self.low_mass, dims, dof))
        high = np.sqrt(dims * stats.f.ppf(self.high_mass, dims, dof))
        return float(low), float(high)


class _UnitBallKernel(Kernel):
    """Radial kernel with support on the unit ball; range ignores quality."""

    def profile(self, r2):
        raise NotImplementedError

    def mass(self, dims):
        """Integral of the profile over the unit ball, as a multiple of its volume."""
        raise NotImplementedError

    def weight(self, offsets, config=None):
        r2 = _squared_norm(offsets)
        return np.where(r2 <= 1.0, self.profile(np.minimum(r2, 1.0)), 0.0)

    def norm(self, dims, config=None):
        return float(1.0 / (unit_ball_volume(dims) * self.mass(dims)))

    def sample(self, dims, config, generator):
        # Uniform draw from the ball, thinned by the profile (maximum 1 at the centre)
        while True:
            direction = generator.standard_normal(dims)
            direction /= np.linalg.norm(direction)
            point = direction * generator.random() ** (1.0 / dims)
            if generator.random() <= self.profile(np.sum(point ** 2)):
                return point

    def range_bounds(self, dims, config=None):
        return 1.0, 1.0


class UniformKernel(_UnitBallKernel):
    name = "uniform"

    def profile(self, r2):
        return np.ones_like(r2)

    def mass(self, dims):
        return 1.0


class TriangularKernel(_UnitBallKernel):
    name = "triangular"

    def profile(self, r2):
        return 1.0 - np.sqrt(r2)

    def mass(self, dims):
        return 1.0 / (dims + 1.0)


class EpanechnikovKernel(_UnitBallKernel):
    name = "epanechnikov"

    def profile(self, r2):
        return 1.0 - r2

    def mass(self, dims):
        return 2.0 / (dims + 2.0)


KERNELS = {
    kernel.name: kernel
    for kernel in (GaussianKernel, StudentTKernel, UniformKernel, TriangularKernel, EpanechnikovKernel)
}


def get_kernel(name):
    """Instantiate a kernel from its registered name."""
    try:
        return KERNELS[name]()
    except KeyError:
        raise ValueError(f"Unknown kernel '{name}', expected one of {sorted(KERNELS)}") from None
