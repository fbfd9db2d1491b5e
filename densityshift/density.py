# density.py
"""
Kernel density estimate: total weight, normalising constant, evaluation and sampling.

All feature vectors passed in are in transformed space (data * scale).
"""
import numpy as np


def calc_weight(exemplars):
    """Total exemplar weight; 0.0 for an empty set."""
    if len(exemplars) == 0:
        return 0.0
    return float(np.sum(exemplars.weights))


def calc_norm(exemplars, kernel, config, weight):
    """
    Normalising multiplier expected by `prob`.

    The kernel constant is divided by the total weight and multiplied by the
    product of the scales, so that a density evaluated in transformed space
    comes out as a density over the unscaled data. Cache it; recompute whenever
    the weight, kernel config or scale changes.
    """
    if weight <= 0:
        return 0.0
    return float(kernel.norm(exemplars.dims, config) * np.prod(exemplars.scale) / weight)


def local_contributions(spatial, kernel, config, fv, quality):
    """
    Neighbours of `fv` with their weighted kernel values.

    Returns:
        tuple: (indices, kernel value * exemplar weight * point weight)
    """
    indices = spatial.query(kernel, config, fv, quality)
    if len(indices) == 0:
        return indices, np.empty(0)
    exemplars = spatial.exemplars
    offsets = exemplars.features[indices] - fv
    return indices, exemplars.local_weights[indices] * kernel.weight(offsets, config)


def prob(spatial, kernel, config, fv, norm, quality=0.5):
    """
    Density of the estimate at `fv`.

    `fv` is in transformed space yet the result is a density in unscaled space;
    the scale change is accounted for by `norm` (see `calc_norm`).
    """
    _, contrib = local_contributions(spatial, kernel, config, np.asarray(fv, dtype=float), quality)
    if len(contrib) == 0:
        return 0.0
    return float(norm * np.sum(contrib))


def draw(exemplars, kernel, config, rng, index, out=None):
    """
    Draw one sample from the estimate.

    The exemplar is chosen by weight and perturbed by kernel noise, both taken
    from the RNG stream at `index`, so a given index always reproduces the same
    sample. The result is written into `out` in unscaled space.

    Args:
        exemplars (ExemplarSet): Exemplars defining the estimate.
        kernel (Kernel): Kernel family.
        config: Kernel configuration.
        rng (PhiloxRNG): Counter addressed random source.
        index (int): Stream index.
        out (np.ndarray): Optional output of length n_features.

    Returns:
        np.ndarray: `out`, filled.
    """
    dims = exemplars.dims
    if out is None:
        out = np.empty(dims)
    elif out.shape != (dims,):
        raise ValueError(f"out must have shape ({dims},), got {out.shape}")
    if len(exemplars) == 0 or exemplars.total_weight <= 0:
        raise ValueError("cannot draw from an exemplar set with no weight")

    generator = rng.stream(index)
    cumulative = np.cumsum(exemplars.weights)
    target = generator.random() * cumulative[-1]
    choice = min(int(np.searchsorted(cumulative, target, side="right")), len(cumulative) - 1)

    out[:] = exemplars.features[choice] + kernel.sample(dims, config, generator)
    out /= exemplars.scale
    return out
