# datasets.py
import numpy as np


def generate_mixture(n_samples, means, sd=1.0, seed=None):
    """
    Equal-weight isotropic Gaussian mixture.

    Args:
        n_samples (int): Total number of samples, split evenly between components.
        means (array-like): Component means, shape (k,) or (k, d).
        sd (float): Standard deviation of every component.
        seed (int or np.random.Generator): Random seed.

    Returns:
        tuple: (samples of shape (n, d), means of shape (k, d))
    """
    rng = np.random.default_rng(seed)
    means = np.asarray(means, dtype=float)
    if means.ndim == 1:
        means = means.reshape(-1, 1)
    samples_per_mode = n_samples // len(means)
    data = [
        rng.normal(loc=m, scale=sd, size=(samples_per_mode, means.shape[1]))
        for m in means
    ]
    return np.vstack(data), means


def mode_mse(true_modes, predicted_modes):
    """Mean squared distance from each true mode to its closest predicted mode."""
    true_modes = _as_rows(true_modes)
    predicted_modes = _as_rows(predicted_modes)
    dists = np.linalg.norm(true_modes[:, None, :] - predicted_modes[None, :, :], axis=-1)
    return float(np.mean(np.min(dists, axis=1) ** 2))


def _as_rows(modes):
    modes = np.asarray(modes, dtype=float)
    if modes.ndim == 1:
        modes = modes.reshape(-1, 1)
    return modes
