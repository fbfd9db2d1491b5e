# plotting.py
"""Quick-look plots for fitted MeanShift models; requires matplotlib."""
import matplotlib.pyplot as plt
import numpy as np


def plot_density_1d(model, xs, modes=None, ax=None, bins=100):
    """
    Plot a univariate density estimate over a histogram of its data.

    Args:
        model (MeanShift): Model with one-dimensional data.
        xs (np.ndarray): Points to evaluate the density at.
        modes (np.ndarray): Optional modes, drawn as vertical lines.
        ax (matplotlib.axes.Axes): Axes to draw into; a new figure if None.
        bins (int): Histogram bins.

    Returns:
        matplotlib.axes.Axes
    """
    if model.dims != 1:
        raise ValueError("plot_density_1d needs one-dimensional data")
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 4))

    xs = np.asarray(xs, dtype=float).reshape(-1)
    pdf = model.probs(xs)
    ax.hist(model.exemplars.data[:, 0], bins=bins, density=True, alpha=0.3, color="gray", label="Data")
    ax.plot(xs, pdf, color="blue", label="KDE")
    if modes is not None:
        ax.vlines(np.ravel(modes), 0, pdf.max(), color="red", linestyle="-", label="Modes")
    ax.legend()
    ax.grid(True)
    return ax


def plot_clusters(data, labels, modes=None, ax=None):
    """Scatter the first two dimensions of `data` coloured by cluster label."""
    data = np.asarray(data, dtype=float)
    if data.ndim != 2 or data.shape[1] < 2:
        raise ValueError("plot_clusters needs data with at least two dimensions")
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 6))

    ax.scatter(data[:, 0], data[:, 1], c=labels, s=8, cmap="tab10", alpha=0.6)
    if modes is not None:
        modes = np.asarray(modes)
        ax.scatter(modes[:, 0], modes[:, 1], marker="x", s=80, color="black", label="Modes")
        ax.legend()
    ax.grid(True)
    return ax
