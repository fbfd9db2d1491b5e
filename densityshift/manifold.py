# manifold.py
"""
Subspace constrained mean shift: project points onto density ridges.

Only the unit isotropic Gaussian kernel is supported, as the gradient and
Hessian below are written for it.
"""
import logging

import numpy as np

from .kernels import GaussianKernel

logger = logging.getLogger(__name__)

_GAUSSIAN = GaussianKernel()


def _buffer(buf, shape, name):
    if buf is None:
        return np.empty(shape)
    if buf.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {buf.shape}")
    return buf


def manifold(
    spatial,
    degrees,
    fv,
    grad=None,
    hess=None,
    eigen_val=None,
    eigen_vec=None,
    quality=0.5,
    epsilon=1e-3,
    iter_cap=1024,
    always_hessian=True,
):
    """
    Move `fv` in place onto the `degrees`-dimensional ridge of the density.

    Each step takes the mean shift vector and removes its components along the
    `degrees` Hessian eigenvectors whose eigenvalues are smallest in magnitude,
    i.e. the locally flattest directions that approximate the ridge's tangent
    space. The point therefore only moves across the ridge. degrees=0 reduces to
    plain mean shift (use `mode` for that, it is cheaper).

    Args:
        spatial (Spatial): Index over the exemplars defining the density.
        degrees (int): Dimensionality of the ridge, 0 <= degrees < n_features.
        fv (np.ndarray): Start point, overwritten with the projection.
        grad (np.ndarray): Scratch, shape (n_features,).
        hess (np.ndarray): Scratch, shape (n_features, n_features).
        eigen_val (np.ndarray): Scratch, shape (n_features,).
        eigen_vec (np.ndarray): Scratch, shape (n_features, n_features).
        quality (float): Search range quality in [0, 1].
        epsilon (float): Stop once a projected step is shorter than this.
        iter_cap (int): Maximum number of steps.
        always_hessian (bool): Recompute the Hessian every step. If False it is
            computed once at the start, which is much faster and adequate for
            clean data only.
    """
    dims = spatial.dims
    if not 0 <= degrees < dims:
        raise ValueError(f"degrees must be in [0, {dims}), got {degrees}")
    if not isinstance(fv, np.ndarray) or fv.shape != (dims,):
        raise ValueError(f"fv must be a numpy array of shape ({dims},)")
    grad = _buffer(grad, (dims,), "grad")
    hess = _buffer(hess, (dims, dims), "hess")
    eigen_val = _buffer(eigen_val, (dims,), "eigen_val")
    eigen_vec = _buffer(eigen_vec, (dims, dims), "eigen_vec")

    exemplars = spatial.exemplars
    radius = _GAUSSIAN.range(dims, None, quality)
    tangent = None

    for _ in range(iter_cap):
        indices = spatial.neighbours(fv, radius)
        if len(indices) == 0:
            return
        offsets = exemplars.features[indices] - fv
        w = exemplars.local_weights[indices] * _GAUSSIAN.weight(offsets)
        total = np.sum(w)
        if total <= 0.0:
            return

        grad[:] = w @ offsets
        if tangent is None or always_hessian:
            hess[:] = (offsets.T * w) @ offsets
            hess[np.diag_indices(dims)] -= total
            hess += hess.T
            hess *= 0.5
            eigen_val[:], eigen_vec[:] = np.linalg.eigh(hess)
            flattest = np.argsort(np.abs(eigen_val))[:degrees]
            tangent = eigen_vec[:, flattest]

        shift = grad / total
        shift -= tangent @ (tangent.T @ shift)
        fv += shift
        if np.linalg.norm(shift) < epsilon:
            return

    logger.debug(f"Manifold projection stopped at iter_cap={iter_cap} without converging")
