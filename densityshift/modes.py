# modes.py
"""
Mean shift mode seeking and clustering by mode convergence.

Feature vectors are modified in place and are in transformed space. A run ends
when the step size drops below epsilon (converged), after iter_cap steps
(forced stop), or, for the clustering routines, when the trajectory enters a
known ball (merged).
"""
import logging

import numpy as np

from .density import local_contributions

logger = logging.getLogger(__name__)


def _buffers(spatial, fv, temp):
    dims = spatial.dims
    if not isinstance(fv, np.ndarray) or fv.shape != (dims,):
        raise ValueError(f"fv must be a numpy array of shape ({dims},)")
    if temp is None:
        return np.empty(dims)
    if temp.shape != (dims,):
        raise ValueError(f"temp must have shape ({dims},), got {temp.shape}")
    return temp


def mean_shift_step(spatial, kernel, config, fv, temp, quality):
    """
    Move `fv` to the kernel weighted mean of its neighbourhood.

    Returns:
        float: Distance moved; 0.0 when the neighbourhood carries no weight.
    """
    indices, contrib = local_contributions(spatial, kernel, config, fv, quality)
    total = np.sum(contrib)
    if total <= 0.0:
        return 0.0

    temp[:] = contrib @ spatial.exemplars.features[indices]
    temp /= total
    delta = float(np.linalg.norm(temp - fv))
    fv[:] = temp
    return delta


def mode(spatial, kernel, config, fv, temp=None, quality=0.5, epsilon=1e-3, iter_cap=1024):
    """
    Converge `fv` in place to its mean shift mode.

    Args:
        spatial (Spatial): Index over the exemplars defining the density.
        kernel (Kernel): Kernel family.
        config: Kernel configuration.
        fv (np.ndarray): Start point, overwritten with the mode.
        temp (np.ndarray): Scratch vector of the same length, allocated if None.
        quality (float): Search range quality in [0, 1].
        epsilon (float): Stop once a step moves less than this.
        iter_cap (int): Maximum number of steps.
    """
    temp = _buffers(spatial, fv, temp)
    for _ in range(iter_cap):
        if mean_shift_step(spatial, kernel, config, fv, temp, quality) < epsilon:
            return
    logger.debug(f"Mean shift stopped at iter_cap={iter_cap} without converging")


def _converge(spatial, kernel, config, balls, fv, temp, quality, epsilon, iter_cap, check_step, shortcut=None):
    """
    Mean shift that checks for a ball every `check_step` steps.

    `shortcut`, when given, is called at each check with the current point and
    may return a ball index to stop on.

    Returns:
        int or None: Ball index reached, or None if none was entered.
    """
    check_step = max(int(check_step), 1)
    for step in range(1, iter_cap + 1):
        if mean_shift_step(spatial, kernel, config, fv, temp, quality) < epsilon:
            break
        if step % check_step == 0:
            hit = balls.within(fv)
            if hit is None and shortcut is not None:
                hit = shortcut(fv)
            if hit is not None:
                return hit
    return balls.within(fv)


def mode_merge(
    spatial,
    kernel,
    config,
    balls,
    fv,
    temp=None,
    quality=0.5,
    epsilon=1e-3,
    iter_cap=1024,
    merge_range=0.5,
    check_step=4,
):
    """
    Converge `fv` and return the index of the ball it belongs to.

    If the trajectory never enters an existing ball a new one, of radius
    `merge_range`, is created at the end point. Useful for clustering points
    against a density defined by a different set of exemplars.

    `merge_range` only sizes newly created balls. Containment is always tested
    against each ball's own stored radius, which may differ, e.g. for balls
    produced by `merge_balls`.
    """
    temp = _buffers(spatial, fv, temp)
    hit = _converge(spatial, kernel, config, balls, fv, temp, quality, epsilon, iter_cap, check_step)
    if hit is not None:
        return hit
    index = balls.create(fv, merge_range)
    logger.debug(f"Created ball {index} at {fv}")
    return index


def cluster(
    spatial,
    kernel,
    config,
    balls,
    out=None,
    quality=0.5,
    epsilon=1e-3,
    iter_cap=1024,
    ident_dist=0.0,
    merge_range=0.5,
    check_step=4,
):
    """
    Assign every exemplar to a mode, filling `balls` with the modes found.

    With `ident_dist` > 0 a trajectory that passes within that distance of an
    exemplar already assigned is given the same ball, since it will follow the
    same path from there.

    Args:
        spatial (Spatial): Index over the exemplars to cluster.
        kernel (Kernel): Kernel family.
        config: Kernel configuration.
        balls (Balls): Mode registry, normally empty on entry.
        out (np.ndarray): Optional int array of length n_samples for the labels.
        quality (float): Search range quality in [0, 1].
        epsilon (float): Convergence threshold on step size.
        iter_cap (int): Maximum number of steps per exemplar.
        ident_dist (float): Path shortening distance, 0 to disable.
        merge_range (float): Radius of new balls.
        check_step (int): Steps between ball checks.

    Returns:
        np.ndarray: `out`, the ball index of each exemplar.
    """
    exemplars = spatial.exemplars
    count = len(exemplars)
    if out is None:
        out = np.empty(count, dtype=int)
    elif out.shape != (count,):
        raise ValueError(f"out must have shape ({count},), got {out.shape}")
    out[:] = -1

    features = exemplars.features
    temp = np.empty(exemplars.dims)

    shortcut = None
    if ident_dist > 0.0:
        def shortcut(point):
            for j in spatial.neighbours(point, ident_dist):
                if out[j] >= 0:
                    return int(out[j])
            return None

    for i in range(count):
        fv = features[i].copy()
        hit = _converge(
            spatial, kernel, config, balls, fv, temp, quality, epsilon, iter_cap, check_step, shortcut
        )
        out[i] = hit if hit is not None else balls.create(fv, merge_range)

    logger.debug(f"Clustered {count} exemplars into {len(balls)} modes")
    return out


def assign_cluster(
    spatial,
    kernel,
    config,
    balls,
    fv,
    temp=None,
    quality=0.5,
    epsilon=1e-3,
    iter_cap=1024,
    check_step=4,
):
    """Ball index `fv` converges into, or -1; never adds to `balls`."""
    temp = _buffers(spatial, fv, temp)
    hit = _converge(spatial, kernel, config, balls, fv, temp, quality, epsilon, iter_cap, check_step)
    return -1 if hit is None else hit
