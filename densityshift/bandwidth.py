# bandwidth.py
"""
Bandwidth rules of thumb and cross-validated bandwidth calibration.

Every estimator returns a per-dimension bandwidth; the density estimate uses
its reciprocal as the exemplar scale.
"""
import logging

import numpy as np
from sklearn.model_selection import KFold

from .density import calc_norm, prob
from .exemplars import ExemplarSet
from .spatial import KDTreeSpatial

logger = logging.getLogger(__name__)


def _as_2d(data):
    data = np.asarray(data, dtype=float)
    if data.ndim == 1:
        data = data.reshape(-1, 1)
    return data


def silverman_bandwidth(data):
    """
    Silverman's rule of thumb, per dimension.

    Uses the robust spread min(std, IQR / 1.34) of each dimension.

    Returns:
        np.ndarray: bandwidth for each dimension
    """
    data = _as_2d(data)
    n, d = data.shape
    std = np.std(data, axis=0, ddof=1)
    iqr = np.subtract(*np.percentile(data, [75, 25], axis=0))
    sigma = np.where(iqr > 0, np.minimum(std, iqr / 1.34), std)
    h = sigma * (4.0 / ((d + 2.0) * n)) ** (1.0 / (d + 4.0))
    logger.debug(f"Bandwidth estimated by Silverman: {h}")
    return h


def scott_bandwidth(data):
    """Scott's rule: std * n^(-1 / (d + 4)), per dimension."""
    data = _as_2d(data)
    n, d = data.shape
    h = np.std(data, axis=0, ddof=1) * n ** (-1.0 / (d + 4.0))
    logger.debug(f"Bandwidth estimated by Scott: {h}")
    return h


def robust_fixed_bandwidth(data, c=0.2):
    """
    Bandwidth proportional to each dimension's median absolute deviation.

    The MAD is rescaled by 1 / 0.6745 to match a standard deviation under
    normality, so outliers barely move it; n does not enter at all.

    Args:
        data (np.ndarray): shape (n_samples,) or (n_samples, n_features)
        c (float): Multiplier on the per-dimension spread.

    Returns:
        np.ndarray: bandwidth for each dimension
    """
    data = _as_2d(data)
    mad = np.median(np.abs(data - np.median(data, axis=0)), axis=0) / 0.6745
    return c * mad


def quantile_bandwidth(data, lower_q=1.0, upper_q=99.0, c=0.05):
    """
    Bandwidth as a fraction `c` of each dimension's quantile range.

    Degenerate dimensions (equal quantiles) get a tiny positive spread instead
    of zero.
    """
    data = _as_2d(data)
    q_low = np.percentile(data, lower_q, axis=0)
    q_high = np.percentile(data, upper_q, axis=0)
    spread = np.where(q_high == q_low, 1e-8, q_high - q_low)
    return c * spread


def calibrate_multiplier_cv(
    data,
    kernel,
    config=None,
    base_bandwidth=None,
    multipliers=np.arange(0.2, 2.1, 0.2),
    n_folds=5,
    quality=0.5,
    limit=1e-16,
    seed=0,
):
    """
    Cross-validated choice of a multiplier on a base bandwidth.

    For each multiplier the data is split with KFold; a density estimate built
    on the training folds scores the held-out fold by its mean clamped negative
    log density.

    Args:
        data (np.ndarray): Input array of shape (n_samples,) or (n_samples, d).
        kernel (Kernel): Kernel family to calibrate for.
        config: Kernel configuration.
        base_bandwidth (np.ndarray): Bandwidth to scale; Silverman's if None.
        multipliers (list): Candidate multipliers.
        n_folds (int): Number of cross-validation folds.
        quality (float): Search range quality used when scoring.
        limit (float): Minimum probability for a held-out point.
        seed (int): Random seed for fold splitting.

    Returns:
        tuple: (best multiplier, dict mapping multiplier to held-out score)
    """
    data = _as_2d(data)
    if base_bandwidth is None:
        base_bandwidth = silverman_bandwidth(data)

    best_c = None
    best_score = np.inf
    scores = {}
    kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)

    for c in multipliers:
        scale = 1.0 / (c * np.asarray(base_bandwidth))
        fold_scores = []

        for train_idx, test_idx in kf.split(data):
            train = ExemplarSet(data[train_idx], scale=scale)
            spatial = KDTreeSpatial(train)
            norm = calc_norm(train, kernel, config, train.total_weight)

            nll = [
                -np.log(max(prob(spatial, kernel, config, x * scale, norm, quality), limit))
                for x in data[test_idx]
            ]
            fold_scores.append(np.mean(nll))

        avg_score = float(np.mean(fold_scores))
        scores[float(c)] = avg_score
        logger.debug(f"c = {c:.3f} -> CV NLL = {avg_score:.6f}")

        if avg_score < best_score:
            best_score = avg_score
            best_c = float(c)

    return best_c, scores
