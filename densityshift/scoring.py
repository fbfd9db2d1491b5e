# scoring.py
"""
Model scores for comparing density estimates (bandwidth, kernel, scale...).

Each score averages over the exemplars of the estimate itself, or over a
subsample drawn with replacement when `sample_clamp` is smaller than the
exemplar count. Exemplars whose local weight is zero are not draws from the
estimate and are left out.
"""
import logging

import numpy as np

from .density import local_contributions, prob

logger = logging.getLogger(__name__)


def sample_indices(weights, sample_clamp, rng):
    """Indices with positive weight, or `sample_clamp` of them drawn uniformly with replacement."""
    candidates = np.flatnonzero(np.asarray(weights) > 0)
    count = len(candidates)
    if sample_clamp is None or sample_clamp >= count:
        return candidates
    if rng is None:
        raise ValueError("an rng is required when sample_clamp is below the exemplar count")
    logger.debug(f"Scoring on {sample_clamp} of {count} exemplars")
    return candidates[rng.stream().integers(0, count, size=sample_clamp)]


def loo_nll(spatial, kernel, config, norm, quality=0.5, limit=1e-16, sample_clamp=None, rng=None):
    """
    Leave-one-out negative log-likelihood, averaged over exemplars.

    Each exemplar's own contribution is removed before taking its density, which
    is clamped from below at `limit`. The total weight (inside `norm`) is not
    reduced by the excluded exemplar; with unequal weights this biases the score
    slightly, and is kept so scores stay comparable between runs.

    Args:
        spatial (Spatial): Index over the exemplars.
        kernel (Kernel): Kernel family.
        config: Kernel configuration.
        norm (float): Output of `calc_norm`.
        quality (float): Search range quality in [0, 1].
        limit (float): Minimum probability assigned to any exemplar.
        sample_clamp (int): Optional subsample size.
        rng (PhiloxRNG): Needed when subsampling.

    Returns:
        float: Mean negative log probability.
    """
    exemplars = spatial.exemplars
    indices = sample_indices(exemplars.local_weights, sample_clamp, rng)
    if len(indices) == 0:
        return 0.0

    features = exemplars.features
    total = 0.0
    for i in indices:
        neighbours, contrib = local_contributions(spatial, kernel, config, features[i], quality)
        p = norm * np.sum(contrib[neighbours != i])
        total -= np.log(max(p, limit))
    return float(total / len(indices))


def entropy(spatial, kernel, config, norm, quality=0.5, sample_clamp=None, rng=None):
    """Monte-Carlo entropy in nats, using the exemplars as draws from the estimate."""
    exemplars = spatial.exemplars
    indices = sample_indices(exemplars.local_weights, sample_clamp, rng)
    if len(indices) == 0:
        return 0.0

    features = exemplars.features
    total = 0.0
    for i in indices:
        total -= np.log(prob(spatial, kernel, config, features[i], norm, quality))
    return float(total / len(indices))


def kl_divergence(
    spatial_p,
    kernel_p,
    config_p,
    norm_p,
    quality_p,
    spatial_q,
    kernel_q,
    config_q,
    norm_q,
    quality_q,
    limit=1e-16,
    sample_clamp=None,
    rng=None,
):
    """
    Estimate D(P||Q) in nats using the exemplars of P as its samples.

    Each sample is moved from P's transformed space into Q's before evaluating q,
    and q is clamped below at `limit`. Being a finite sample estimate it can come
    out negative, most visibly when P and Q are close.
    """
    exemplars_p = spatial_p.exemplars
    indices = sample_indices(exemplars_p.local_weights, sample_clamp, rng)
    if len(indices) == 0:
        return 0.0

    to_q = spatial_q.exemplars.scale / exemplars_p.scale
    features = exemplars_p.features
    total = 0.0
    for i in indices:
        p = prob(spatial_p, kernel_p, config_p, features[i], norm_p, quality_p)
        q = prob(spatial_q, kernel_q, config_q, features[i] * to_q, norm_q, quality_q)
        total += np.log(p) - np.log(max(q, limit))
    return float(total / len(indices))
