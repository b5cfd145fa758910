"""Utility (objective) builder for the annealing allocator.

The utility is a linear combination of objective terms minus an
"entanglement" penalty on correlated pairs:

    U(w) = sum_k weight_k * term_k(w) - gamma * sum_{i != j} corr[i,j] w[i] w[j]

Everything here is a pure function of the weights and the market snapshot.
"""

import logging
from collections.abc import Callable, Sequence

import numpy as np

from allocator_api.domain.constants import (
    EPSILON,
    KNOWN_OBJECTIVES,
    OBJECTIVE_CUSTOM,
    OBJECTIVE_RETURN,
    OBJECTIVE_SHARPE,
    OBJECTIVE_VARIANCE,
)
from allocator_api.domain.entities.allocation import MarketStats, ObjectiveSpec

logger = logging.getLogger(__name__)

UtilityFunction = Callable[[np.ndarray], float]


def covariance_to_correlation(cov: np.ndarray) -> np.ndarray:
    """Convert a covariance matrix to a correlation matrix.

    corr[i,j] = cov[i,j] / (sd[i] * sd[j] + eps), sd[i] = sqrt(max(cov[i,i], eps))

    Zero-variance assets get a tiny standard deviation instead of a
    division by zero.
    """
    sd = np.sqrt(np.maximum(np.diag(cov), EPSILON))
    return cov / (np.outer(sd, sd) + EPSILON)


def portfolio_variance(weights: np.ndarray, cov: np.ndarray) -> float:
    """w' * Cov * w"""
    return float(weights @ cov @ weights)


def entanglement_penalty(weights: np.ndarray, corr: np.ndarray, gamma: float) -> float:
    """gamma * sum over i != j of corr[i,j] * w[i] * w[j]."""
    full = float(weights @ corr @ weights)
    diagonal = float(np.sum(np.diag(corr) * weights**2))
    return gamma * (full - diagonal)


def sharpe_term(
    weights: np.ndarray,
    means: np.ndarray,
    cov: np.ndarray,
    risk_free_rate: float = 0.0,
) -> float:
    """(return - rf) / (volatility + eps), volatility = sqrt(max(eps, variance))."""
    ret = float(weights @ means) - risk_free_rate
    vol = np.sqrt(max(EPSILON, portfolio_variance(weights, cov)))
    return ret / (vol + EPSILON)


def build_utility_function(
    objectives: Sequence[ObjectiveSpec],
    market: MarketStats,
    gamma: float,
) -> UtilityFunction:
    """Build utility(weights) -> score for one market snapshot.

    The correlation matrix is computed once here. Unknown objective names and
    custom objectives without a scorer contribute zero.

    Args:
        objectives: Objective terms, combined linearly
        market: Market snapshot (already validated)
        gamma: Entanglement penalty strength

    Returns:
        Pure function of the weight vector
    """
    means = market.means
    cov = market.cov
    corr = covariance_to_correlation(cov)
    terms = tuple(objectives)

    for o in terms:
        if o.name == OBJECTIVE_CUSTOM and o.scorer is None:
            logger.debug(f"[Utility] Custom objective without scorer contributes 0 (weight={o.weight})")
        elif o.name not in KNOWN_OBJECTIVES:
            logger.debug(f"[Utility] Unknown objective '{o.name}' contributes 0")

    def utility(weights: np.ndarray) -> float:
        score = 0.0
        for o in terms:
            if o.name == OBJECTIVE_RETURN:
                score += o.weight * float(weights @ means)
            elif o.name == OBJECTIVE_VARIANCE:
                score -= o.weight * portfolio_variance(weights, cov)
            elif o.name == OBJECTIVE_SHARPE:
                rf = float(o.params.get("risk_free_rate", 0.0))
                score += o.weight * sharpe_term(weights, means, cov, rf)
            elif o.name == OBJECTIVE_CUSTOM and o.scorer is not None:
                score += o.weight * float(o.scorer(weights, market))
        score -= entanglement_penalty(weights, corr, gamma)
        return score

    return utility
