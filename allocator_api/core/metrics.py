"""Portfolio-level metrics for a weight vector."""

from dataclasses import dataclass

import numpy as np

from allocator_api.domain.constants import EPSILON
from allocator_api.domain.entities.allocation import MarketStats
from allocator_api.domain.services.utility import portfolio_variance


@dataclass(frozen=True)
class PortfolioMetrics:
    """Expected return, volatility and Sharpe ratio (all decimals, same period)."""

    expected_return: float
    volatility: float
    sharpe_ratio: float


def compute_portfolio_metrics(
    weights: np.ndarray,
    market: MarketStats,
    risk_free_rate: float = 0.0,
) -> PortfolioMetrics:
    """Compute expected return, volatility and Sharpe ratio of an allocation.

    Args:
        weights: Allocation aligned to the market's asset order
        market: Market snapshot the allocation was optimized against
        risk_free_rate: Subtracted from the expected return for Sharpe

    Returns:
        PortfolioMetrics; Sharpe is 0 when volatility is ~0
    """
    w = np.asarray(weights, dtype=float)
    expected_return = float(w @ market.means)
    volatility = float(np.sqrt(max(0.0, portfolio_variance(w, market.cov))))

    if volatility < EPSILON:
        sharpe = 0.0
    else:
        sharpe = (expected_return - risk_free_rate) / volatility

    return PortfolioMetrics(
        expected_return=expected_return,
        volatility=volatility,
        sharpe_ratio=sharpe,
    )
