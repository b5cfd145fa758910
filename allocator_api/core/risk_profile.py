"""Risk-profile layer on top of the generic annealing allocator.

Translates an investor's risk tolerance (1-10) and investment horizon
bucket into:
- a MarketStats snapshot for a fixed list of asset classes
- per-asset multipliers biasing the initial ensemble
- extra objective terms (risk alignment, horizon bonus, diversification)

The search itself is the generic one from
allocator_api.domain.services.annealing.
"""

import logging
from dataclasses import dataclass

import numpy as np

from allocator_api.core.config import resolve_hyperparameters, resolve_risk_free_rate
from allocator_api.core.metrics import PortfolioMetrics, compute_portfolio_metrics
from allocator_api.domain.constants import (
    DEFAULT_HORIZON,
    DEFAULT_RISK_TOLERANCE,
    DIVERSIFICATION_WEIGHT,
    HORIZON_BUCKETS,
    OBJECTIVE_CUSTOM,
    OBJECTIVE_SHARPE,
    RISK_TOLERANCE_MAX,
    RISK_TOLERANCE_MIN,
)
from allocator_api.domain.entities.allocation import (
    AllocationResult,
    Asset,
    ConstraintSpec,
    Hyperparameters,
    MarketStats,
    ModelSpec,
    ObjectiveSpec,
    Scorer,
)
from allocator_api.domain.exceptions import ConfigurationError
from allocator_api.domain.services.annealing import create_translator

logger = logging.getLogger(__name__)


# ============================================================================
# Asset classes
# ============================================================================

CATEGORY_EQUITY = "equity"
CATEGORY_SMALL_SAVINGS = "small_savings"
CATEGORY_BOND = "bond"
CATEGORY_GOLD = "gold"


@dataclass(frozen=True)
class AssetClass:
    """An investable asset class with annual statistics in percent."""

    id: str
    name: str
    category: str
    expected_return_pct: float
    risk_pct: float


DEFAULT_ASSET_CLASSES: tuple[AssetClass, ...] = (
    AssetClass("index_funds", "Index Funds", CATEGORY_EQUITY, 12.8, 15.2),
    AssetClass("ppf", "PPF", CATEGORY_SMALL_SAVINGS, 7.1, 0.1),
    AssetClass("stocks", "Stocks", CATEGORY_EQUITY, 15.6, 22.4),
    AssetClass("bonds", "Bonds", CATEGORY_BOND, 6.8, 4.2),
    AssetClass("gold_etf", "Gold ETF", CATEGORY_GOLD, 8.2, 18.5),
)

# Pairwise correlations, same order as DEFAULT_ASSET_CLASSES
DEFAULT_CORRELATION: tuple[tuple[float, ...], ...] = (
    (1.0, 0.3, 0.7, 0.1, -0.2),
    (0.3, 1.0, 0.1, 0.8, 0.2),
    (0.7, 0.1, 1.0, 0.2, -0.1),
    (0.1, 0.8, 0.2, 1.0, 0.1),
    (-0.2, 0.2, -0.1, 0.1, 1.0),
)


def build_market_stats(
    asset_classes: tuple[AssetClass, ...] = DEFAULT_ASSET_CLASSES,
    correlation: tuple[tuple[float, ...], ...] = DEFAULT_CORRELATION,
) -> MarketStats:
    """Annual means and covariance (decimals) from percentage statistics."""
    means = [a.expected_return_pct / 100 for a in asset_classes]
    vols = [a.risk_pct / 100 for a in asset_classes]
    return MarketStats.from_volatility(means, vols, correlation)


# ============================================================================
# Investor profile
# ============================================================================


@dataclass(frozen=True)
class RiskProfile:
    """Investor risk tolerance (1-10) and horizon bucket."""

    risk_tolerance: int = DEFAULT_RISK_TOLERANCE
    investment_horizon: str = DEFAULT_HORIZON

    def __post_init__(self) -> None:
        if not RISK_TOLERANCE_MIN <= self.risk_tolerance <= RISK_TOLERANCE_MAX:
            raise ConfigurationError(
                f"risk_tolerance must be in [{RISK_TOLERANCE_MIN}, {RISK_TOLERANCE_MAX}], "
                f"got {self.risk_tolerance}",
                field="risk_tolerance",
                value=self.risk_tolerance,
            )
        if self.investment_horizon not in HORIZON_BUCKETS:
            raise ConfigurationError(
                f"investment_horizon must be one of {HORIZON_BUCKETS}, "
                f"got {self.investment_horizon!r}",
                field="investment_horizon",
                value=self.investment_horizon,
            )


def initial_bias(
    profile: RiskProfile,
    asset_classes: tuple[AssetClass, ...] = DEFAULT_ASSET_CLASSES,
) -> np.ndarray:
    """Per-asset multipliers applied to the initial ensemble draw.

    - Conservative investors (tolerance < 5) lean towards small savings (x1.5)
    - Aggressive investors (tolerance > 6) lean towards equity (x1.3)
    - Short horizons ("1-3") lean towards bonds (x1.4)
    """
    bias = np.ones(len(asset_classes))
    for i, asset in enumerate(asset_classes):
        if asset.category == CATEGORY_SMALL_SAVINGS and profile.risk_tolerance < 5:
            bias[i] = 1.5
        elif asset.category == CATEGORY_EQUITY and profile.risk_tolerance > 6:
            bias[i] = 1.3
        elif asset.category == CATEGORY_BOND and profile.investment_horizon == "1-3":
            bias[i] = 1.4
    return bias


# ============================================================================
# Profile objective terms
# ============================================================================


def horizon_bonus(equity_weight: float, horizon: str) -> float:
    """Additive bonus for equity exposure that suits the horizon."""
    if horizon == "1-3":
        return -0.2 if equity_weight > 0.6 else 0.1
    if horizon == "3-5":
        return 0.1 if equity_weight > 0.7 else -0.1
    if horizon == "5-10":
        return 0.2 if equity_weight > 0.6 else 0.0
    if horizon == "10+":
        return 0.3 if equity_weight > 0.7 else 0.0
    return 0.0


def shannon_entropy(weights: np.ndarray) -> float:
    """Entropy in bits of the positive weights."""
    positive = weights[weights > 0]
    return float(-np.sum(positive * np.log2(positive)))


def make_horizon_scorer(equity_mask: np.ndarray, horizon: str) -> Scorer:
    def score(weights: np.ndarray, market: MarketStats) -> float:
        return horizon_bonus(float(weights[equity_mask].sum()), horizon)

    return score


def make_risk_alignment_scorer(risk_tolerance: int) -> Scorer:
    """Penalty -|volatility% - 2 * tolerance| / 20."""

    def score(weights: np.ndarray, market: MarketStats) -> float:
        volatility_pct = float(np.sqrt(max(0.0, weights @ market.cov @ weights))) * 100
        return -abs(volatility_pct - risk_tolerance * 2) / 20

    return score


def diversification_scorer(weights: np.ndarray, market: MarketStats) -> float:
    return shannon_entropy(weights)


def build_profile_spec(
    profile: RiskProfile,
    asset_classes: tuple[AssetClass, ...] = DEFAULT_ASSET_CLASSES,
    hyperparams: Hyperparameters | None = None,
    risk_free_rate: float | None = None,
) -> ModelSpec:
    """ModelSpec for a risk profile: long-only, fully invested."""
    if risk_free_rate is None:
        risk_free_rate = resolve_risk_free_rate()
    if hyperparams is None:
        hyperparams = resolve_hyperparameters()

    equity_mask = np.array([a.category == CATEGORY_EQUITY for a in asset_classes])

    objectives = (
        ObjectiveSpec(OBJECTIVE_SHARPE, 1.0, params={"risk_free_rate": risk_free_rate}),
        ObjectiveSpec(
            OBJECTIVE_CUSTOM,
            1.0,
            params={"term": "risk_alignment"},
            scorer=make_risk_alignment_scorer(profile.risk_tolerance),
        ),
        ObjectiveSpec(
            OBJECTIVE_CUSTOM,
            1.0,
            params={"term": "horizon_bonus"},
            scorer=make_horizon_scorer(equity_mask, profile.investment_horizon),
        ),
        ObjectiveSpec(
            OBJECTIVE_CUSTOM,
            DIVERSIFICATION_WEIGHT,
            params={"term": "diversification"},
            scorer=diversification_scorer,
        ),
    )

    return ModelSpec(
        assets=tuple(Asset(a.id, a.name) for a in asset_classes),
        objectives=objectives,
        constraints=(ConstraintSpec.budget(), ConstraintSpec.long_only()),
        hyperparams=hyperparams,
    )


# ============================================================================
# End-to-end
# ============================================================================


@dataclass(frozen=True, eq=False)
class ProfileAllocation:
    """Allocation for a risk profile, ready for display."""

    # Asset name -> percent of portfolio (two decimals)
    percentage_weights: dict[str, float]

    # Annual metrics of the raw (unrounded) allocation
    metrics: PortfolioMetrics

    profile: RiskProfile
    result: AllocationResult


def optimize_for_profile(
    profile: RiskProfile,
    asset_classes: tuple[AssetClass, ...] = DEFAULT_ASSET_CLASSES,
    correlation: tuple[tuple[float, ...], ...] = DEFAULT_CORRELATION,
    hyperparams: Hyperparameters | None = None,
    risk_free_rate: float | None = None,
) -> ProfileAllocation:
    """Run the annealing allocator for an investor profile.

    Args:
        profile: Risk tolerance and horizon
        asset_classes: Investable classes (default: the five built-in classes)
        correlation: Correlation matrix in asset_classes order
        hyperparams: Search settings (default: environment-resolved)
        risk_free_rate: Annual decimal rate (default: environment-resolved)

    Returns:
        ProfileAllocation with percentages, metrics and the raw result
    """
    if risk_free_rate is None:
        risk_free_rate = resolve_risk_free_rate()

    market = build_market_stats(asset_classes, correlation)
    spec = build_profile_spec(profile, asset_classes, hyperparams, risk_free_rate)
    bias = initial_bias(profile, asset_classes)

    logger.info(
        f"[Profile] Optimizing for risk_tolerance={profile.risk_tolerance}, "
        f"horizon={profile.investment_horizon}"
    )
    result = create_translator(spec)(market, bias)

    percentage_weights = {
        asset.name: round(float(w) * 100, 2)
        for asset, w in zip(asset_classes, result.allocation)
    }
    metrics = compute_portfolio_metrics(result.allocation, market, risk_free_rate)

    return ProfileAllocation(
        percentage_weights=percentage_weights,
        metrics=metrics,
        profile=profile,
        result=result,
    )
