"""Portfolio allocation endpoints."""

from collections.abc import Callable
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from allocator_api.core.config import resolve_hyperparameters
from allocator_api.core.risk_profile import RiskProfile, optimize_for_profile
from allocator_api.domain.constants import (
    DEFAULT_BUDGET,
    DEFAULT_HORIZON,
    DEFAULT_RISK_TOLERANCE,
    MAX_REQUEST_ITERATIONS,
    MAX_REQUEST_STATES,
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
)
from allocator_api.domain.exceptions import ConfigurationError
from allocator_api.domain.services.annealing import create_translator

router = APIRouter()


# ============================================================================
# Request / Response models
# ============================================================================


class AssetModel(BaseModel):
    id: str
    name: str | None = None


class ObjectiveModel(BaseModel):
    """Objective term. Custom scorers cannot be sent over HTTP and score 0."""

    name: str = Field(..., description="return | variance | sharpe | custom")
    weight: float = 1.0
    params: dict[str, float | str] = Field(default_factory=dict)


class ConstraintModel(BaseModel):
    type: Literal["budget", "box", "max_weight", "long_only"]
    target: float = Field(DEFAULT_BUDGET, description="budget: target sum")
    min_weights: list[float] | None = Field(None, description="box: lower bounds")
    max_weights: list[float] | None = Field(None, description="box: upper bounds")
    index: int | None = Field(None, description="max_weight: asset index")
    cap: float | None = Field(None, description="max_weight: cap")


class HyperparametersModel(BaseModel):
    states: int | None = Field(None, ge=1, le=MAX_REQUEST_STATES)
    iterations: int | None = Field(None, ge=0, le=MAX_REQUEST_ITERATIONS)
    initial_temp: float | None = Field(None, gt=0)
    final_temp: float | None = Field(None, gt=0)
    tunneling_mass: float | None = Field(None, gt=0)
    tunneling_hbar: float | None = Field(None, gt=0)
    entanglement_gamma: float | None = None
    perturbation_scale: float | None = None
    seed: int | None = Field(None, ge=0)


class MarketStatsModel(BaseModel):
    means: list[float]
    cov: list[list[float]]
    liquidity: list[float] | None = None


class AnnealRequest(BaseModel):
    """Request model for the generic annealing endpoint."""

    assets: list[AssetModel] = Field(..., min_length=1)
    objectives: list[ObjectiveModel] = Field(..., min_length=1)
    constraints: list[ConstraintModel] = Field(default_factory=list)
    hyperparams: HyperparametersModel = Field(default_factory=HyperparametersModel)
    market: MarketStatsModel
    initial_bias: list[float] | None = None
    include_diagnostics: bool = True


class DiagnosticsModel(BaseModel):
    iteration: int
    best_score: float
    avg_score: float


class ViolationModel(BaseModel):
    constraint: str
    index: int
    value: float
    bound: float


class AnnealResponse(BaseModel):
    """Response model for the generic annealing endpoint."""

    weights: dict[str, float] = Field(..., description="Asset id -> weight")
    allocation: list[float] = Field(..., description="Raw weights in asset order")
    score: float
    initial_best_score: float
    diagnostics: list[DiagnosticsModel]
    hyperparams: dict[str, float | int | None]
    constraint_violations: list[ViolationModel]


class ProfileAllocationRequest(BaseModel):
    """Request model for the risk-profile endpoint."""

    risk_tolerance: int = Field(
        DEFAULT_RISK_TOLERANCE,
        ge=RISK_TOLERANCE_MIN,
        le=RISK_TOLERANCE_MAX,
        description="Risk tolerance on a 1-10 scale",
    )
    investment_horizon: Literal["1-3", "3-5", "5-10", "10+"] = Field(
        DEFAULT_HORIZON,
        description="Investment horizon bucket in years",
    )
    iterations: int | None = Field(None, ge=1, le=MAX_REQUEST_ITERATIONS)
    seed: int | None = Field(None, ge=0)


class ProfileAllocationResponse(BaseModel):
    """Response model for the risk-profile endpoint."""

    percentage_weights: dict[str, float] = Field(
        ...,
        description="Target portfolio weights as percentages (sum to ~100)",
    )
    expected_return: float = Field(..., description="Annual expected return (decimal)")
    volatility: float = Field(..., description="Annual volatility (decimal)")
    sharpe_ratio: float
    score: float
    risk_tolerance: int
    investment_horizon: str


# ============================================================================
# Dependency injection for testability
# ============================================================================

HyperparameterResolver = Callable[..., Hyperparameters]


def get_hyperparameter_resolver() -> HyperparameterResolver:
    """Get the hyperparameter resolution function."""
    return resolve_hyperparameters


def _to_model_spec(request: AnnealRequest, resolver: HyperparameterResolver) -> ModelSpec:
    return ModelSpec(
        assets=tuple(Asset(a.id, a.name) for a in request.assets),
        objectives=tuple(
            ObjectiveSpec(o.name, o.weight, params=dict(o.params)) for o in request.objectives
        ),
        constraints=tuple(
            ConstraintSpec(
                type=c.type,
                target=c.target,
                min_weights=tuple(c.min_weights) if c.min_weights is not None else None,
                max_weights=tuple(c.max_weights) if c.max_weights is not None else None,
                index=c.index,
                cap=c.cap,
            )
            for c in request.constraints
        ),
        hyperparams=resolver(**request.hyperparams.model_dump()),
    )


def _to_response(result: AllocationResult, include_diagnostics: bool) -> AnnealResponse:
    data = result.to_dict()
    return AnnealResponse(
        weights=result.weights_by_asset(),
        allocation=data["allocation"],
        score=data["score"],
        initial_best_score=data["initial_best_score"],
        diagnostics=data["diagnostics"] if include_diagnostics else [],
        hyperparams=data["hyperparams"],
        constraint_violations=data["constraint_violations"],
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/anneal", response_model=AnnealResponse)
def allocate_anneal(
    request: AnnealRequest,
    resolver: HyperparameterResolver = Depends(get_hyperparameter_resolver),
) -> AnnealResponse:
    """Run the annealing allocator on an explicit model spec and market snapshot.

    Raises:
        HTTPException 400: if the spec or market snapshot is inconsistent
    """
    try:
        spec = _to_model_spec(request, resolver)
        market = MarketStats(
            means=request.market.means,
            cov=request.market.cov,
            liquidity=request.market.liquidity,
        )
        result = create_translator(spec)(market, request.initial_bias)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        # e.g. ragged covariance rows that cannot be turned into an array
        raise HTTPException(status_code=400, detail=f"Invalid request data: {e}") from e

    return _to_response(result, request.include_diagnostics)


@router.post("/profile", response_model=ProfileAllocationResponse)
def allocate_profile(
    request: ProfileAllocationRequest = ProfileAllocationRequest(),
    resolver: HyperparameterResolver = Depends(get_hyperparameter_resolver),
) -> ProfileAllocationResponse:
    """Allocate across the built-in asset classes for an investor profile.

    The risk tolerance and horizon bias the initial ensemble and add a
    risk-alignment and a horizon term to the objective.
    """
    try:
        profile = RiskProfile(request.risk_tolerance, request.investment_horizon)
        allocation = optimize_for_profile(
            profile,
            hyperparams=resolver(iterations=request.iterations, seed=request.seed),
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    # Highest allocation first
    sorted_weights = dict(
        sorted(allocation.percentage_weights.items(), key=lambda x: x[1], reverse=True)
    )

    return ProfileAllocationResponse(
        percentage_weights=sorted_weights,
        expected_return=allocation.metrics.expected_return,
        volatility=allocation.metrics.volatility,
        sharpe_ratio=allocation.metrics.sharpe_ratio,
        score=allocation.result.score,
        risk_tolerance=profile.risk_tolerance,
        investment_horizon=profile.investment_horizon,
    )
