"""Allocation-related domain entities."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
import pandas as pd

from allocator_api.domain.constants import (
    CONSTRAINT_BOX,
    CONSTRAINT_BUDGET,
    CONSTRAINT_LONG_ONLY,
    CONSTRAINT_MAX_WEIGHT,
    DEFAULT_BUDGET,
    DEFAULT_ENTANGLEMENT_GAMMA,
    DEFAULT_FINAL_TEMP,
    DEFAULT_INITIAL_TEMP,
    DEFAULT_ITERATIONS,
    DEFAULT_MIN_STATES,
    DEFAULT_PERTURBATION_SCALE,
    DEFAULT_SEED,
    DEFAULT_TUNNELING_HBAR,
    DEFAULT_TUNNELING_MASS,
    STATES_PER_ASSET,
)

# Signature of a custom objective: (weights, market) -> score
Scorer = Callable[[np.ndarray, "MarketStats"], float]


# ============================================================================
# Inputs
# ============================================================================


@dataclass(frozen=True)
class Asset:
    """One dimension of the weight vector."""

    id: str
    name: str | None = None


@dataclass(frozen=True, eq=False)
class MarketStats:
    """Market statistics snapshot consumed by one optimization run.

    Arrays are copied to float numpy arrays on construction. Shape checks
    against a ModelSpec happen in domain.services.validation.
    """

    # Expected return per asset, parallel to the asset list
    means: np.ndarray

    # Covariance matrix (n x n)
    cov: np.ndarray

    # Optional liquidity per asset (informational)
    liquidity: np.ndarray | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "means", np.array(self.means, dtype=float))
        object.__setattr__(self, "cov", np.array(self.cov, dtype=float))
        if self.liquidity is not None:
            object.__setattr__(self, "liquidity", np.array(self.liquidity, dtype=float))

    @classmethod
    def from_returns(
        cls,
        returns: pd.DataFrame,
        periods_per_year: int | None = None,
    ) -> "MarketStats":
        """Estimate means and covariance from periodic returns.

        Args:
            returns: DataFrame with columns = assets, rows = periods,
                     values = simple returns
            periods_per_year: If given, annualize (e.g. 252 for daily data)

        Returns:
            MarketStats with columns in the DataFrame's column order
        """
        clean = returns.dropna(how="any")
        means = clean.mean().to_numpy()
        cov = clean.cov().to_numpy()
        if periods_per_year:
            means = means * periods_per_year
            cov = cov * periods_per_year
        return cls(means=means, cov=cov)

    @classmethod
    def from_volatility(
        cls,
        means: Sequence[float],
        volatilities: Sequence[float],
        correlation: Sequence[Sequence[float]],
    ) -> "MarketStats":
        """Build covariance as corr[i][j] * vol[i] * vol[j]."""
        vols = np.asarray(volatilities, dtype=float)
        corr = np.asarray(correlation, dtype=float)
        return cls(means=means, cov=corr * np.outer(vols, vols))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "means": self.means.tolist(),
            "cov": self.cov.tolist(),
        }
        if self.liquidity is not None:
            data["liquidity"] = self.liquidity.tolist()
        return data


@dataclass(frozen=True)
class ObjectiveSpec:
    """A named objective term combined linearly into the utility.

    Names: "return", "variance", "sharpe", "custom". Any other name is
    accepted and contributes zero.
    """

    name: str
    weight: float = 1.0
    params: dict[str, Any] = field(default_factory=dict)

    # Scoring function for "custom" objectives
    scorer: Scorer | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "params": dict(self.params),
            "has_scorer": self.scorer is not None,
        }


@dataclass(frozen=True)
class ConstraintSpec:
    """A feasibility rule applied in declaration order.

    Use the factory classmethods rather than filling fields by hand.
    """

    type: str

    # budget: weights sum to this target
    target: float = DEFAULT_BUDGET

    # box: per-asset bounds (either side may be omitted)
    min_weights: tuple[float, ...] | None = None
    max_weights: tuple[float, ...] | None = None

    # max_weight: cap on a single index
    index: int | None = None
    cap: float | None = None

    @classmethod
    def budget(cls, target: float = DEFAULT_BUDGET) -> "ConstraintSpec":
        return cls(type=CONSTRAINT_BUDGET, target=target)

    @classmethod
    def box(
        cls,
        min_weights: Sequence[float] | None = None,
        max_weights: Sequence[float] | None = None,
    ) -> "ConstraintSpec":
        return cls(
            type=CONSTRAINT_BOX,
            min_weights=tuple(min_weights) if min_weights is not None else None,
            max_weights=tuple(max_weights) if max_weights is not None else None,
        )

    @classmethod
    def max_weight(cls, index: int, cap: float) -> "ConstraintSpec":
        return cls(type=CONSTRAINT_MAX_WEIGHT, index=index, cap=cap)

    @classmethod
    def long_only(cls) -> "ConstraintSpec":
        return cls(type=CONSTRAINT_LONG_ONLY)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.type == CONSTRAINT_BUDGET:
            data["target"] = self.target
        elif self.type == CONSTRAINT_BOX:
            data["min_weights"] = list(self.min_weights) if self.min_weights else None
            data["max_weights"] = list(self.max_weights) if self.max_weights else None
        elif self.type == CONSTRAINT_MAX_WEIGHT:
            data["index"] = self.index
            data["cap"] = self.cap
        return data


@dataclass(frozen=True)
class Hyperparameters:
    """Annealing hyperparameters.

    `states` left as None resolves to max(8, 2 * n_assets) at run time.
    """

    # === Ensemble ===
    states: int | None = None
    iterations: int = DEFAULT_ITERATIONS

    # === Cooling schedule ===
    initial_temp: float = DEFAULT_INITIAL_TEMP
    final_temp: float = DEFAULT_FINAL_TEMP

    # === Tunneling escape ===
    tunneling_mass: float = DEFAULT_TUNNELING_MASS
    tunneling_hbar: float = DEFAULT_TUNNELING_HBAR

    # === Objective / proposals ===
    entanglement_gamma: float = DEFAULT_ENTANGLEMENT_GAMMA
    perturbation_scale: float = DEFAULT_PERTURBATION_SCALE

    # === Reproducibility ===
    seed: int = DEFAULT_SEED

    def resolve(self, n_assets: int) -> "Hyperparameters":
        """Fill in the ensemble size for a given asset count."""
        if self.states is not None:
            return self
        return replace(self, states=max(DEFAULT_MIN_STATES, STATES_PER_ASSET * n_assets))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "states": self.states,
            "iterations": self.iterations,
            "initial_temp": self.initial_temp,
            "final_temp": self.final_temp,
            "tunneling_mass": self.tunneling_mass,
            "tunneling_hbar": self.tunneling_hbar,
            "entanglement_gamma": self.entanglement_gamma,
            "perturbation_scale": self.perturbation_scale,
            "seed": self.seed,
        }


@dataclass(frozen=True)
class ModelSpec:
    """Configuration of one optimization run, independent of market data."""

    assets: tuple[Asset, ...]
    objectives: tuple[ObjectiveSpec, ...]
    constraints: tuple[ConstraintSpec, ...] = ()
    hyperparams: Hyperparameters = field(default_factory=Hyperparameters)

    def __post_init__(self) -> None:
        object.__setattr__(self, "assets", tuple(self.assets))
        object.__setattr__(self, "objectives", tuple(self.objectives))
        object.__setattr__(self, "constraints", tuple(self.constraints))

    @property
    def n_assets(self) -> int:
        return len(self.assets)

    def to_dict(self) -> dict[str, Any]:
        return {
            "assets": [{"id": a.id, "name": a.name} for a in self.assets],
            "objectives": [o.to_dict() for o in self.objectives],
            "constraints": [c.to_dict() for c in self.constraints],
            "hyperparams": self.hyperparams.to_dict(),
        }


# ============================================================================
# Run state and outputs
# ============================================================================


@dataclass
class CandidateState:
    """One ensemble member. Mutated in place during a run."""

    weights: np.ndarray
    score: float


@dataclass(frozen=True)
class DiagnosticsRecord:
    """Per-iteration snapshot of the search."""

    iteration: int
    best_score: float
    avg_score: float


@dataclass(frozen=True)
class ConstraintViolation:
    """Residual violation left by best-effort constraint enforcement."""

    constraint: str
    index: int
    value: float
    bound: float


@dataclass(frozen=True, eq=False)
class AllocationResult:
    """Result of one optimization run."""

    # Best weight vector, aligned to spec.assets
    allocation: np.ndarray

    # Utility of the best allocation
    score: float

    # Best utility of the initialized ensemble, before any annealing step
    initial_best_score: float

    # One record per iteration
    diagnostics: tuple[DiagnosticsRecord, ...]

    # Hyperparameters actually used (states resolved)
    hyperparams: Hyperparameters

    # Echo of the configuration
    spec: ModelSpec

    constraint_violations: tuple[ConstraintViolation, ...] = ()

    def weights_by_asset(self) -> dict[str, float]:
        return {
            asset.id: float(w) for asset, w in zip(self.spec.assets, self.allocation)
        }

    def diagnostics_frame(self) -> pd.DataFrame:
        """Diagnostics as a DataFrame indexed by iteration."""
        frame = pd.DataFrame(
            [(d.iteration, d.best_score, d.avg_score) for d in self.diagnostics],
            columns=["iteration", "best_score", "avg_score"],
        )
        return frame.set_index("iteration")

    def to_dict(self) -> dict[str, Any]:
        return {
            "allocation": self.allocation.tolist(),
            "score": self.score,
            "initial_best_score": self.initial_best_score,
            "diagnostics": [
                {
                    "iteration": d.iteration,
                    "best_score": d.best_score,
                    "avg_score": d.avg_score,
                }
                for d in self.diagnostics
            ],
            "hyperparams": self.hyperparams.to_dict(),
            "spec": self.spec.to_dict(),
            "constraint_violations": [
                {
                    "constraint": v.constraint,
                    "index": v.index,
                    "value": v.value,
                    "bound": v.bound,
                }
                for v in self.constraint_violations
            ],
        }
