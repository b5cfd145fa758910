"""Input validation for one optimization run.

Every check here runs before the first annealing iteration so that a bad
configuration fails fast instead of producing a silently truncated or
padded allocation.
"""

import math

import numpy as np

from allocator_api.domain.constants import (
    CONSTRAINT_BOX,
    CONSTRAINT_BUDGET,
    CONSTRAINT_MAX_WEIGHT,
    KNOWN_CONSTRAINTS,
    OBJECTIVE_SHARPE,
    SYMMETRY_TOLERANCE,
)
from allocator_api.domain.entities.allocation import (
    ConstraintSpec,
    Hyperparameters,
    MarketStats,
    ModelSpec,
    ObjectiveSpec,
)
from allocator_api.domain.exceptions import ConfigurationError


def validate_market_stats(market: MarketStats, n_assets: int) -> None:
    """Check a market snapshot against the asset count.

    Raises:
        ConfigurationError: on dimension mismatch, non-square or
            non-symmetric covariance, negative variance or non-finite values
    """
    means = market.means
    cov = market.cov

    if means.ndim != 1 or means.shape[0] != n_assets:
        raise ConfigurationError(
            f"means has shape {means.shape}, expected ({n_assets},)",
            field="means",
            value=means.shape,
        )
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        raise ConfigurationError(
            f"cov must be square, got shape {cov.shape}",
            field="cov",
            value=cov.shape,
        )
    if cov.shape[0] != n_assets:
        raise ConfigurationError(
            f"cov is {cov.shape[0]}x{cov.shape[1]} but spec has {n_assets} assets",
            field="cov",
            value=cov.shape,
        )
    if not np.all(np.isfinite(means)):
        raise ConfigurationError("means contains non-finite values", field="means")
    if not np.all(np.isfinite(cov)):
        raise ConfigurationError("cov contains non-finite values", field="cov")

    scale = max(1.0, float(np.max(np.abs(cov)))) if cov.size else 1.0
    if not np.allclose(cov, cov.T, rtol=0.0, atol=SYMMETRY_TOLERANCE * scale):
        raise ConfigurationError("cov must be symmetric", field="cov")

    diag = np.diag(cov)
    negative = np.flatnonzero(diag < 0)
    if negative.size:
        raise ConfigurationError(
            f"cov has negative variance on the diagonal at indices {negative.tolist()}",
            field="cov",
            value=diag[negative].tolist(),
        )

    if market.liquidity is not None and market.liquidity.shape != (n_assets,):
        raise ConfigurationError(
            f"liquidity has shape {market.liquidity.shape}, expected ({n_assets},)",
            field="liquidity",
            value=market.liquidity.shape,
        )


def validate_constraint(constraint: ConstraintSpec, n_assets: int) -> None:
    """Check one constraint's parameters against the asset count."""
    if constraint.type not in KNOWN_CONSTRAINTS:
        raise ConfigurationError(
            f"Unknown constraint type: {constraint.type}",
            field="constraints",
            value=constraint.type,
        )

    if constraint.type == CONSTRAINT_BUDGET:
        if not math.isfinite(constraint.target) or constraint.target <= 0:
            raise ConfigurationError(
                f"budget target must be positive, got {constraint.target}",
                field="constraints.target",
                value=constraint.target,
            )

    elif constraint.type == CONSTRAINT_BOX:
        for name, bounds in (
            ("min_weights", constraint.min_weights),
            ("max_weights", constraint.max_weights),
        ):
            if bounds is not None and len(bounds) != n_assets:
                raise ConfigurationError(
                    f"box {name} has {len(bounds)} entries, expected {n_assets}",
                    field=f"constraints.{name}",
                    value=len(bounds),
                )
        if constraint.min_weights is not None and constraint.max_weights is not None:
            lo = np.asarray(constraint.min_weights, dtype=float)
            hi = np.asarray(constraint.max_weights, dtype=float)
            if np.any(lo > hi):
                raise ConfigurationError(
                    "box min_weights must not exceed max_weights",
                    field="constraints.min_weights",
                )

    elif constraint.type == CONSTRAINT_MAX_WEIGHT:
        if constraint.index is None or not 0 <= constraint.index < n_assets:
            raise ConfigurationError(
                f"max_weight index {constraint.index} out of range for {n_assets} assets",
                field="constraints.index",
                value=constraint.index,
            )
        if constraint.cap is None or not math.isfinite(constraint.cap):
            raise ConfigurationError(
                "max_weight requires a finite cap",
                field="constraints.cap",
                value=constraint.cap,
            )


def validate_hyperparameters(hyper: Hyperparameters) -> None:
    """Check resolved hyperparameters."""
    if hyper.states is None or hyper.states < 1:
        raise ConfigurationError(
            f"states must be >= 1, got {hyper.states}", field="states", value=hyper.states
        )
    if hyper.iterations < 0:
        raise ConfigurationError(
            f"iterations must be >= 0, got {hyper.iterations}",
            field="iterations",
            value=hyper.iterations,
        )
    for name in ("initial_temp", "final_temp", "tunneling_mass", "tunneling_hbar"):
        value = getattr(hyper, name)
        if not math.isfinite(value) or value <= 0:
            raise ConfigurationError(
                f"{name} must be positive, got {value}", field=name, value=value
            )
    for name in ("entanglement_gamma", "perturbation_scale"):
        value = getattr(hyper, name)
        if not math.isfinite(value):
            raise ConfigurationError(f"{name} must be finite", field=name, value=value)
    if hyper.seed < 0:
        raise ConfigurationError(
            f"seed must be >= 0, got {hyper.seed}", field="seed", value=hyper.seed
        )


def validate_objective(objective: ObjectiveSpec) -> None:
    """Check objective parameters that the utility reads as numbers."""
    if objective.name != OBJECTIVE_SHARPE or "risk_free_rate" not in objective.params:
        return
    raw = objective.params["risk_free_rate"]
    try:
        rate = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"sharpe risk_free_rate must be a number, got {raw!r}",
            field="objectives.params.risk_free_rate",
            value=raw,
        ) from e
    if not math.isfinite(rate):
        raise ConfigurationError(
            "sharpe risk_free_rate must be finite",
            field="objectives.params.risk_free_rate",
            value=raw,
        )


def validate_spec(spec: ModelSpec) -> None:
    """Check a ModelSpec independently of market data."""
    if spec.n_assets == 0:
        raise ConfigurationError("spec has no assets", field="assets", value=0)

    ids = [a.id for a in spec.assets]
    if len(set(ids)) != len(ids):
        raise ConfigurationError("asset ids must be unique", field="assets", value=ids)

    for objective in spec.objectives:
        validate_objective(objective)

    for constraint in spec.constraints:
        validate_constraint(constraint, spec.n_assets)

    validate_hyperparameters(spec.hyperparams.resolve(spec.n_assets))
