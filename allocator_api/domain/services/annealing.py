"""Ensemble simulated annealing over the portfolio-weight simplex.

The "quantum-inspired" allocator is plain simulated annealing with two
additions:

- a tunneling escape: a worse candidate rejected by the Metropolis rule
  still gets a second chance with probability
  exp(-2 * sqrt(2 * m * gap) / hbar * distance)
- a periodic ensemble interaction that rescales each member by
  exp((score - mean score) / T) and re-projects it onto the feasible set

Each call owns its ensemble and its numpy Generator, so runs with the same
spec, seed and market snapshot are reproducible and independent.
"""

import logging
import math
from collections.abc import Callable, Sequence

import numpy as np

from allocator_api.domain.constants import (
    EPSILON,
    INITIAL_WEIGHT_FLOOR,
    INTERACTION_DIVISOR,
    INTERACTION_EXPONENT_CLIP,
)
from allocator_api.domain.entities.allocation import (
    AllocationResult,
    CandidateState,
    ConstraintSpec,
    DiagnosticsRecord,
    Hyperparameters,
    MarketStats,
    ModelSpec,
)
from allocator_api.domain.exceptions import ConfigurationError
from allocator_api.domain.services.constraints import (
    budget_target,
    enforce_constraints,
    find_constraint_violations,
    normalize_budget,
)
from allocator_api.domain.services.utility import UtilityFunction, build_utility_function
from allocator_api.domain.services.validation import validate_market_stats, validate_spec

logger = logging.getLogger(__name__)

Translator = Callable[..., AllocationResult]


# ============================================================================
# Schedule and acceptance
# ============================================================================


def cooling_temperature(
    t: int,
    iterations: int,
    initial_temp: float,
    final_temp: float,
) -> float:
    """Geometric cooling: T(t) = T0 * (Tf / T0) ** (t / (iterations - 1)).

    The denominator is clamped to 1 so a single-iteration run stays at T0.
    """
    progress = t / max(1, iterations - 1)
    return initial_temp * (final_temp / initial_temp) ** progress


def tunneling_probability(
    current_score: float,
    candidate_score: float,
    distance: float,
    mass: float,
    hbar: float,
) -> float:
    """Probability of "tunneling" from the current state to a worse candidate.

    T = exp(-2 * kappa * a), kappa = sqrt(2 * m * (V - E)) / hbar, where the
    barrier V is the current score, E the candidate score and a the Euclidean
    distance between the two states.

    Returns:
        Probability in [0, 1]; 1 when the candidate is not worse
    """
    if candidate_score >= current_score:
        return 1.0
    gap = current_score - candidate_score
    kappa = math.sqrt(2 * mass * gap) / hbar
    value = math.exp(-2 * kappa * (distance + EPSILON))
    return max(0.0, min(1.0, value))


def accept_candidate(
    current_score: float,
    candidate_score: float,
    distance: float,
    temperature: float,
    hyper: Hyperparameters,
    rng: np.random.Generator,
) -> bool:
    """Improvement, then Metropolis, then tunneling as a last chance."""
    if candidate_score >= current_score:
        return True

    p_metropolis = math.exp((candidate_score - current_score) / (temperature + EPSILON))
    if rng.random() < p_metropolis:
        return True

    p_tunnel = tunneling_probability(
        current_score,
        candidate_score,
        distance,
        hyper.tunneling_mass,
        hyper.tunneling_hbar,
    )
    return bool(rng.random() < p_tunnel)


# ============================================================================
# Ensemble moves
# ============================================================================


def initial_states(
    n_assets: int,
    hyper: Hyperparameters,
    rng: np.random.Generator,
    budget: float = 1.0,
    initial_bias: np.ndarray | None = None,
) -> list[np.ndarray]:
    """Draw the starting ensemble.

    Each coordinate is |u - 0.5| * perturbation_scale + 0.01 (small and
    positive), optionally multiplied by a per-asset bias, then scaled to
    the budget.
    """
    states = []
    for _ in range(hyper.states):
        u = rng.random(n_assets)
        w = np.abs(u - 0.5) * hyper.perturbation_scale + INITIAL_WEIGHT_FLOOR
        if initial_bias is not None:
            w = w * initial_bias
        states.append(normalize_budget(w, budget))
    return states


def propose(
    weights: np.ndarray,
    rng: np.random.Generator,
    perturbation_scale: float,
    budget: float = 1.0,
) -> np.ndarray:
    """Neighbor of a state: nudge one coordinate, take half of it from another."""
    n = len(weights)
    candidate = weights.copy()

    idx = int(rng.random() * n)
    change = (rng.random() - 0.5) * perturbation_scale
    candidate[idx] = max(0.0, candidate[idx] + change)

    off = int(rng.random() * n)
    candidate[off] = max(0.0, candidate[off] - change * 0.5)

    return normalize_budget(candidate, budget)


def interact_ensemble(
    ensemble: list[CandidateState],
    avg_score: float,
    temperature: float,
    constraints: Sequence[ConstraintSpec],
    utility: UtilityFunction,
) -> None:
    """Rescale every member by exp((score - avg) / |T|), re-enforce, re-score.

    Mutates the ensemble in place.
    """
    scale = abs(temperature) + EPSILON
    for state in ensemble:
        exponent = (state.score - avg_score) / scale
        exponent = max(-INTERACTION_EXPONENT_CLIP, min(INTERACTION_EXPONENT_CLIP, exponent))
        state.weights = enforce_constraints(state.weights * math.exp(exponent), constraints)
        state.score = utility(state.weights)


# ============================================================================
# Translator
# ============================================================================


def _resolve_bias(initial_bias: Sequence[float] | None, n_assets: int) -> np.ndarray | None:
    if initial_bias is None:
        return None
    bias = np.asarray(initial_bias, dtype=float)
    if bias.shape != (n_assets,):
        raise ConfigurationError(
            f"initial_bias has shape {bias.shape}, expected ({n_assets},)",
            field="initial_bias",
            value=bias.shape,
        )
    if not np.all(np.isfinite(bias)) or np.any(bias < 0):
        raise ConfigurationError(
            "initial_bias must be finite and non-negative",
            field="initial_bias",
            value=bias.tolist(),
        )
    return bias


def create_translator(spec: ModelSpec) -> Translator:
    """Build a reusable optimizer closure for one model spec.

    The spec is validated here; each call of the returned function validates
    its market snapshot and runs one independent search.

    Args:
        spec: Assets, objectives, constraints and hyperparameters

    Returns:
        translate(market, initial_bias=None) -> AllocationResult

    Raises:
        ConfigurationError: if the spec is invalid
    """
    validate_spec(spec)

    n = spec.n_assets
    hyper = spec.hyperparams.resolve(n)
    constraints = spec.constraints
    budget = budget_target(constraints)

    def translate(
        market: MarketStats,
        initial_bias: Sequence[float] | None = None,
    ) -> AllocationResult:
        validate_market_stats(market, n)
        bias = _resolve_bias(initial_bias, n)

        utility = build_utility_function(spec.objectives, market, hyper.entanglement_gamma)
        rng = np.random.default_rng(hyper.seed)

        logger.info(
            f"[Anneal] Starting run: {n} assets, {hyper.states} states, "
            f"{hyper.iterations} iterations, seed={hyper.seed}"
        )

        # Initializing
        ensemble = []
        for w in initial_states(n, hyper, rng, budget, bias):
            feasible = enforce_constraints(w, constraints)
            ensemble.append(CandidateState(weights=feasible, score=utility(feasible)))

        best = max(ensemble, key=lambda s: s.score)
        best_weights = best.weights.copy()
        best_score = best.score
        initial_best_score = best_score

        # Annealing
        interaction_period = max(1, hyper.iterations // INTERACTION_DIVISOR)
        diagnostics: list[DiagnosticsRecord] = []

        for t in range(hyper.iterations):
            temperature = cooling_temperature(
                t, hyper.iterations, hyper.initial_temp, hyper.final_temp
            )

            score_sum = 0.0
            for state in ensemble:
                candidate = enforce_constraints(
                    propose(state.weights, rng, hyper.perturbation_scale, budget),
                    constraints,
                )
                candidate_score = utility(candidate)
                distance = float(np.linalg.norm(state.weights - candidate))

                if accept_candidate(
                    state.score, candidate_score, distance, temperature, hyper, rng
                ):
                    state.weights = candidate
                    state.score = candidate_score

                score_sum += state.score
                if state.score > best_score:
                    best_score = state.score
                    best_weights = state.weights.copy()

            avg_score = score_sum / len(ensemble)
            diagnostics.append(
                DiagnosticsRecord(iteration=t, best_score=best_score, avg_score=avg_score)
            )

            if t % interaction_period == 0:
                interact_ensemble(ensemble, avg_score, temperature, constraints, utility)
                logger.debug(
                    f"[Anneal] Ensemble interaction at t={t}, T={temperature:.6f}, "
                    f"avg={avg_score:.6f}"
                )
                for state in ensemble:
                    if state.score > best_score:
                        best_score = state.score
                        best_weights = state.weights.copy()

        # Terminated
        violations = find_constraint_violations(best_weights, constraints)
        for v in violations:
            logger.warning(
                f"[Anneal] Residual {v.constraint} violation at index {v.index}: "
                f"{v.value:.6f} vs bound {v.bound:.6f}"
            )

        logger.info(
            f"[Anneal] Finished: best score {best_score:.6f} "
            f"(initial best {initial_best_score:.6f})"
        )

        return AllocationResult(
            allocation=best_weights,
            score=best_score,
            initial_best_score=initial_best_score,
            diagnostics=tuple(diagnostics),
            hyperparams=hyper,
            spec=spec,
            constraint_violations=tuple(violations),
        )

    return translate


def optimize(
    spec: ModelSpec,
    market: MarketStats,
    initial_bias: Sequence[float] | None = None,
) -> AllocationResult:
    """One-shot helper: create_translator(spec)(market, initial_bias)."""
    return create_translator(spec)(market, initial_bias)
