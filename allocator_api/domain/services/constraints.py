"""Portfolio constraint enforcement.

Handles:
- Budget (weights sum to a target, default 1)
- Box bounds per asset
- Cap on a single asset (no redistribution of the clipped mass)
- Long-only

Constraints apply in declaration order and every result is finally
renormalized to the budget, so the output always lies on the target simplex.
Box and cap bounds are best effort: the final renormalization can push a
coordinate back over its bound. Such residuals are reported by
find_constraint_violations rather than raised.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from allocator_api.domain.constants import (
    CONSTRAINT_BOX,
    CONSTRAINT_BUDGET,
    CONSTRAINT_LONG_ONLY,
    CONSTRAINT_MAX_WEIGHT,
    DEFAULT_BUDGET,
    VIOLATION_TOLERANCE,
)
from allocator_api.domain.entities.allocation import ConstraintSpec, ConstraintViolation


def normalize_budget(weights: np.ndarray, budget: float = DEFAULT_BUDGET) -> np.ndarray:
    """Rescale the positive part of a vector so it sums to the budget.

    Negative coordinates are dropped to 0. If nothing is positive (or the
    positive mass is not finite), returns the uniform allocation budget / n.

    Args:
        weights: Arbitrary real vector
        budget: Target sum

    Returns:
        New vector summing to budget
    """
    n = len(weights)
    positive = np.maximum(weights, 0.0)
    total = float(np.sum(positive))

    if total <= 0 or not np.isfinite(total):
        return np.full(n, budget / n)

    return positive * (budget / total)


def clamp_box(
    weights: np.ndarray,
    min_weights: Sequence[float] | None = None,
    max_weights: Sequence[float] | None = None,
) -> np.ndarray:
    """Clamp each coordinate into [min[i], max[i]]; a missing side is unbounded."""
    lo = -np.inf if min_weights is None else np.asarray(min_weights, dtype=float)
    hi = np.inf if max_weights is None else np.asarray(max_weights, dtype=float)
    return np.clip(weights, lo, hi)


def budget_target(constraints: Sequence[ConstraintSpec]) -> float:
    """Target of the last declared budget constraint (1.0 if none)."""
    target = DEFAULT_BUDGET
    for c in constraints:
        if c.type == CONSTRAINT_BUDGET:
            target = c.target
    return target


def enforce_constraints(
    weights: np.ndarray,
    constraints: Sequence[ConstraintSpec],
) -> np.ndarray:
    """Map an arbitrary vector to a feasible point.

    Args:
        weights: Arbitrary real vector (not modified)
        constraints: Applied in order

    Returns:
        New vector that sums to the budget target
    """
    out = np.array(weights, dtype=float)

    for c in constraints:
        if c.type == CONSTRAINT_LONG_ONLY:
            out = np.maximum(out, 0.0)
        elif c.type == CONSTRAINT_BOX:
            out = clamp_box(out, c.min_weights, c.max_weights)
        elif c.type == CONSTRAINT_BUDGET:
            out = normalize_budget(out, c.target)
        elif c.type == CONSTRAINT_MAX_WEIGHT:
            out[c.index] = min(out[c.index], c.cap)

    return normalize_budget(out, budget_target(constraints))


def find_constraint_violations(
    weights: np.ndarray,
    constraints: Sequence[ConstraintSpec],
    tol: float = VIOLATION_TOLERANCE,
) -> list[ConstraintViolation]:
    """List box and cap bounds the final weights still break."""
    violations: list[ConstraintViolation] = []

    for c in constraints:
        if c.type == CONSTRAINT_BOX:
            for i, w in enumerate(weights):
                if c.min_weights is not None and w < c.min_weights[i] - tol:
                    violations.append(
                        ConstraintViolation(CONSTRAINT_BOX, i, float(w), float(c.min_weights[i]))
                    )
                if c.max_weights is not None and w > c.max_weights[i] + tol:
                    violations.append(
                        ConstraintViolation(CONSTRAINT_BOX, i, float(w), float(c.max_weights[i]))
                    )
        elif c.type == CONSTRAINT_MAX_WEIGHT:
            w = weights[c.index]
            if w > c.cap + tol:
                violations.append(
                    ConstraintViolation(CONSTRAINT_MAX_WEIGHT, c.index, float(w), float(c.cap))
                )

    return violations
