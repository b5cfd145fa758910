"""Domain services - pure business logic with no I/O.

These services contain the core algorithms and business logic.
They depend only on domain entities, numpy and standard library types.
"""

from allocator_api.domain.services.annealing import (
    accept_candidate,
    cooling_temperature,
    create_translator,
    initial_states,
    interact_ensemble,
    optimize,
    propose,
    tunneling_probability,
)
from allocator_api.domain.services.constraints import (
    clamp_box,
    enforce_constraints,
    find_constraint_violations,
    normalize_budget,
)
from allocator_api.domain.services.utility import (
    build_utility_function,
    covariance_to_correlation,
    entanglement_penalty,
    portfolio_variance,
    sharpe_term,
)
from allocator_api.domain.services.validation import (
    validate_hyperparameters,
    validate_market_stats,
    validate_objective,
    validate_spec,
)

__all__ = [
    # Annealing
    "create_translator",
    "optimize",
    "cooling_temperature",
    "tunneling_probability",
    "accept_candidate",
    "initial_states",
    "propose",
    "interact_ensemble",
    # Constraints
    "normalize_budget",
    "clamp_box",
    "enforce_constraints",
    "find_constraint_violations",
    # Utility
    "build_utility_function",
    "covariance_to_correlation",
    "portfolio_variance",
    "entanglement_penalty",
    "sharpe_term",
    # Validation
    "validate_spec",
    "validate_market_stats",
    "validate_hyperparameters",
    "validate_objective",
]
