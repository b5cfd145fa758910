"""Configuration for the annealing allocator.

Hyperparameter defaults live in allocator_api.domain.constants. A few of
them can be overridden per deployment through environment variables.
"""

import os

from allocator_api.domain.constants import (
    DEFAULT_FINAL_TEMP,
    DEFAULT_INITIAL_TEMP,
    DEFAULT_ITERATIONS,
    DEFAULT_RISK_FREE_RATE,
    DEFAULT_SEED,
)
from allocator_api.domain.entities.allocation import Hyperparameters
from allocator_api.domain.exceptions import ConfigurationError

# Environment variable names
ENV_ITERATIONS = "ALLOCATOR_ITERATIONS"
ENV_STATES = "ALLOCATOR_STATES"
ENV_SEED = "ALLOCATOR_SEED"
ENV_INITIAL_TEMP = "ALLOCATOR_INITIAL_TEMP"
ENV_FINAL_TEMP = "ALLOCATOR_FINAL_TEMP"
ENV_RISK_FREE_RATE = "ALLOCATOR_RISK_FREE_RATE"

ALL_ENV_VARS = (
    ENV_ITERATIONS,
    ENV_STATES,
    ENV_SEED,
    ENV_INITIAL_TEMP,
    ENV_FINAL_TEMP,
    ENV_RISK_FREE_RATE,
)


def _read_env(name: str, cast: type, default):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}", field=name, value=raw
        ) from e


def resolve_hyperparameters(**overrides) -> Hyperparameters:
    """Resolve hyperparameters from environment, then explicit overrides.

    Reads:
    - ALLOCATOR_ITERATIONS (default: 1200)
    - ALLOCATOR_STATES (default: max(8, 2 * n_assets), resolved at run time)
    - ALLOCATOR_SEED (default: 42)
    - ALLOCATOR_INITIAL_TEMP (default: 1.0)
    - ALLOCATOR_FINAL_TEMP (default: 1e-3)

    Args:
        **overrides: Hyperparameters fields; None values are ignored

    Returns:
        Hyperparameters instance
    """
    values = {
        "iterations": _read_env(ENV_ITERATIONS, int, DEFAULT_ITERATIONS),
        "states": _read_env(ENV_STATES, int, None),
        "seed": _read_env(ENV_SEED, int, DEFAULT_SEED),
        "initial_temp": _read_env(ENV_INITIAL_TEMP, float, DEFAULT_INITIAL_TEMP),
        "final_temp": _read_env(ENV_FINAL_TEMP, float, DEFAULT_FINAL_TEMP),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Hyperparameters(**values)


def resolve_risk_free_rate() -> float:
    """Annual risk-free rate as a decimal (ALLOCATOR_RISK_FREE_RATE, default 0.065)."""
    return _read_env(ENV_RISK_FREE_RATE, float, DEFAULT_RISK_FREE_RATE)
