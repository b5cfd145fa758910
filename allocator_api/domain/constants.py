"""Domain constants for allocator_api.

This module centralizes all magic numbers and configuration constants
to improve maintainability and make the codebase more self-documenting.
"""

# ============================================================================
# Numerical guards
# ============================================================================

# Added to denominators (correlation, Sharpe, temperature, tunneling distance)
EPSILON = 1e-12

# Tolerance for covariance symmetry checks
SYMMETRY_TOLERANCE = 1e-9

# Tolerance when reporting residual constraint violations
VIOLATION_TOLERANCE = 1e-9

# Bound on the ensemble-interaction exponent so exp() stays finite
INTERACTION_EXPONENT_CLIP = 500.0


# ============================================================================
# Annealing defaults
# ============================================================================

# Ensemble size is max(DEFAULT_MIN_STATES, STATES_PER_ASSET * n_assets)
DEFAULT_MIN_STATES = 8
STATES_PER_ASSET = 2

DEFAULT_ITERATIONS = 1200
DEFAULT_INITIAL_TEMP = 1.0
DEFAULT_FINAL_TEMP = 1e-3

# Tunneling escape constants (scaled "mass" and "hbar")
DEFAULT_TUNNELING_MASS = 1.0
DEFAULT_TUNNELING_HBAR = 1.0

# Strength of the correlated-pair penalty
DEFAULT_ENTANGLEMENT_GAMMA = 0.5

# Size of a single proposal step
DEFAULT_PERTURBATION_SCALE = 0.15

DEFAULT_SEED = 42

# Ensemble interaction runs every max(1, iterations // INTERACTION_DIVISOR) steps
INTERACTION_DIVISOR = 10

# Initial coordinates are |u - 0.5| * scale + INITIAL_WEIGHT_FLOOR
INITIAL_WEIGHT_FLOOR = 0.01

# Default budget target (weights sum to this)
DEFAULT_BUDGET = 1.0

# Per-request caps on the HTTP surface
MAX_REQUEST_ITERATIONS = 20_000
MAX_REQUEST_STATES = 20_000


# ============================================================================
# Objective and constraint names
# ============================================================================

OBJECTIVE_RETURN = "return"
OBJECTIVE_VARIANCE = "variance"
OBJECTIVE_SHARPE = "sharpe"
OBJECTIVE_CUSTOM = "custom"

KNOWN_OBJECTIVES = (
    OBJECTIVE_RETURN,
    OBJECTIVE_VARIANCE,
    OBJECTIVE_SHARPE,
    OBJECTIVE_CUSTOM,
)

CONSTRAINT_BUDGET = "budget"
CONSTRAINT_BOX = "box"
CONSTRAINT_MAX_WEIGHT = "max_weight"
CONSTRAINT_LONG_ONLY = "long_only"

KNOWN_CONSTRAINTS = (
    CONSTRAINT_BUDGET,
    CONSTRAINT_BOX,
    CONSTRAINT_MAX_WEIGHT,
    CONSTRAINT_LONG_ONLY,
)


# ============================================================================
# Risk profile constants
# ============================================================================

RISK_TOLERANCE_MIN = 1
RISK_TOLERANCE_MAX = 10
DEFAULT_RISK_TOLERANCE = 5

# Investment horizon buckets in years
HORIZON_BUCKETS = ("1-3", "3-5", "5-10", "10+")
DEFAULT_HORIZON = "5-10"

# Annual risk-free rate (10Y G-Sec), as a decimal
DEFAULT_RISK_FREE_RATE = 0.065

# Weight of the entropy diversification bonus
DIVERSIFICATION_WEIGHT = 0.1
