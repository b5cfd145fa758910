"""Custom exceptions for allocator_api domain.

The optimizer has a single failure mode: invalid input. Numeric degeneracy and
constraint conflicts are handled locally and never raised.
"""

from typing import Any


class AllocatorError(Exception):
    """Base exception for all allocator_api errors."""

    pass


# ============================================================================
# Configuration errors
# ============================================================================


class ConfigurationError(AllocatorError):
    """Raised when a model spec, market snapshot or profile fails validation.

    Examples:
    - Covariance matrix not square or not symmetric
    - Means length differs from the asset count
    - Non-positive temperature or tunneling constant
    - Risk tolerance outside 1-10
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value
