"""Health check endpoints."""

from fastapi import APIRouter, Response

from allocator_api.core.config import resolve_hyperparameters, resolve_risk_free_rate
from allocator_api.domain.exceptions import ConfigurationError
from allocator_api.domain.services.validation import validate_hyperparameters

router = APIRouter()


@router.get("")
def health_check() -> dict:
    """Generic health check."""
    return {"status": "healthy"}


@router.get("/live")
def liveness() -> dict:
    """Liveness probe - is the process running?"""
    return {"status": "alive"}


@router.get("/ready")
def readiness(response: Response) -> dict:
    """Readiness probe - can the allocator run with the deployed configuration?

    Resolves and validates the ALLOCATOR_* overrides so that a bad value
    surfaces here rather than on the first allocation request.
    """
    try:
        validate_hyperparameters(resolve_hyperparameters().resolve(1))
        resolve_risk_free_rate()
    except ConfigurationError as e:
        response.status_code = 503
        return {
            "status": "not_ready",
            "checks": {"config_valid": False},
            "detail": str(e),
        }
    return {"status": "ready", "checks": {"config_valid": True}}
