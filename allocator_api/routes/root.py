"""Root endpoint."""

from fastapi import APIRouter

from allocator_api import __version__

router = APIRouter(tags=["root"])


@router.get("/")
def read_root() -> dict:
    """Service banner."""
    return {
        "message": "Stochastic portfolio allocator",
        "service": "allocator-api",
        "version": __version__,
    }
