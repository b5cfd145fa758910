"""FastAPI application entrypoint."""

from fastapi import FastAPI

from allocator_api import __version__
from allocator_api.routes import allocation, health, root

app = FastAPI(
    title="Allocator API",
    description="Ensemble simulated-annealing portfolio allocator",
    version=__version__,
)

app.include_router(root.router)
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(allocation.router, prefix="/allocation", tags=["allocation"])
