"""Domain entities - dataclasses describing one optimization run.

These entities represent the core business objects in the domain model.
"""

from allocator_api.domain.entities.allocation import (
    AllocationResult,
    Asset,
    CandidateState,
    ConstraintSpec,
    ConstraintViolation,
    DiagnosticsRecord,
    Hyperparameters,
    MarketStats,
    ModelSpec,
    ObjectiveSpec,
    Scorer,
)

__all__ = [
    # Inputs
    "Asset",
    "MarketStats",
    "ObjectiveSpec",
    "ConstraintSpec",
    "Hyperparameters",
    "ModelSpec",
    "Scorer",
    # Run state and outputs
    "CandidateState",
    "DiagnosticsRecord",
    "ConstraintViolation",
    "AllocationResult",
]
