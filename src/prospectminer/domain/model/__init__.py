"""Public domain model surface."""

from __future__ import annotations

from prospectminer.domain.model.discovery import RawBusinessData, RawDiscovery
from prospectminer.domain.model.enums import (
    AngleType,
    ContactResult,
    ExclusionReason,
    FailureType,
    FilterOperator,
    LeadStatus,
    RunStatus,
    StageName,
)
from prospectminer.domain.model.lead import (
    EnrichmentData,
    EnrichmentFailure,
    InvalidStatusTransitionError,
    Lead,
    SourceMetadata,
    can_transition,
)
from prospectminer.domain.model.run import Run, new_run_id

__all__ = [
    "AngleType",
    "ContactResult",
    "EnrichmentData",
    "EnrichmentFailure",
    "ExclusionReason",
    "FailureType",
    "FilterOperator",
    "InvalidStatusTransitionError",
    "Lead",
    "LeadStatus",
    "RawBusinessData",
    "RawDiscovery",
    "Run",
    "RunStatus",
    "SourceMetadata",
    "StageName",
    "can_transition",
    "new_run_id",
]
