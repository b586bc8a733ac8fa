"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import DiscoverySource, EnrichmentFetcher, FetchResult, PageExtractor, PageSignals
from .output import ExportMetadata, FieldProjection, OutputWriter
from .persistence import (
    LeadNotFoundError,
    LeadRepository,
    RawDiscoveryRepository,
    RunNotFoundError,
    RunRepository,
    RunStats,
)
from .unit_of_work import PipelineRepositories, PipelineUnitOfWork

__all__ = [
    "DiscoverySource",
    "EnrichmentFetcher",
    "ExportMetadata",
    "FetchResult",
    "FieldProjection",
    "LeadNotFoundError",
    "LeadRepository",
    "OutputWriter",
    "PageExtractor",
    "PageSignals",
    "PipelineRepositories",
    "PipelineUnitOfWork",
    "RawDiscoveryRepository",
    "RunNotFoundError",
    "RunRepository",
    "RunStats",
]
