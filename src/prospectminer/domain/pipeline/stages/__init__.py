"""The seven pipeline stages."""

from __future__ import annotations

from .collect import CollectStage
from .discover import DiscoverStage, SourceFactory, UnknownSourceTypeError
from .enrich import EnrichStage, FetcherFactory
from .filter import FilterStage
from .output import MissingWriterError, OutputStage
from .refresh import RefreshStage
from .score import ScoreStage

__all__ = [
    "CollectStage",
    "DiscoverStage",
    "EnrichStage",
    "FetcherFactory",
    "FilterStage",
    "MissingWriterError",
    "OutputStage",
    "RefreshStage",
    "ScoreStage",
    "SourceFactory",
    "UnknownSourceTypeError",
]
