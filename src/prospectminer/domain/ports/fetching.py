"""Ports for pulling business data from external systems."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from prospectminer.domain.model import FailureType, RawBusinessData
    from prospectminer.domain.settings import SourceSettings


@runtime_checkable
class DiscoverySource(Protocol):
    """Produces a lazy, finite stream of raw business listings for one source config."""

    def discover(
        self,
        source: SourceSettings,
        *,
        limit: int | None = None,
    ) -> AsyncIterator[RawBusinessData]: ...


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of fetching one web page."""

    url: str
    html: str | None = None
    status_code: int | None = None
    failure_type: FailureType | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure_type is None and self.html is not None


@runtime_checkable
class EnrichmentFetcher(Protocol):
    """Fetches a page and classifies failures into the enrichment failure taxonomy."""

    async def fetch(self, url: str) -> FetchResult: ...

    async def aclose(self) -> None: ...


@dataclass(frozen=True, slots=True)
class PageSignals:
    """Outreach signals extracted from a single HTML page."""

    emails: tuple[str, ...] = ()
    phones: tuple[str, ...] = ()
    social_links: Mapping[str, str] = field(default_factory=dict[str, str])
    has_online_booking: bool = False
    title: str | None = None
    meta_description: str | None = None
    contact_links: tuple[str, ...] = ()


@runtime_checkable
class PageExtractor(Protocol):
    def extract(self, html: str, *, base_url: str) -> PageSignals: ...


__all__ = [
    "DiscoverySource",
    "EnrichmentFetcher",
    "FetchResult",
    "PageExtractor",
    "PageSignals",
]
