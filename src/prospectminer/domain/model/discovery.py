"""Raw discovery records staged ahead of collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class RawBusinessData:
    """A business listing as produced by a discovery source, before identity is assigned."""

    name: str
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    rating: float | None = None
    review_count: int | None = None
    categories: tuple[str, ...] = ()
    source_url: str | None = None
    additional_data: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(eq=False, kw_only=True)
class RawDiscovery:
    run_id: str
    source: str
    payload: RawBusinessData
    discovered_at: datetime
    processed: bool = False
    processed_at: datetime | None = None
    id: int | None = None

    def mark_processed(self, now: datetime) -> None:
        self.processed = True
        self.processed_at = now
