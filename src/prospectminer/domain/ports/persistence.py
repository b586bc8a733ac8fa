"""Ports for the durable lead store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from typing import Any

    from prospectminer.domain.model import (
        AngleType,
        ContactResult,
        EnrichmentData,
        EnrichmentFailure,
        ExclusionReason,
        Lead,
        LeadStatus,
        RawBusinessData,
        RawDiscovery,
        Run,
        StageName,
    )


class LeadNotFoundError(KeyError):
    """Raised when a partial update targets a lead that is not stored."""

    def __init__(self, lead_id: str) -> None:
        super().__init__(lead_id)
        self.lead_id = lead_id

    def __str__(self) -> str:
        return f"Lead not found: {self.lead_id}"


class RunNotFoundError(KeyError):
    def __init__(self, run_id: str) -> None:
        super().__init__(run_id)
        self.run_id = run_id

    def __str__(self) -> str:
        return f"Run not found: {self.run_id}"


@dataclass(frozen=True, slots=True)
class RunStats:
    total: int = 0
    completed: int = 0
    failed: int = 0


@runtime_checkable
class LeadRepository(Protocol):
    """Persistence contract for leads.

    All partial updates bump ``updated_at`` and raise ``LeadNotFoundError`` for
    unknown keys.
    """

    def get(self, lead_id: str) -> Lead | None: ...

    def upsert(self, lead: Lead, *, now: datetime) -> Lead: ...

    def for_stage(
        self,
        stage: StageName,
        *,
        now: datetime,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> list[Lead]: ...

    def update_status(
        self, lead_id: str, status: LeadStatus, *, now: datetime, force: bool = False
    ) -> Lead: ...

    def bulk_update_status(
        self, lead_ids: Iterable[str], status: LeadStatus, *, now: datetime
    ) -> int: ...

    def exclude(self, lead_id: str, reason: ExclusionReason, *, now: datetime) -> Lead: ...

    def set_cooldown(self, lead_id: str, until: datetime, *, now: datetime) -> Lead: ...

    def clear_cooldown(self, lead_id: str, *, now: datetime) -> Lead: ...

    def update_contact_result(
        self, lead_id: str, result: ContactResult, *, cooldown_until: datetime, now: datetime
    ) -> Lead: ...

    def update_angles(
        self, lead_id: str, active: Iterable[AngleType], *, now: datetime
    ) -> Lead: ...

    def exhaust_angle(self, lead_id: str, angle: AngleType, *, now: datetime) -> Lead: ...

    def reset_exhausted_angles(self, lead_id: str, *, now: datetime) -> Lead: ...

    def update_enrichment(self, lead_id: str, data: EnrichmentData, *, now: datetime) -> Lead: ...

    def add_enrichment_failure(
        self, lead_id: str, failure: EnrichmentFailure, *, now: datetime
    ) -> Lead: ...

    def update_contact_details(
        self, lead_id: str, *, email: str | None, phone: str | None, now: datetime
    ) -> Lead: ...

    def update_score(
        self, lead_id: str, score: int, reasons: Iterable[str], *, now: datetime
    ) -> Lead: ...

    def mark_output(self, lead_id: str, *, now: datetime) -> Lead: ...

    def touch(self, lead_id: str, *, now: datetime) -> Lead: ...

    def expired_cooldowns(self, *, now: datetime, limit: int | None = None) -> list[Lead]: ...

    def stale_for_signal_check(
        self, *, before: datetime, limit: int | None = None
    ) -> list[Lead]: ...

    def stats(self) -> dict[str, int]: ...

    def count(self, status: LeadStatus | None = None) -> int: ...


@runtime_checkable
class RunRepository(Protocol):
    """Persistence contract for stage runs."""

    def start(
        self, stage: StageName, *, now: datetime, metadata: dict[str, Any] | None = None
    ) -> Run: ...

    def get(self, run_id: str) -> Run | None: ...

    def update_progress(self, run_id: str, *, processed: int, passed: int, failed: int) -> Run: ...

    def complete(
        self, run_id: str, *, processed: int, passed: int, failed: int, now: datetime
    ) -> Run: ...

    def fail(
        self, run_id: str, message: str, *, now: datetime, processed: int | None = None
    ) -> Run: ...

    def cancel(self, run_id: str, *, now: datetime) -> Run: ...

    def latest(self, stage: StageName) -> Run | None: ...

    def by_stage(self, stage: StageName, *, limit: int | None = None) -> list[Run]: ...

    def recent(self, limit: int = 10) -> list[Run]: ...

    def running(self) -> list[Run]: ...

    def stats(self) -> dict[StageName, RunStats]: ...


@runtime_checkable
class RawDiscoveryRepository(Protocol):
    """Persistence contract for the staging queue."""

    def add(
        self, run_id: str, source: str, payload: RawBusinessData, *, now: datetime
    ) -> RawDiscovery: ...

    def add_bulk(
        self, run_id: str, source: str, payloads: Sequence[RawBusinessData], *, now: datetime
    ) -> int: ...

    def unprocessed(
        self, *, run_id: str | None = None, limit: int | None = None
    ) -> list[RawDiscovery]: ...

    def mark_processed(self, discovery_id: int, *, now: datetime) -> None: ...

    def mark_processed_bulk(self, discovery_ids: Iterable[int], *, now: datetime) -> int: ...

    def by_run(self, run_id: str) -> list[RawDiscovery]: ...

    def count_unprocessed(self, run_id: str | None = None) -> int: ...

    def cleanup_old(self, *, older_than: datetime) -> int: ...
