"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from sqlalchemy import and_, delete, func, or_, select

from prospectminer.adapters.sqlalchemy.mappings import (
    lead_table,
    raw_discovery_table,
    run_table,
)
from prospectminer.domain.model import (
    Lead,
    LeadStatus,
    RawDiscovery,
    Run,
    RunStatus,
    StageName,
    new_run_id,
)
from prospectminer.domain.ports.persistence import (
    LeadNotFoundError,
    RunNotFoundError,
    RunStats,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from typing import Any

    from sqlalchemy.orm import Session
    from sqlalchemy.sql import ColumnElement

    from prospectminer.domain.model import (
        AngleType,
        ContactResult,
        EnrichmentData,
        EnrichmentFailure,
        ExclusionReason,
        RawBusinessData,
    )

# status a lead must hold to be picked up by each stage
STAGE_INPUT_STATUS: Final[dict[StageName, LeadStatus]] = {
    StageName.COLLECT: LeadStatus.NEW,
    StageName.FILTER: LeadStatus.COLLECTED,
    StageName.ENRICH: LeadStatus.FILTERED,
    StageName.SCORE: LeadStatus.ENRICHED,
    StageName.OUTPUT: LeadStatus.SCORED,
}
SIGNAL_CHECK_STATUSES: Final[tuple[LeadStatus, ...]] = (LeadStatus.OUTPUT, LeadStatus.COOLDOWN)


def _not_cooling_down(now: datetime) -> ColumnElement[bool]:
    return or_(lead_table.c.cooldown_until.is_(None), lead_table.c.cooldown_until < now)


class SqlAlchemyLeadRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, lead_id: str) -> Lead | None:
        return self.session.get(Lead, lead_id)

    def _require(self, lead_id: str) -> Lead:
        lead = self.get(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return lead

    def upsert(self, lead: Lead, *, now: datetime) -> Lead:
        """Insert ``lead`` or merge it into the stored lead with the same key."""

        existing = self.get(lead.lead_id)
        if existing is None:
            lead.first_seen_at = now
            lead.last_seen_at = now
            lead.created_at = now
            lead.updated_at = now
            self.session.add(lead)
            self.session.flush()
            return lead
        existing.merge_discovery(lead, now)
        self.session.flush()
        return existing

    def for_stage(
        self,
        stage: StageName,
        *,
        now: datetime,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> list[Lead]:
        status = STAGE_INPUT_STATUS.get(stage)
        if status is None:
            return []
        stmt = (
            select(Lead)
            .where(lead_table.c.status == status)
            .where(lead_table.c.excluded_reason.is_(None))
            .where(_not_cooling_down(now))
            .order_by(lead_table.c.first_seen_at, lead_table.c.lead_id)
        )
        if min_score is not None:
            # the floor must apply before the limit
            stmt = stmt.where(lead_table.c.score >= min_score)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def update_status(
        self, lead_id: str, status: LeadStatus, *, now: datetime, force: bool = False
    ) -> Lead:
        lead = self._require(lead_id)
        lead.transition_to(status, now, force=force)
        return lead

    def bulk_update_status(
        self, lead_ids: Iterable[str], status: LeadStatus, *, now: datetime
    ) -> int:
        """Manual override: set ``status`` on every listed lead, bypassing edge checks."""

        ids = list(lead_ids)
        if not ids:
            return 0
        stmt = select(Lead).where(lead_table.c.lead_id.in_(ids))
        leads = list(self.session.execute(stmt).scalars())
        for lead in leads:
            lead.transition_to(status, now, force=True)
        return len(leads)

    def exclude(self, lead_id: str, reason: ExclusionReason, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.exclude(reason, now)
        return lead

    def set_cooldown(self, lead_id: str, until: datetime, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.start_cooldown(until, now)
        return lead

    def clear_cooldown(self, lead_id: str, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.clear_cooldown(now)
        return lead

    def update_contact_result(
        self, lead_id: str, result: ContactResult, *, cooldown_until: datetime, now: datetime
    ) -> Lead:
        lead = self._require(lead_id)
        lead.record_contact(result, now)
        if lead.status != LeadStatus.EXCLUDED:
            lead.start_cooldown(cooldown_until, now)
        return lead

    def update_angles(self, lead_id: str, active: Iterable[AngleType], *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.set_active_angles(active, now)
        return lead

    def exhaust_angle(self, lead_id: str, angle: AngleType, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.exhaust_angle(angle, now)
        return lead

    def reset_exhausted_angles(self, lead_id: str, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.reset_exhausted_angles(now)
        return lead

    def update_enrichment(self, lead_id: str, data: EnrichmentData, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.apply_enrichment(data, now)
        return lead

    def add_enrichment_failure(
        self, lead_id: str, failure: EnrichmentFailure, *, now: datetime
    ) -> Lead:
        lead = self._require(lead_id)
        lead.add_enrichment_failure(failure, now)
        return lead

    def update_contact_details(
        self, lead_id: str, *, email: str | None, phone: str | None, now: datetime
    ) -> Lead:
        lead = self._require(lead_id)
        lead.fill_contact_details(email=email, phone=phone, now=now)
        return lead

    def update_score(
        self, lead_id: str, score: int, reasons: Iterable[str], *, now: datetime
    ) -> Lead:
        lead = self._require(lead_id)
        lead.apply_score(score, reasons, now)
        return lead

    def mark_output(self, lead_id: str, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.mark_output(now)
        return lead

    def touch(self, lead_id: str, *, now: datetime) -> Lead:
        lead = self._require(lead_id)
        lead.touch(now)
        return lead

    def expired_cooldowns(self, *, now: datetime, limit: int | None = None) -> list[Lead]:
        stmt = (
            select(Lead)
            .where(lead_table.c.cooldown_until.is_not(None))
            .where(lead_table.c.cooldown_until <= now)
            .where(lead_table.c.excluded_reason.is_(None))
            .order_by(lead_table.c.cooldown_until, lead_table.c.lead_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def stale_for_signal_check(
        self, *, before: datetime, limit: int | None = None
    ) -> list[Lead]:
        stmt = (
            select(Lead)
            .where(lead_table.c.status.in_(SIGNAL_CHECK_STATUSES))
            .where(lead_table.c.excluded_reason.is_(None))
            .where(lead_table.c.updated_at < before)
            .order_by(lead_table.c.updated_at, lead_table.c.lead_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def stats(self) -> dict[str, int]:
        stmt = select(lead_table.c.status, func.count()).group_by(lead_table.c.status)
        counts: dict[str, int] = {str(status): 0 for status in LeadStatus}
        for status, count in self.session.execute(stmt):
            counts[str(status)] = int(count)
        counts["total"] = sum(counts.values())
        return counts

    def count(self, status: LeadStatus | None = None) -> int:
        stmt = select(func.count()).select_from(lead_table)
        if status is not None:
            stmt = stmt.where(lead_table.c.status == status)
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def start(
        self, stage: StageName, *, now: datetime, metadata: dict[str, Any] | None = None
    ) -> Run:
        run = Run(
            run_id=new_run_id(now),
            stage=stage,
            started_at=now,
            details=dict(metadata or {}),
        )
        self.session.add(run)
        self.session.flush()
        return run

    def get(self, run_id: str) -> Run | None:
        return self.session.get(Run, run_id)

    def _require(self, run_id: str) -> Run:
        run = self.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def update_progress(self, run_id: str, *, processed: int, passed: int, failed: int) -> Run:
        run = self._require(run_id)
        run.record_progress(processed=processed, passed=passed, failed=failed)
        return run

    def complete(
        self, run_id: str, *, processed: int, passed: int, failed: int, now: datetime
    ) -> Run:
        run = self._require(run_id)
        run.complete(now, processed=processed, passed=passed, failed=failed)
        return run

    def fail(
        self, run_id: str, message: str, *, now: datetime, processed: int | None = None
    ) -> Run:
        run = self._require(run_id)
        run.fail(now, message, processed=processed)
        return run

    def cancel(self, run_id: str, *, now: datetime) -> Run:
        run = self._require(run_id)
        run.cancel(now)
        return run

    def latest(self, stage: StageName) -> Run | None:
        stmt = (
            select(Run)
            .where(run_table.c.stage == stage)
            .order_by(run_table.c.started_at.desc(), run_table.c.run_id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def by_stage(self, stage: StageName, *, limit: int | None = None) -> list[Run]:
        stmt = (
            select(Run)
            .where(run_table.c.stage == stage)
            .order_by(run_table.c.started_at.desc(), run_table.c.run_id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def recent(self, limit: int = 10) -> list[Run]:
        stmt = (
            select(Run)
            .order_by(run_table.c.started_at.desc(), run_table.c.run_id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def running(self) -> list[Run]:
        stmt = (
            select(Run)
            .where(run_table.c.status == RunStatus.RUNNING)
            .order_by(run_table.c.started_at)
        )
        return list(self.session.execute(stmt).scalars())

    def stats(self) -> dict[StageName, RunStats]:
        stmt = select(run_table.c.stage, run_table.c.status, func.count()).group_by(
            run_table.c.stage, run_table.c.status
        )
        totals: dict[StageName, dict[RunStatus, int]] = {}
        for stage, status, count in self.session.execute(stmt):
            totals.setdefault(StageName(stage), {})[RunStatus(status)] = int(count)
        return {
            stage: RunStats(
                total=sum(by_status.values()),
                completed=by_status.get(RunStatus.COMPLETED, 0),
                failed=by_status.get(RunStatus.FAILED, 0),
            )
            for stage, by_status in totals.items()
        }


class SqlAlchemyRawDiscoveryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(
        self, run_id: str, source: str, payload: RawBusinessData, *, now: datetime
    ) -> RawDiscovery:
        discovery = RawDiscovery(run_id=run_id, source=source, payload=payload, discovered_at=now)
        self.session.add(discovery)
        self.session.flush()
        return discovery

    def add_bulk(
        self, run_id: str, source: str, payloads: Sequence[RawBusinessData], *, now: datetime
    ) -> int:
        self.session.add_all(
            RawDiscovery(run_id=run_id, source=source, payload=payload, discovered_at=now)
            for payload in payloads
        )
        self.session.flush()
        return len(payloads)

    def unprocessed(
        self, *, run_id: str | None = None, limit: int | None = None
    ) -> list[RawDiscovery]:
        stmt = select(RawDiscovery).where(raw_discovery_table.c.processed.is_(False))
        if run_id is not None:
            stmt = stmt.where(raw_discovery_table.c.run_id == run_id)
        stmt = stmt.order_by(raw_discovery_table.c.discovered_at, raw_discovery_table.c.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars())

    def mark_processed(self, discovery_id: int, *, now: datetime) -> None:
        discovery = self.session.get(RawDiscovery, discovery_id)
        if discovery is not None:
            discovery.mark_processed(now)

    def mark_processed_bulk(self, discovery_ids: Iterable[int], *, now: datetime) -> int:
        ids = list(discovery_ids)
        if not ids:
            return 0
        stmt = select(RawDiscovery).where(raw_discovery_table.c.id.in_(ids))
        discoveries = list(self.session.execute(stmt).scalars())
        for discovery in discoveries:
            discovery.mark_processed(now)
        return len(discoveries)

    def by_run(self, run_id: str) -> list[RawDiscovery]:
        stmt = (
            select(RawDiscovery)
            .where(raw_discovery_table.c.run_id == run_id)
            .order_by(raw_discovery_table.c.discovered_at, raw_discovery_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def count_unprocessed(self, run_id: str | None = None) -> int:
        conditions = [raw_discovery_table.c.processed.is_(False)]
        if run_id is not None:
            conditions.append(raw_discovery_table.c.run_id == run_id)
        stmt = select(func.count()).select_from(raw_discovery_table).where(and_(*conditions))
        return int(self.session.execute(stmt).scalar_one())

    def cleanup_old(self, *, older_than: datetime) -> int:
        stmt = (
            delete(raw_discovery_table)
            .where(raw_discovery_table.c.processed.is_(True))
            .where(raw_discovery_table.c.discovered_at < older_than)
        )
        result = self.session.execute(stmt)
        return result.rowcount
