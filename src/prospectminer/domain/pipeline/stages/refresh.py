"""Refresh stage: return cooled-down leads to the pipeline."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from prospectminer.domain.cooldown import no_signal_change, reentry_status, signal_check_cutoff
from prospectminer.domain.model import LeadStatus, StageName
from prospectminer.domain.pipeline.runner import RecordOutcome, Stage

if TYPE_CHECKING:
    from datetime import datetime

    from prospectminer.domain.cooldown import SignalChangeCheck
    from prospectminer.domain.model import Lead
    from prospectminer.domain.pipeline.context import RunContext, StageContext
    from prospectminer.domain.ports.unit_of_work import PipelineRepositories


class RefreshStage(Stage):
    """Run the expired-cooldown and signal-change sweeps, then prune staging.

    Expired leads resume at ``enriched`` when they kept enrichment or a score,
    otherwise at ``collected``. The signal-change sweep defers to a pluggable
    check; the default never reports a change.
    """

    name = StageName.REFRESH

    def __init__(
        self,
        context: StageContext,
        *,
        signal_check: SignalChangeCheck = no_signal_change,
        limit: int | None = None,
    ) -> None:
        super().__init__(context, limit=limit)
        self.signal_check = signal_check

    def execute(self, run: RunContext) -> None:
        settings = self.settings.refresh
        if not settings.enabled:
            run.log.info("Refresh is disabled")
            return

        if settings.check_expired_cooldowns:
            self._expired_sweep(run)
        if settings.check_signal_changes:
            self._signal_sweep(run)

        cutoff = self.context.now() - timedelta(days=settings.raw_retention_days)
        with self.context.unit_of_work() as uow:
            removed = uow.repositories.raw_discoveries.cleanup_old(older_than=cutoff)
            uow.commit()
        run.details["raw_discoveries_removed"] = removed
        if removed:
            run.log.info("Removed %s processed raw discoveries", removed)

    def _expired_sweep(self, run: RunContext) -> None:
        with self.context.unit_of_work() as uow:
            leads = uow.repositories.leads.expired_cooldowns(
                now=self.context.now(), limit=self.settings.refresh.batch_limit
            )
        run.log.info("Found %s leads with expired cooldowns", len(leads))
        reset_angles = self.settings.refresh.reset_exhausted_angles

        def handle(repos: PipelineRepositories, lead: Lead, now: datetime) -> RecordOutcome:
            repos.leads.clear_cooldown(lead.lead_id, now=now)
            if lead.status != LeadStatus.COOLDOWN:
                return RecordOutcome.SKIPPED
            if reset_angles:
                repos.leads.reset_exhausted_angles(lead.lead_id, now=now)
            target = reentry_status(lead)
            repos.leads.update_status(lead.lead_id, target, now=now)
            run.bump(f"reentered_{target}")
            return RecordOutcome.PASSED

        self.process_leads(run, leads, handle)

    def _signal_sweep(self, run: RunContext) -> None:
        now = self.context.now()
        with self.context.unit_of_work() as uow:
            leads = uow.repositories.leads.stale_for_signal_check(
                before=signal_check_cutoff(self.settings.refresh, now=now),
                limit=self.settings.refresh.batch_limit,
            )
        run.log.info("Checking %s leads for signal changes", len(leads))

        def handle(repos: PipelineRepositories, lead: Lead, now: datetime) -> RecordOutcome:
            if not self.signal_check(lead):
                repos.leads.touch(lead.lead_id, now=now)
                return RecordOutcome.SKIPPED
            repos.leads.clear_cooldown(lead.lead_id, now=now)
            repos.leads.update_status(lead.lead_id, LeadStatus.FILTERED, now=now)
            run.bump("signal_changes")
            return RecordOutcome.PASSED

        self.process_leads(run, leads, handle)
