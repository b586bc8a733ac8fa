"""Collect stage: turn staged listings into deduplicated leads."""

from __future__ import annotations

from itertools import batched
from typing import TYPE_CHECKING

from prospectminer.domain.identity import lead_from_raw
from prospectminer.domain.model import LeadStatus, StageName
from prospectminer.domain.pipeline.runner import Stage

if TYPE_CHECKING:
    from prospectminer.domain.model import RawDiscovery
    from prospectminer.domain.pipeline.context import RunContext, StageContext


class CollectStage(Stage):
    name = StageName.COLLECT

    def __init__(
        self,
        context: StageContext,
        *,
        discover_run_id: str | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(context, limit=limit)
        self.discover_run_id = discover_run_id

    def execute(self, run: RunContext) -> None:
        with self.context.unit_of_work() as uow:
            discoveries = uow.repositories.raw_discoveries.unprocessed(
                run_id=self.discover_run_id, limit=self.limit
            )
        if not discoveries:
            run.log.info("No raw discoveries to collect")
            return

        run.log.info("Collecting %s raw discoveries", len(discoveries))
        seen: set[str] = set()
        for batch in batched(discoveries, self.settings.pipeline.batch_size):
            for discovery in batch:
                run.record_processed()
                try:
                    lead_id = self._collect(discovery)
                except Exception as exc:  # noqa: BLE001
                    run.record_error(f"raw discovery {discovery.id}: {exc}")
                    continue
                if lead_id in seen:
                    run.bump("duplicates")
                    continue
                seen.add(lead_id)
                run.record_passed()

            with self.context.unit_of_work() as uow:
                uow.repositories.raw_discoveries.mark_processed_bulk(
                    [discovery.id for discovery in batch if discovery.id is not None],
                    now=self.context.now(),
                )
                uow.commit()
            self.checkpoint(run)

        run.log.info(
            "Collection complete: collected=%s, duplicates=%s, failed=%s",
            run.passed,
            run.details.get("duplicates", 0),
            run.failed,
        )

    def _collect(self, discovery: RawDiscovery) -> str:
        """Upsert one staged listing; only brand-new leads advance to ``collected``."""

        now = self.context.now()
        incoming = lead_from_raw(
            discovery.payload, source=discovery.source, run_id=discovery.run_id, now=now
        )
        with self.context.unit_of_work() as uow:
            leads = uow.repositories.leads
            stored = leads.upsert(incoming, now=now)
            if stored.status == LeadStatus.NEW:
                leads.update_status(stored.lead_id, LeadStatus.COLLECTED, now=now)
            uow.commit()
        return stored.lead_id
