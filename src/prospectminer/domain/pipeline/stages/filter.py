"""Filter stage: exclude unfit leads, hold cooling-down ones, pass the rest."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prospectminer.domain.filtering import FilterOutcome, decide
from prospectminer.domain.model import LeadStatus, StageName
from prospectminer.domain.pipeline.runner import RecordOutcome, Stage

if TYPE_CHECKING:
    from datetime import datetime

    from prospectminer.domain.model import Lead
    from prospectminer.domain.pipeline.context import RunContext
    from prospectminer.domain.ports.unit_of_work import PipelineRepositories


class FilterStage(Stage):
    name = StageName.FILTER

    def execute(self, run: RunContext) -> None:
        leads = self.select_leads()
        if not leads:
            run.log.info("No leads to filter")
            return

        run.log.info("Filtering %s leads", len(leads))

        def handle(repos: PipelineRepositories, lead: Lead, now: datetime) -> RecordOutcome:
            verdict = decide(lead, self.settings.filters, now=now)
            match verdict.outcome:
                case FilterOutcome.EXCLUDE if verdict.reason is not None:
                    repos.leads.exclude(lead.lead_id, verdict.reason, now=now)
                    run.bump("excluded")
                    run.log.debug("Excluded %s: %s", lead.lead_id, verdict.reason)
                    return RecordOutcome.FAILED
                case FilterOutcome.HOLD:
                    run.bump("held")
                    run.log.debug("Holding %s until %s", lead.lead_id, lead.cooldown_until)
                    return RecordOutcome.FAILED
                case _:
                    repos.leads.update_status(lead.lead_id, LeadStatus.FILTERED, now=now)
                    return RecordOutcome.PASSED

        self.process_leads(run, leads, handle)
        run.log.info(
            "Filter complete: passed=%s, excluded=%s, held=%s",
            run.passed,
            run.details.get("excluded", 0),
            run.details.get("held", 0),
        )
