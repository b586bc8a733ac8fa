"""Score stage: weight enriched leads and pick their outreach angles."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prospectminer.domain.cooldown import default_cooldown
from prospectminer.domain.model import ExclusionReason, LeadStatus, StageName
from prospectminer.domain.pipeline.runner import RecordOutcome, Stage
from prospectminer.domain.scoring import score_lead

if TYPE_CHECKING:
    from datetime import datetime

    from prospectminer.domain.model import Lead
    from prospectminer.domain.pipeline.context import RunContext
    from prospectminer.domain.ports.unit_of_work import PipelineRepositories


class ScoreStage(Stage):
    """Score every enriched lead.

    The score and its reasons are always stored. Leads under the minimum score
    are excluded as a bad fit; leads whose detected angles are all exhausted
    go into the default cooldown instead of being exported again.
    """

    name = StageName.SCORE

    def execute(self, run: RunContext) -> None:
        leads = self.select_leads()
        if not leads:
            run.log.info("No leads to score")
            return
        run.log.info("Scoring %s leads", len(leads))
        settings = self.settings.scoring
        min_score = settings.thresholds.min_score

        def handle(repos: PipelineRepositories, lead: Lead, now: datetime) -> RecordOutcome:
            result = score_lead(lead, settings, now=now)
            repos.leads.update_score(lead.lead_id, result.score, result.reasons, now=now)

            if result.score < min_score:
                repos.leads.exclude(lead.lead_id, ExclusionReason.BAD_FIT, now=now)
                run.bump("below_min_score")
                return RecordOutcome.FAILED

            angles = result.active_angles(lead.exhausted_angles)
            repos.leads.update_angles(lead.lead_id, angles, now=now)
            if not angles:
                until = default_cooldown(self.settings.cooldowns, now=now)
                repos.leads.set_cooldown(lead.lead_id, until, now=now)
                run.bump("angles_exhausted")
                return RecordOutcome.FAILED

            repos.leads.update_status(lead.lead_id, LeadStatus.SCORED, now=now)
            return RecordOutcome.PASSED

        self.process_leads(run, leads, handle)
