"""Output stage: export scored leads and start their post-export cooldown."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prospectminer.domain.cooldown import default_cooldown
from prospectminer.domain.model import StageName
from prospectminer.domain.pipeline.runner import RecordOutcome, Stage
from prospectminer.domain.ports.output import ExportMetadata, FieldProjection
from prospectminer.domain.settings import OutputFormat

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from prospectminer.domain.model import Lead
    from prospectminer.domain.pipeline.context import RunContext, StageContext
    from prospectminer.domain.ports.output import OutputWriter
    from prospectminer.domain.ports.unit_of_work import PipelineRepositories


class MissingWriterError(LookupError):
    """Raised when no writer is registered for a requested output format."""

    def __init__(self, output_format: str) -> None:
        super().__init__(output_format)
        self.output_format = output_format

    def __str__(self) -> str:
        return f"No writer registered for output format: {self.output_format}"


def writer_formats(output_format: OutputFormat) -> tuple[str, ...]:
    if output_format == OutputFormat.BOTH:
        return (OutputFormat.CSV, OutputFormat.JSON)
    return (output_format,)


class OutputStage(Stage):
    """Hand eligible scored leads to the configured writers.

    Files are written before any lead is touched, so a failing writer leaves
    every lead ``scored``. Leads under the minimum score are left as they are.
    """

    name = StageName.OUTPUT

    def __init__(
        self,
        context: StageContext,
        *,
        writers: Mapping[str, OutputWriter],
        output_format: OutputFormat | None = None,
        min_score: float | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(context, limit=limit)
        self.writers = writers
        self.output_format = output_format
        self.min_score = min_score

    @property
    def effective_min_score(self) -> float:
        if self.min_score is not None:
            return self.min_score
        if self.settings.output.min_score is not None:
            return self.settings.output.min_score
        return self.settings.scoring.thresholds.min_score

    def execute(self, run: RunContext) -> None:
        settings = self.settings.output
        min_score = self.effective_min_score
        formats = writer_formats(self.output_format or settings.format)
        writers = [self._writer(name) for name in formats]

        eligible = self.select_leads(min_score=min_score)
        if not eligible:
            run.log.info("No leads eligible for export")
            self.checkpoint(run)
            return

        projection = FieldProjection(
            fields=settings.fields,
            include_angles=settings.include_angles,
            include_reasons=settings.include_reasons,
        )
        metadata = ExportMetadata(
            exported_at=self.context.now(),
            run_id=run.run_id,
            count=len(eligible),
            min_score=min_score,
        )
        files = [
            str(writer.write(eligible, projection=projection, metadata=metadata))
            for writer in writers
        ]
        run.details["files"] = files
        run.log.info("Exported %s leads to %s", len(eligible), ", ".join(files))

        def handle(repos: PipelineRepositories, lead: Lead, now: datetime) -> RecordOutcome:
            repos.leads.mark_output(lead.lead_id, now=now)
            until = default_cooldown(self.settings.cooldowns, now=now)
            repos.leads.set_cooldown(lead.lead_id, until, now=now)
            return RecordOutcome.PASSED

        self.process_leads(run, eligible, handle)

    def _writer(self, output_format: str) -> OutputWriter:
        writer = self.writers.get(output_format)
        if writer is None:
            raise MissingWriterError(output_format)
        return writer
