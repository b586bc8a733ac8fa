"""Control-flow skeleton shared by every pipeline stage.

A stage run is recorded before any work starts, counters are checkpointed to
the store after every batch, and each lead is written in its own unit of work.
A failing record is counted and skipped; anything escaping ``execute`` fails
the run but leaves already committed leads as they are.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any, ClassVar

from .context import RunContext, run_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from datetime import datetime

    from prospectminer.domain.model import Lead, StageName
    from prospectminer.domain.ports.unit_of_work import PipelineRepositories
    from prospectminer.domain.settings import ProspectMinerConfig

    from .context import StageContext

log = getLogger(__name__)


class RecordOutcome(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


type LeadHandler = Callable[[PipelineRepositories, Lead, datetime], RecordOutcome]


@dataclass(frozen=True, slots=True)
class StageResult:
    stage: StageName
    run_id: str
    success: bool
    processed: int = 0
    passed: int = 0
    failed: int = 0
    errors: tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict[str, Any])

    @classmethod
    def from_run(cls, run: RunContext, *, success: bool) -> StageResult:
        return cls(
            stage=run.stage,
            run_id=run.run_id,
            success=success,
            processed=run.processed,
            passed=run.passed,
            failed=run.failed,
            errors=tuple(run.errors),
            details=dict(run.details),
        )


class Stage(ABC):
    """Base class for the seven pipeline stages."""

    name: ClassVar[StageName]

    def __init__(self, context: StageContext, *, limit: int | None = None) -> None:
        self.context = context
        self.limit = limit if limit is not None else context.settings.pipeline.max_leads_per_run

    @property
    def settings(self) -> ProspectMinerConfig:
        return self.context.settings

    @abstractmethod
    def execute(self, run: RunContext) -> None: ...

    def run(self, *, metadata: Mapping[str, Any] | None = None) -> StageResult:
        with self.context.unit_of_work() as uow:
            record = uow.repositories.runs.start(
                self.name, now=self.context.now(), metadata=dict(metadata or {})
            )
            uow.commit()

        logger = getLogger(type(self).__module__)
        run = RunContext(
            run_id=record.run_id,
            stage=self.name,
            log=run_logger(logger, stage=self.name, run_id=record.run_id),
        )
        run.log.info("Starting %s stage", self.name)

        try:
            self.execute(run)
        except (KeyboardInterrupt, SystemExit):
            self._cancel(run)
            raise
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            run.errors.append(message)
            run.log.exception("Stage %s failed", self.name)
            self._fail(run, message)
            return StageResult.from_run(run, success=False)

        with self.context.unit_of_work() as uow:
            uow.repositories.runs.complete(
                run.run_id,
                processed=run.processed,
                passed=run.passed,
                failed=run.failed,
                now=self.context.now(),
            )
            uow.commit()
        run.log.info(
            "Completed %s stage: processed=%s, passed=%s, failed=%s",
            self.name,
            run.processed,
            run.passed,
            run.failed,
        )
        return StageResult.from_run(run, success=True)

    def checkpoint(self, run: RunContext) -> None:
        """Publish the run's counters so progress queries see them mid-run."""

        with self.context.unit_of_work() as uow:
            uow.repositories.runs.update_progress(
                run.run_id, processed=run.processed, passed=run.passed, failed=run.failed
            )
            uow.commit()

    def process_leads(
        self,
        run: RunContext,
        leads: Sequence[Lead],
        handle: LeadHandler,
    ) -> None:
        """Apply ``handle`` to each lead, committing every lead on its own."""

        batch_size = self.settings.pipeline.batch_size
        for index, lead in enumerate(leads, start=1):
            self.process_lead(run, lead, handle)
            if index % batch_size == 0:
                self.checkpoint(run)
        self.checkpoint(run)

    def process_lead(self, run: RunContext, lead: Lead, handle: LeadHandler) -> None:
        run.record_processed()
        try:
            with self.context.unit_of_work() as uow:
                outcome = handle(uow.repositories, lead, self.context.now())
                uow.commit()
        except Exception as exc:  # noqa: BLE001
            run.record_error(f"{lead.lead_id}: {exc}")
        else:
            self._count(run, outcome)

    def select_leads(
        self, stage: StageName | None = None, *, min_score: float | None = None
    ) -> list[Lead]:
        with self.context.unit_of_work() as uow:
            return uow.repositories.leads.for_stage(
                stage or self.name, now=self.context.now(), limit=self.limit, min_score=min_score
            )

    @staticmethod
    def _count(run: RunContext, outcome: RecordOutcome) -> None:
        match outcome:
            case RecordOutcome.PASSED:
                run.record_passed()
            case RecordOutcome.FAILED:
                run.record_failed()
            case RecordOutcome.SKIPPED:
                pass

    def _fail(self, run: RunContext, message: str) -> None:
        # passed/failed stay at the last checkpoint; only the residual processed count moves
        try:
            with self.context.unit_of_work() as uow:
                uow.repositories.runs.fail(
                    run.run_id, message, now=self.context.now(), processed=run.processed
                )
                uow.commit()
        except Exception:
            log.exception("Could not record failure of run %s", run.run_id)

    def _cancel(self, run: RunContext) -> None:
        run.log.warning("%s stage interrupted", self.name)
        with self.context.unit_of_work() as uow:
            uow.repositories.runs.cancel(run.run_id, now=self.context.now())
            uow.commit()
