"""Explicit stage and run contexts threaded through the pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prospectminer.domain.model import StageName
    from prospectminer.domain.ports.unit_of_work import PipelineUnitOfWork
    from prospectminer.domain.settings import ProspectMinerConfig

type Clock = Callable[[], datetime]
type UnitOfWorkFactory = Callable[[], PipelineUnitOfWork]


def utc_now() -> datetime:
    return datetime.now(UTC)


class RunLoggerAdapter(logging.LoggerAdapter[logging.Logger]):
    """Prefix records with the stage and run they belong to."""

    def process(
        self, msg: object, kwargs: MutableMapping[str, Any]
    ) -> tuple[object, MutableMapping[str, Any]]:
        extra = self.extra or {}
        stage = extra.get("stage", "-")
        run_id = extra.get("run_id", "-")
        return f"[{stage} {run_id}] {msg}", kwargs


def run_logger(logger: logging.Logger, *, stage: str, run_id: str) -> RunLoggerAdapter:
    return RunLoggerAdapter(logger, {"stage": stage, "run_id": run_id})


@dataclass(frozen=True, slots=True)
class StageContext:
    """Everything a stage needs from the outside world, passed in explicitly."""

    settings: ProspectMinerConfig
    unit_of_work: UnitOfWorkFactory
    clock: Clock = utc_now

    def now(self) -> datetime:
        return self.clock()


@dataclass(slots=True)
class RunContext:
    """Counters and logger scoped to a single stage run.

    ``processed`` is always bumped before ``passed``/``failed`` so that
    ``processed >= passed + failed`` holds at every checkpoint.
    """

    run_id: str
    stage: StageName
    log: RunLoggerAdapter
    processed: int = 0
    passed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list[str])
    details: dict[str, Any] = field(default_factory=dict[str, Any])

    def record_processed(self) -> None:
        self.processed += 1

    def record_passed(self) -> None:
        self.passed += 1

    def record_failed(self) -> None:
        self.failed += 1

    def record_error(self, message: str) -> None:
        """Count a per-record failure without ending the run."""

        self.errors.append(message)
        self.failed += 1
        self.log.warning("Stage error: %s", message)

    def bump(self, key: str, amount: int = 1) -> None:
        self.details[key] = int(self.details.get(key, 0)) + amount
