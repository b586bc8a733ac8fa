"""Run bookkeeping for stage invocations."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from prospectminer.domain.model.enums import RunStatus, StageName

if TYPE_CHECKING:
    from datetime import datetime

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def new_run_id(now: datetime) -> str:
    """Return a sortable run identifier such as ``run_m1x2y3z4_9f3a1b2c``."""

    millis = int(now.timestamp() * 1000)
    return f"run_{_to_base36(millis)}_{secrets.token_hex(4)}"


@dataclass(eq=False, kw_only=True)
class Run:
    """One invocation of a stage.

    The three counters only ever grow; ``record_progress`` ignores values lower
    than the ones already recorded.
    """

    run_id: str
    stage: StageName
    started_at: datetime
    status: RunStatus = RunStatus.RUNNING
    completed_at: datetime | None = None
    leads_processed: int = 0
    leads_passed: int = 0
    leads_failed: int = 0
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any])

    @property
    def is_finished(self) -> bool:
        return self.status != RunStatus.RUNNING

    def record_progress(self, *, processed: int, passed: int, failed: int) -> None:
        self.leads_processed = max(self.leads_processed, processed)
        self.leads_passed = max(self.leads_passed, passed)
        self.leads_failed = max(self.leads_failed, failed)

    def complete(self, now: datetime, *, processed: int, passed: int, failed: int) -> None:
        self.record_progress(processed=processed, passed=passed, failed=failed)
        self.status = RunStatus.COMPLETED
        self.completed_at = now

    def fail(self, now: datetime, message: str, *, processed: int | None = None) -> None:
        if processed is not None:
            self.record_progress(
                processed=processed, passed=self.leads_passed, failed=self.leads_failed
            )
        self.status = RunStatus.FAILED
        self.error_message = message
        self.completed_at = now

    def cancel(self, now: datetime) -> None:
        self.status = RunStatus.CANCELLED
        self.completed_at = now
