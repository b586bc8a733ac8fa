from __future__ import annotations

import re

from prospectminer.domain.model import Run, RunStatus, StageName, new_run_id
from tests.helpers.leads import BASE_TIME


def test_run_id_format() -> None:
    run_id = new_run_id(BASE_TIME)

    assert re.fullmatch(r"run_[0-9a-z]+_[0-9a-f]{8}", run_id)
    assert new_run_id(BASE_TIME) != run_id


def test_counters_never_decrease() -> None:
    run = Run(run_id="run_1", stage=StageName.FILTER, started_at=BASE_TIME)

    run.record_progress(processed=5, passed=3, failed=1)
    run.record_progress(processed=2, passed=1, failed=0)

    assert (run.leads_processed, run.leads_passed, run.leads_failed) == (5, 3, 1)


def test_fail_keeps_checkpointed_counters() -> None:
    run = Run(run_id="run_1", stage=StageName.FILTER, started_at=BASE_TIME)
    run.record_progress(processed=4, passed=2, failed=1)

    run.fail(BASE_TIME, "boom", processed=6)

    assert run.status is RunStatus.FAILED
    assert run.error_message == "boom"
    assert (run.leads_processed, run.leads_passed, run.leads_failed) == (6, 2, 1)
    assert run.is_finished
