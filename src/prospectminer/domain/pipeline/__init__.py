"""Stage runner, stages and orchestrator for the lead pipeline.

Every stage reads its input from the durable store and writes its output back,
so stages can be run alone, in any order, or repeatedly without duplicating
work.
"""

from __future__ import annotations

from .context import RunContext, RunLoggerAdapter, StageContext, utc_now
from .orchestrator import PIPELINE_ORDER, Pipeline, PipelineResult, UnskippableStageError
from .runner import RecordOutcome, Stage, StageResult

__all__ = [
    "PIPELINE_ORDER",
    "Pipeline",
    "PipelineResult",
    "RecordOutcome",
    "RunContext",
    "RunLoggerAdapter",
    "Stage",
    "StageContext",
    "StageResult",
    "UnskippableStageError",
    "utc_now",
]
