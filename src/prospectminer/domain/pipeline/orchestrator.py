"""Run the pipeline stages in order against one store."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from prospectminer.domain.model import StageName

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from .runner import Stage, StageResult

log = getLogger(__name__)

PIPELINE_ORDER: Final[tuple[StageName, ...]] = (
    StageName.DISCOVER,
    StageName.COLLECT,
    StageName.FILTER,
    StageName.ENRICH,
    StageName.SCORE,
    StageName.OUTPUT,
)
SKIPPABLE_STAGES: Final[frozenset[StageName]] = frozenset({StageName.DISCOVER, StageName.ENRICH})


class UnskippableStageError(ValueError):
    def __init__(self, stage: StageName) -> None:
        super().__init__(stage)
        self.stage = stage

    def __str__(self) -> str:
        return f"Stage {self.stage} cannot be skipped"


@dataclass(frozen=True, slots=True)
class PipelineResult:
    results: tuple[StageResult, ...] = ()
    skipped: tuple[StageName, ...] = ()

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def failed_stage(self) -> StageName | None:
        for result in self.results:
            if not result.success:
                return result.stage
        return None


@dataclass(slots=True)
class Pipeline:
    """Execute stages in sequence, stopping at the first failed stage.

    Each stage reads its input from the store, so a stopped pipeline can be
    resumed by running the remaining stages individually.
    """

    stages: Sequence[Stage] = field(default_factory=tuple)
    skipped: tuple[StageName, ...] = ()

    @classmethod
    def build(
        cls,
        stages: Mapping[StageName, Stage],
        *,
        skip: Iterable[StageName] = (),
    ) -> Pipeline:
        """Arrange ``stages`` in pipeline order, leaving out ``skip``."""

        skipped = tuple(stage for stage in PIPELINE_ORDER if stage in set(skip))
        for stage in skipped:
            if stage not in SKIPPABLE_STAGES:
                raise UnskippableStageError(stage)
        ordered = [
            stages[name] for name in PIPELINE_ORDER if name not in skipped and name in stages
        ]
        return cls(stages=tuple(ordered), skipped=skipped)

    def run(self) -> PipelineResult:
        results: list[StageResult] = []
        for stage in self.stages:
            result = stage.run(metadata={"pipeline": True})
            results.append(result)
            if not result.success:
                log.error("Pipeline stopped: %s stage failed", stage.name)
                break
        else:
            log.info("Pipeline finished: %s stage(s) completed", len(results))
        return PipelineResult(results=tuple(results), skipped=self.skipped)
