"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from prospectminer.adapters.export import CsvLeadWriter, JsonLeadWriter
from prospectminer.adapters.jsonl import JsonlSource
from prospectminer.adapters.places import GooglePlacesSource
from prospectminer.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    is_started,
    startup,
)
from prospectminer.adapters.website import HtmlPageExtractor, WebsiteFetcher
from prospectminer.config import load_config
from prospectminer.domain.cooldown import no_signal_change
from prospectminer.domain.model import StageName
from prospectminer.domain.pipeline import Pipeline, StageContext, utc_now
from prospectminer.domain.pipeline.stages import (
    CollectStage,
    DiscoverStage,
    EnrichStage,
    FilterStage,
    OutputStage,
    RefreshStage,
    ScoreStage,
)
from prospectminer.domain.settings import OutputFormat

if TYPE_CHECKING:
    from pathlib import Path

    from prospectminer.domain.cooldown import SignalChangeCheck
    from prospectminer.domain.model import Run
    from prospectminer.domain.pipeline import PipelineResult, Stage, StageResult
    from prospectminer.domain.pipeline.context import Clock, UnitOfWorkFactory
    from prospectminer.domain.pipeline.stages import FetcherFactory, SourceFactory
    from prospectminer.domain.ports.fetching import PageExtractor
    from prospectminer.domain.ports.output import OutputWriter
    from prospectminer.domain.ports.persistence import RunStats
    from prospectminer.domain.settings import ProspectMinerConfig

type WriterFactory = Callable[[Path], OutputWriter]

log = getLogger(__name__)

RECENT_RUNS_LIMIT: Final[int] = 5

SOURCE_REGISTRY: Final[Mapping[str, SourceFactory]] = {
    "google_places": GooglePlacesSource,
    "jsonl": JsonlSource,
}

WRITER_REGISTRY: Final[Mapping[str, WriterFactory]] = {
    OutputFormat.CSV: CsvLeadWriter,
    OutputFormat.JSON: JsonLeadWriter,
}


@dataclass(frozen=True, slots=True)
class PipelineStats:
    leads: Mapping[str, int] = field(default_factory=dict)
    runs: Mapping[StageName, RunStats] = field(default_factory=dict)
    recent_runs: tuple[Run, ...] = ()


def build_context(
    *,
    config_path: Path | None = None,
    settings: ProspectMinerConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    clock: Clock = utc_now,
) -> StageContext:
    """Load settings and make sure the store is ready before any stage runs."""

    effective_settings = settings or load_config(config_path)
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyUnitOfWork
    return StageContext(
        settings=effective_settings,
        unit_of_work=unit_of_work_factory,
        clock=clock,
    )


def default_writers(settings: ProspectMinerConfig) -> dict[str, OutputWriter]:
    directory = settings.output.directory
    return {name: factory(directory) for name, factory in WRITER_REGISTRY.items()}


def _website_fetcher_factory(settings: ProspectMinerConfig) -> FetcherFactory:
    return lambda: WebsiteFetcher.from_settings(settings.enrichment)


def run_discover(
    context: StageContext,
    *,
    source_name: str | None = None,
    limit: int | None = None,
    sources: Mapping[str, SourceFactory] | None = None,
) -> StageResult:
    stage = DiscoverStage(
        context,
        sources=sources or SOURCE_REGISTRY,
        source_name=source_name,
        limit=limit,
    )
    return stage.run(metadata={"source": source_name} if source_name else None)


def run_collect(
    context: StageContext,
    *,
    discover_run_id: str | None = None,
    limit: int | None = None,
) -> StageResult:
    stage = CollectStage(context, discover_run_id=discover_run_id, limit=limit)
    return stage.run(metadata={"discover_run_id": discover_run_id} if discover_run_id else None)


def run_filter(context: StageContext, *, limit: int | None = None) -> StageResult:
    return FilterStage(context, limit=limit).run()


def run_enrich(
    context: StageContext,
    *,
    limit: int | None = None,
    fetcher_factory: FetcherFactory | None = None,
    extractor: PageExtractor | None = None,
) -> StageResult:
    stage = EnrichStage(
        context,
        fetcher_factory=fetcher_factory or _website_fetcher_factory(context.settings),
        extractor=extractor or HtmlPageExtractor.from_settings(context.settings.enrichment),
        limit=limit,
    )
    return stage.run()


def run_score(context: StageContext, *, limit: int | None = None) -> StageResult:
    return ScoreStage(context, limit=limit).run()


def run_output(
    context: StageContext,
    *,
    output_format: OutputFormat | None = None,
    min_score: float | None = None,
    limit: int | None = None,
    writers: Mapping[str, OutputWriter] | None = None,
) -> StageResult:
    stage = OutputStage(
        context,
        writers=writers or default_writers(context.settings),
        output_format=output_format,
        min_score=min_score,
        limit=limit,
    )
    return stage.run(metadata={"format": str(output_format)} if output_format else None)


def run_refresh(
    context: StageContext,
    *,
    signal_check: SignalChangeCheck = no_signal_change,
) -> StageResult:
    return RefreshStage(context, signal_check=signal_check).run()


def run_pipeline(
    context: StageContext,
    *,
    skip_discover: bool = False,
    skip_enrich: bool = False,
    limit: int | None = None,
    sources: Mapping[str, SourceFactory] | None = None,
    fetcher_factory: FetcherFactory | None = None,
    writers: Mapping[str, OutputWriter] | None = None,
) -> PipelineResult:
    """Run discover through output in order, stopping at the first failed stage."""

    settings = context.settings
    stages: dict[StageName, Stage] = {
        StageName.DISCOVER: DiscoverStage(
            context, sources=sources or SOURCE_REGISTRY, limit=limit
        ),
        StageName.COLLECT: CollectStage(context, limit=limit),
        StageName.FILTER: FilterStage(context, limit=limit),
        StageName.ENRICH: EnrichStage(
            context,
            fetcher_factory=fetcher_factory or _website_fetcher_factory(settings),
            extractor=HtmlPageExtractor.from_settings(settings.enrichment),
            limit=limit,
        ),
        StageName.SCORE: ScoreStage(context, limit=limit),
        StageName.OUTPUT: OutputStage(
            context, writers=writers or default_writers(settings), limit=limit
        ),
    }
    skip = [
        name
        for name, skipped in ((StageName.DISCOVER, skip_discover), (StageName.ENRICH, skip_enrich))
        if skipped
    ]
    log.info("Starting pipeline (skipping: %s)", ", ".join(skip) or "nothing")
    return Pipeline.build(stages, skip=skip).run()


def gather_stats(context: StageContext) -> PipelineStats:
    with context.unit_of_work() as uow:
        repos = uow.repositories
        return PipelineStats(
            leads=repos.leads.stats(),
            runs=repos.runs.stats(),
            recent_runs=tuple(repos.runs.recent(RECENT_RUNS_LIMIT)),
        )
