from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from prospectminer.config import MissingConfigurationError
from prospectminer.domain.model import LeadStatus, RunStatus, StageName
from prospectminer.domain.pipeline import StageContext
from prospectminer.domain.pipeline.stages import CollectStage, DiscoverStage
from prospectminer.domain.settings import (
    GeoTarget,
    PipelineSettings,
    ProspectMinerConfig,
    SourceSettings,
)
from tests.helpers.leads import make_raw

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from prospectminer.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from prospectminer.domain.model import RawBusinessData
    from tests.helpers.leads import FakeClock


@dataclass(slots=True)
class FakeSource:
    records: list[RawBusinessData]
    calls: list[str] = field(default_factory=list)

    async def discover(
        self, source: SourceSettings, *, limit: int | None = None
    ) -> AsyncIterator[RawBusinessData]:
        self.calls.append(source.name)
        for index, record in enumerate(self.records):
            if limit is not None and index >= limit:
                return
            yield record


@dataclass(slots=True)
class BrokenSource:
    async def discover(
        self, source: SourceSettings, *, limit: int | None = None
    ) -> AsyncIterator[RawBusinessData]:
        del limit
        yield make_raw("Half Done")
        raise RuntimeError(f"{source.name} went away")


def _context(
    unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
    *sources: SourceSettings,
    batch_size: int = 100,
) -> StageContext:
    settings = ProspectMinerConfig(
        sources=sources, pipeline=PipelineSettings(batch_size=batch_size)
    )
    return StageContext(settings=settings, unit_of_work=unit_of_work, clock=clock)


def _source(name: str = "fixtures", source_type: str = "fake") -> SourceSettings:
    return SourceSettings(
        name=name,
        type=source_type,
        categories=("plumber",),
        geos=(GeoTarget(city="Austin", state="TX"),),
    )


def test_discover_stages_records_from_enabled_sources(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    fake = FakeSource([make_raw("Pro Plumbing LLC"), make_raw("Drain Masters")])
    disabled = SourceSettings(name="off", type="fake", enabled=False)
    context = _context(sqlite_unit_of_work, clock, _source(), disabled, batch_size=1)

    result = DiscoverStage(context, sources={"fake": lambda: fake}).run()

    assert result.success
    assert (result.processed, result.passed, result.failed) == (2, 2, 0)
    assert fake.calls == ["fixtures"]
    with sqlite_unit_of_work() as uow:
        staged = uow.repositories.raw_discoveries.by_run(result.run_id)
        run = uow.repositories.runs.get(result.run_id)
    assert [record.payload.name for record in staged] == ["Pro Plumbing LLC", "Drain Masters"]
    assert {record.source for record in staged} == {"fixtures"}
    assert run is not None
    assert run.status is RunStatus.COMPLETED
    assert run.leads_passed == 2


def test_discover_honours_limit(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    fake = FakeSource([make_raw(f"Shop {index}") for index in range(5)])
    context = _context(sqlite_unit_of_work, clock, _source())

    result = DiscoverStage(context, sources={"fake": lambda: fake}, limit=3).run()

    assert result.passed == 3
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.raw_discoveries.count_unprocessed() == 3


def test_discover_counts_unknown_and_failing_sources_as_failed(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    context = _context(
        sqlite_unit_of_work,
        clock,
        _source("mystery", "carrier_pigeon"),
        _source("flaky", "broken"),
    )

    result = DiscoverStage(context, sources={"broken": BrokenSource}).run()

    assert result.success
    assert result.failed == 2
    assert result.processed >= result.passed + result.failed
    assert any("carrier_pigeon" in error for error in result.errors)
    assert any("flaky went away" in error for error in result.errors)


def test_discover_only_runs_named_source(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    fake = FakeSource([make_raw()])
    context = _context(sqlite_unit_of_work, clock, _source("a"), _source("b"))

    DiscoverStage(context, sources={"fake": lambda: fake}, source_name="b").run()

    assert fake.calls == ["b"]


def test_discover_builds_sources_before_recording_a_run(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    built: list[str] = []

    def needs_key() -> FakeSource:
        built.append("keyed")
        raise MissingConfigurationError("API_KEY")

    def cheap() -> FakeSource:
        built.append("cheap")
        return FakeSource([make_raw()])

    off = SourceSettings(name="off", type="cheap", enabled=False)
    context = _context(sqlite_unit_of_work, clock, off, _source("a", "keyed"))
    stage = DiscoverStage(context, sources={"keyed": needs_key, "cheap": cheap})

    with pytest.raises(MissingConfigurationError, match="API_KEY"):
        stage.run()

    assert built == ["keyed"]
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.runs.recent() == []


def _stage_raw(
    unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
    *records: RawBusinessData,
) -> str:
    with unit_of_work() as uow:
        run = uow.repositories.runs.start(StageName.DISCOVER, now=clock())
        uow.repositories.raw_discoveries.add_bulk(run.run_id, "fixtures", records, now=clock())
        uow.commit()
        return run.run_id


def test_collect_collapses_name_variants_across_runs(
    stage_context: StageContext,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    _stage_raw(sqlite_unit_of_work, clock, make_raw("Pro Plumbing LLC"))
    first = CollectStage(stage_context).run()
    clock.advance(days=1)
    _stage_raw(sqlite_unit_of_work, clock, make_raw("pro plumbing", email="hi@pro.example"))
    second = CollectStage(stage_context).run()

    assert first.passed == second.passed == 1
    with sqlite_unit_of_work() as uow:
        leads = uow.repositories.leads
        assert leads.count() == 1
        (lead,) = leads.for_stage(StageName.FILTER, now=clock())
        assert uow.repositories.raw_discoveries.count_unprocessed() == 0
    assert lead.status is LeadStatus.COLLECTED
    assert lead.email == "hi@pro.example"
    assert lead.first_seen_at < lead.last_seen_at


def test_collect_counts_duplicates_within_a_run(
    stage_context: StageContext,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    run_id = _stage_raw(
        sqlite_unit_of_work,
        clock,
        make_raw("Pro Plumbing LLC"),
        make_raw("The Pro Plumbing Co."),
        make_raw("Drain Masters"),
    )

    result = CollectStage(stage_context, discover_run_id=run_id).run()

    assert (result.processed, result.passed, result.failed) == (3, 2, 0)
    assert result.details["duplicates"] == 1


def test_collect_does_not_regress_progressed_leads(
    stage_context: StageContext,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> None:
    _stage_raw(sqlite_unit_of_work, clock, make_raw())
    CollectStage(stage_context).run()
    with sqlite_unit_of_work() as uow:
        (lead,) = uow.repositories.leads.for_stage(StageName.FILTER, now=clock())
        uow.repositories.leads.update_status(lead.lead_id, LeadStatus.FILTERED, now=clock())
        uow.commit()

    _stage_raw(sqlite_unit_of_work, clock, make_raw())
    CollectStage(stage_context).run()

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.leads.get(lead.lead_id)
    assert stored is not None
    assert stored.status is LeadStatus.FILTERED
