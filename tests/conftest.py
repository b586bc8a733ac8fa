from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from prospectminer.adapters.sqlalchemy import start_mappers
from prospectminer.adapters.sqlalchemy.migrations import upgrade_head
from prospectminer.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    create_store_engine,
    shutdown,
    startup,
)
from prospectminer.domain.pipeline import StageContext
from prospectminer.domain.settings import ProspectMinerConfig
from tests.helpers.leads import FakeClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ProspectMinerConfig:
    return ProspectMinerConfig()


@pytest.fixture
def stage_context(
    settings: ProspectMinerConfig,
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    clock: FakeClock,
) -> StageContext:
    return StageContext(settings=settings, unit_of_work=sqlite_unit_of_work, clock=clock)
