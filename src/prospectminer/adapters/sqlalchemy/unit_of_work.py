"""SQLAlchemy unit of work for the pipeline store.

The engine is process-wide: :func:`startup` creates it once, brings the schema
to the latest migration and every :class:`SqlAlchemyUnitOfWork` then opens its
own short-lived session from it.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from prospectminer.adapters.sqlalchemy.mappings import start_mappers
from prospectminer.adapters.sqlalchemy.migrations import upgrade_head
from prospectminer.adapters.sqlalchemy.repositories import (
    SqlAlchemyLeadRepository,
    SqlAlchemyRawDiscoveryRepository,
    SqlAlchemyRunRepository,
)
from prospectminer.config.storage import DatabaseConfig, get_database_config
from prospectminer.domain.ports.unit_of_work import PipelineRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

SQLITE_BUSY_TIMEOUT_MS = 5000


class StartupError(RuntimeError):
    """Raised when the store is used before :func:`startup` or configured twice."""


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def create_store_engine(database_uri: str) -> Engine:
    """Create an engine suited to the pipeline's short, sequential sessions."""

    if database_uri.startswith("sqlite") and DatabaseConfig(uri=database_uri).is_memory:
        # every session must see the same in-memory database
        return create_engine(
            database_uri,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    engine = create_engine(database_uri, future=True)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_busy_timeout(dbapi_connection: object, _record: object) -> None:
            cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
            cursor.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
            cursor.close()

    return engine


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Create the engine, map the domain classes and migrate the schema."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None and not force:
        raise StartupError("Store already initialised. Pass force=True to reconfigure.")

    resolved = engine or create_store_engine(database_uri or get_database_config().uri)
    start_mappers()
    upgrade_head(engine=resolved)
    log.debug("Store ready at %r", resolved.url)

    _engine = resolved
    _session_factory = sessionmaker(bind=resolved, expire_on_commit=False)


def configured_engine() -> Engine | None:
    return _engine


def is_started() -> bool:
    return _engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it (used between tests)."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


class SqlAlchemyUnitOfWork:
    """One session, one transaction: commit explicitly, roll back on error."""

    def __init__(self) -> None:
        if _session_factory is None:
            raise StartupError(
                "Store not initialised. Call prospectminer.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        self.session_factory = _session_factory
        self._session: Session | None = None
        self._repositories: PipelineRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already open")
        self._session = self.session_factory()
        self._repositories = PipelineRepositories(
            leads=SqlAlchemyLeadRepository(self._session),
            runs=SqlAlchemyRunRepository(self._session),
            raw_discoveries=SqlAlchemyRawDiscoveryRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not open")
        return self._session

    @property
    def repositories(self) -> PipelineRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from prospectminer.domain.ports.unit_of_work import PipelineUnitOfWork

    _uow_check: PipelineUnitOfWork = SqlAlchemyUnitOfWork()
