"""Alembic migrations for the pipeline store.

The revision scripts ship inside the package, so the Alembic configuration is
built in code instead of being read from an ini file.
"""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from prospectminer.config.storage import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

log = getLogger(__name__)


def build_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema to the latest revision.

    With an ``engine`` the upgrade runs on one of its connections, which keeps
    in-memory SQLite databases usable afterwards.
    """

    if engine is None:
        command.upgrade(build_config(database_uri or get_database_config().uri), "head")
        return

    config = build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        log.debug("Upgrading schema at %r", engine.url)
        command.upgrade(config, "head")
