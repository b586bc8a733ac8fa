"""SQLAlchemy adapter package for Prospect Miner."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyLeadRepository,
    SqlAlchemyRawDiscoveryRepository,
    SqlAlchemyRunRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyLeadRepository",
    "SqlAlchemyRawDiscoveryRepository",
    "SqlAlchemyRunRepository",
    "SqlAlchemyUnitOfWork",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
