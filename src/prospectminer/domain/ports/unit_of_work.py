"""Transaction boundary used by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from prospectminer.domain.ports.persistence import (
        LeadRepository,
        RawDiscoveryRepository,
        RunRepository,
    )


@dataclass(slots=True)
class PipelineRepositories:
    """Repositories sharing one session; valid only inside their unit of work."""

    leads: LeadRepository
    runs: RunRepository
    raw_discoveries: RawDiscoveryRepository


@runtime_checkable
class PipelineUnitOfWork(Protocol):
    """Context manager that commits explicitly and rolls back on error."""

    @property
    def repositories(self) -> PipelineRepositories: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
