"""Ports for exporting leads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from prospectminer.domain.fields import normalize_path

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from pathlib import Path

    from prospectminer.domain.model import Lead


@dataclass(frozen=True, slots=True)
class ExportMetadata:
    exported_at: datetime
    run_id: str
    count: int
    min_score: float


@dataclass(frozen=True, slots=True)
class FieldProjection:
    """Which lead fields an export carries."""

    fields: tuple[str, ...]
    include_angles: bool = True
    include_reasons: bool = True

    @property
    def columns(self) -> tuple[str, ...]:
        columns = list(dict.fromkeys(normalize_path(path) for path in self.fields))
        for name, included in (
            ("active_angles", self.include_angles),
            ("score_reasons", self.include_reasons),
        ):
            if included and name not in columns:
                columns.append(name)
            elif not included and name in columns:
                columns.remove(name)
        return tuple(columns)


@runtime_checkable
class OutputWriter(Protocol):
    """Serialises exported leads into a durable artifact and returns its path."""

    def write(
        self,
        leads: Sequence[Lead],
        *,
        projection: FieldProjection,
        metadata: ExportMetadata,
    ) -> Path: ...
