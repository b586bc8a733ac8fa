"""Shared helpers for turning leads into export rows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from prospectminer.domain.fields import resolve_field

if TYPE_CHECKING:
    from pathlib import Path

    from prospectminer.domain.fields import FieldValue
    from prospectminer.domain.model import Lead
    from prospectminer.domain.ports.output import ExportMetadata, FieldProjection

LIST_SEPARATOR: Final[str] = ";"

type JsonValue = str | int | float | bool | list[str] | dict[str, str] | None


def export_filename(metadata: ExportMetadata, extension: str) -> str:
    return f"leads_{metadata.exported_at:%Y-%m-%d}_{metadata.count}.{extension}"


def export_path(directory: Path, metadata: ExportMetadata, extension: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    return directory / export_filename(metadata, extension)


def to_json_value(value: FieldValue) -> JsonValue:
    match value:
        case None:
            return None
        case StrEnum():
            return str(value)
        case datetime():
            return value.isoformat()
        case bool() | int() | float() | str():
            return value
        case Mapping():
            return {str(key): str(item) for key, item in value.items()}
        case Sequence():
            return [str(item) for item in value]
    return str(value)


def to_cell(value: FieldValue) -> str:
    """Flatten a value into a single CSV cell; lists are joined with ``;``."""

    converted = to_json_value(value)
    match converted:
        case None:
            return ""
        case bool():
            return "true" if converted else "false"
        case dict():
            return LIST_SEPARATOR.join(f"{key}={item}" for key, item in converted.items())
        case list():
            return LIST_SEPARATOR.join(converted)
    return str(converted)


def project(lead: Lead, projection: FieldProjection) -> dict[str, FieldValue]:
    return {column: resolve_field(column)(lead) for column in projection.columns}
