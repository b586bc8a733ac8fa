"""File-backed discovery source reading one business listing per JSON line."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from prospectminer.config.errors import ConfigurationError
from prospectminer.domain.model import RawBusinessData

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from prospectminer.domain.ports.fetching import DiscoverySource
    from prospectminer.domain.settings import SourceSettings

log = getLogger(__name__)


class BusinessRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = Field(
        default=None, validation_alias=AliasChoices("postal_code", "postalCode")
    )
    country: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    review_count: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("review_count", "reviewCount")
    )
    categories: list[str] = Field(default_factory=list[str])
    source_url: str | None = Field(
        default=None, validation_alias=AliasChoices("source_url", "sourceUrl")
    )
    additional_data: dict[str, Any] = Field(
        default_factory=dict[str, Any],
        validation_alias=AliasChoices("additional_data", "additionalData"),
    )

    def to_raw(self, default_categories: tuple[str, ...]) -> RawBusinessData:
        return RawBusinessData(
            name=self.name,
            address=self.address,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country=self.country,
            phone=self.phone,
            email=self.email,
            website=self.website,
            rating=self.rating,
            review_count=self.review_count,
            categories=tuple(self.categories) or default_categories,
            source_url=self.source_url,
            additional_data=dict(self.additional_data),
        )


def _read_lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


@dataclass(slots=True)
class JsonlSource:
    """Replays listings exported elsewhere; ``options.path`` names the file.

    Lines that are blank, malformed or fail validation are logged and skipped.
    """

    base_dir: Path | None = None

    async def discover(
        self,
        source: SourceSettings,
        *,
        limit: int | None = None,
    ) -> AsyncIterator[RawBusinessData]:
        raw_path = source.options.get("path")
        if not raw_path:
            raise ConfigurationError(
                f"Source {source.name!r} needs an options.path for jsonl input",
                origin=source.name,
            )
        path = Path(str(raw_path)).expanduser()
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path

        try:
            lines = await asyncio.to_thread(_read_lines, path)
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Discovery file not found: {path}", origin=source.name
            ) from exc

        emitted = 0
        for number, line in enumerate(lines, start=1):
            if limit is not None and emitted >= limit:
                return
            if not line.strip():
                continue
            try:
                record = BusinessRecord.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as exc:
                log.warning("Skipping %s:%s: %s", path, number, exc)
                continue
            yield record.to_raw(source.categories)
            emitted += 1


if TYPE_CHECKING:
    _source_check: DiscoverySource = JsonlSource()
