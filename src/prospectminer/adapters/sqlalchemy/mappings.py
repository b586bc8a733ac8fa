"""SQLAlchemy mapping metadata for the Prospect Miner domain model."""

from __future__ import annotations

import json
import logging
from abc import abstractmethod
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import configure_mappers

from prospectminer.domain.model import (
    AngleType,
    ContactResult,
    EnrichmentData,
    EnrichmentFailure,
    ExclusionReason,
    FailureType,
    Lead,
    LeadStatus,
    RawBusinessData,
    RawDiscovery,
    Run,
    RunStatus,
    SourceMetadata,
    StageName,
)

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _enum_type(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
    )


def _dump_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def _load_datetime(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _str_tuple(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in cast(list[Any], value))


def _optional_int(value: object) -> int | None:
    return int(value) if isinstance(value, int | float) else None


def _optional_float(value: object) -> float | None:
    return float(value) if isinstance(value, int | float) else None


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


class JSONEncodedType[T](TypeDecorator[T]):
    """Store a domain value as a JSON document in a text column."""

    impl = Text
    cache_ok = True

    @abstractmethod
    def encode(self, value: T) -> object: ...

    @abstractmethod
    def decode(self, payload: object) -> T: ...

    @abstractmethod
    def empty(self) -> T: ...

    def process_bind_param(self, value: T | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(self.encode(value), sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> T:
        _ = dialect
        if value is None:
            return self.empty()
        return self.decode(json.loads(value))


class StringListType(JSONEncodedType[list[str]]):
    cache_ok = True

    def encode(self, value: list[str]) -> object:
        return list(value)

    def decode(self, payload: object) -> list[str]:
        return list(_str_tuple(payload))

    def empty(self) -> list[str]:
        return []


class AngleListType(JSONEncodedType[list[AngleType]]):
    cache_ok = True

    def encode(self, value: list[AngleType]) -> object:
        return [angle.value for angle in value]

    def decode(self, payload: object) -> list[AngleType]:
        return [AngleType(item) for item in _str_tuple(payload)]

    def empty(self) -> list[AngleType]:
        return []


class JSONDictType(JSONEncodedType[dict[str, Any]]):
    cache_ok = True

    def encode(self, value: dict[str, Any]) -> object:
        return dict(value)

    def decode(self, payload: object) -> dict[str, Any]:
        return dict(cast(dict[str, Any], payload)) if isinstance(payload, dict) else {}

    def empty(self) -> dict[str, Any]:
        return {}


class SourceMetadataType(JSONEncodedType[SourceMetadata]):
    cache_ok = True

    def encode(self, value: SourceMetadata) -> object:
        return {
            "directories": list(value.directories),
            "geos": list(value.geos),
            "tags": list(value.tags),
            "rating": value.rating,
            "review_count": value.review_count,
            "original_source": value.original_source,
            "discovery_run_id": value.discovery_run_id,
        }

    def decode(self, payload: object) -> SourceMetadata:
        if not isinstance(payload, dict):
            return SourceMetadata()
        data = cast(dict[str, Any], payload)
        return SourceMetadata(
            directories=_str_tuple(data.get("directories")),
            geos=_str_tuple(data.get("geos")),
            tags=_str_tuple(data.get("tags")),
            rating=_optional_float(data.get("rating")),
            review_count=_optional_int(data.get("review_count")),
            original_source=_optional_str(data.get("original_source")),
            discovery_run_id=_optional_str(data.get("discovery_run_id")),
        )

    def empty(self) -> SourceMetadata:
        return SourceMetadata()


class EnrichmentDataType(TypeDecorator[EnrichmentData]):
    """Nullable JSON column: ``None`` means the lead was never enriched."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: EnrichmentData | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = {
            "emails": list(value.emails),
            "phones": list(value.phones),
            "social_links": dict(value.social_links),
            "has_online_booking": value.has_online_booking,
            "last_website_update": _dump_datetime(value.last_website_update),
            "page_title": value.page_title,
            "meta_description": value.meta_description,
            "technologies": list(value.technologies),
            "employee_count": value.employee_count,
            "linkedin_company_url": value.linkedin_company_url,
            "linkedin_employee_count": value.linkedin_employee_count,
            "founder_linkedin": value.founder_linkedin,
        }
        return json.dumps(payload, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> EnrichmentData | None:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return None
        data = cast(dict[str, Any], loaded)
        social = data.get("social_links")
        return EnrichmentData(
            emails=_str_tuple(data.get("emails")),
            phones=_str_tuple(data.get("phones")),
            social_links=(
                {str(k): str(v) for k, v in cast(dict[str, Any], social).items()}
                if isinstance(social, dict)
                else {}
            ),
            has_online_booking=bool(data.get("has_online_booking")),
            last_website_update=_load_datetime(data.get("last_website_update")),
            page_title=_optional_str(data.get("page_title")),
            meta_description=_optional_str(data.get("meta_description")),
            technologies=_str_tuple(data.get("technologies")),
            employee_count=_optional_int(data.get("employee_count")),
            linkedin_company_url=_optional_str(data.get("linkedin_company_url")),
            linkedin_employee_count=_optional_int(data.get("linkedin_employee_count")),
            founder_linkedin=_optional_str(data.get("founder_linkedin")),
        )


class EnrichmentFailureListType(JSONEncodedType[list[EnrichmentFailure]]):
    cache_ok = True

    def encode(self, value: list[EnrichmentFailure]) -> object:
        return [
            {
                "type": failure.type.value,
                "source": failure.source,
                "occurred_at": _dump_datetime(failure.occurred_at),
                "message": failure.message,
            }
            for failure in value
        ]

    def decode(self, payload: object) -> list[EnrichmentFailure]:
        if not isinstance(payload, list):
            return []
        failures: list[EnrichmentFailure] = []
        for item in cast(list[Any], payload):
            if not isinstance(item, dict):
                continue
            data = cast(dict[str, Any], item)
            occurred_at = _load_datetime(data.get("occurred_at"))
            if occurred_at is None:
                continue
            failures.append(
                EnrichmentFailure(
                    type=FailureType(data.get("type", FailureType.UNKNOWN.value)),
                    source=str(data.get("source", "")),
                    occurred_at=occurred_at,
                    message=_optional_str(data.get("message")),
                )
            )
        return failures

    def empty(self) -> list[EnrichmentFailure]:
        return []


class RawBusinessDataType(JSONEncodedType[RawBusinessData]):
    cache_ok = True

    def encode(self, value: RawBusinessData) -> object:
        return {
            "name": value.name,
            "address": value.address,
            "city": value.city,
            "state": value.state,
            "postal_code": value.postal_code,
            "country": value.country,
            "phone": value.phone,
            "email": value.email,
            "website": value.website,
            "rating": value.rating,
            "review_count": value.review_count,
            "categories": list(value.categories),
            "source_url": value.source_url,
            "additional_data": dict(value.additional_data),
        }

    def decode(self, payload: object) -> RawBusinessData:
        data = cast(dict[str, Any], payload) if isinstance(payload, dict) else {}
        additional = data.get("additional_data")
        return RawBusinessData(
            name=str(data.get("name", "")),
            address=_optional_str(data.get("address")),
            city=_optional_str(data.get("city")),
            state=_optional_str(data.get("state")),
            postal_code=_optional_str(data.get("postal_code")),
            country=_optional_str(data.get("country")),
            phone=_optional_str(data.get("phone")),
            email=_optional_str(data.get("email")),
            website=_optional_str(data.get("website")),
            rating=_optional_float(data.get("rating")),
            review_count=_optional_int(data.get("review_count")),
            categories=_str_tuple(data.get("categories")),
            source_url=_optional_str(data.get("source_url")),
            additional_data=(
                dict(cast(dict[str, Any], additional)) if isinstance(additional, dict) else {}
            ),
        )

    def empty(self) -> RawBusinessData:
        return RawBusinessData(name="")


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

lead_table = Table(
    "leads",
    mapper_registry.metadata,
    Column("lead_id", String(32), primary_key=True),
    Column("business_name", String, nullable=False),
    Column("canonical_name", String, nullable=False),
    Column("address", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("postal_code", String, nullable=True),
    Column("country", String(8), nullable=False, default="US"),
    Column("phone", String, nullable=True),
    Column("email", String, nullable=True),
    Column("website", String, nullable=True),
    Column("first_seen_at", UTCDateTime(), nullable=False),
    Column("last_seen_at", UTCDateTime(), nullable=False),
    Column("last_contact_attempt", UTCDateTime(), nullable=True),
    Column("last_contact_result", _enum_type(ContactResult), nullable=True),
    Column("excluded_reason", _enum_type(ExclusionReason), nullable=True),
    Column("cooldown_until", UTCDateTime(), nullable=True),
    Column("active_angles", AngleListType(), nullable=False),
    Column("exhausted_angles", AngleListType(), nullable=False),
    Column("source_metadata", SourceMetadataType(), nullable=False),
    Column("enrichment_data", EnrichmentDataType(), nullable=True),
    Column("enrichment_failures", EnrichmentFailureListType(), nullable=False),
    Column("score", Integer, nullable=True),
    Column("score_reasons", StringListType(), nullable=False),
    Column("status", _enum_type(LeadStatus), nullable=False),
    Column("last_output_at", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_leads_status", "status"),
    Index("ix_leads_canonical_name", "canonical_name"),
    Index("ix_leads_cooldown_until", "cooldown_until"),
    Index("ix_leads_last_seen_at", "last_seen_at"),
    Index("ix_leads_score", "score"),
    Index("ix_leads_status_first_seen", "status", "first_seen_at", "lead_id"),
)

run_table = Table(
    "runs",
    mapper_registry.metadata,
    Column("run_id", String(64), primary_key=True),
    Column("stage", _enum_type(StageName), nullable=False),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("completed_at", UTCDateTime(), nullable=True),
    Column("status", _enum_type(RunStatus), nullable=False),
    Column("leads_processed", Integer, nullable=False, default=0),
    Column("leads_passed", Integer, nullable=False, default=0),
    Column("leads_failed", Integer, nullable=False, default=0),
    Column("error_message", Text, nullable=True),
    Column("metadata", JSONDictType(), key="details", nullable=False),
    Index("ix_runs_stage", "stage"),
    Index("ix_runs_status", "status"),
    Index("ix_runs_started_at", "started_at"),
)

raw_discovery_table = Table(
    "raw_discoveries",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("run_id", String(64), nullable=False),
    Column("source", String, nullable=False),
    Column("payload", RawBusinessDataType(), nullable=False),
    Column("discovered_at", UTCDateTime(), nullable=False),
    Column("processed", Boolean, nullable=False, default=False),
    Column("processed_at", UTCDateTime(), nullable=True),
    Index("ix_raw_discoveries_processed_run_id", "processed", "run_id"),
    Index("ix_raw_discoveries_run_id", "run_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Lead, lead_table)
    mapper_registry.map_imperatively(Run, run_table)
    mapper_registry.map_imperatively(RawDiscovery, raw_discovery_table)

    configure_mappers()
    return mapper_registry
