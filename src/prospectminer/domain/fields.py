"""Typed accessors for addressing lead attributes by dotted path.

Filter rules and output projections name lead attributes with dotted paths such
as ``source_metadata.rating`` or ``enrichmentData.hasOnlineBooking``. Paths are
resolved against a fixed registry instead of reflective attribute lookup, so an
unknown path fails loudly when configuration is validated.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Final

from prospectminer.domain.model import EnrichmentData, Lead

if TYPE_CHECKING:
    from enum import StrEnum

type FieldValue = (
    str | int | float | bool | datetime | StrEnum | Sequence[str] | Mapping[str, str] | None
)
type FieldGetter = Callable[[Lead], FieldValue]

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_MAPPING_FIELDS: Final[frozenset[str]] = frozenset({"enrichment_data.social_links"})


class UnknownFieldError(KeyError):
    """Raised when a dotted path does not name a known lead attribute."""

    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"Unknown lead field: {self.path}"


def _enrichment(getter: Callable[[EnrichmentData], FieldValue]) -> FieldGetter:
    def read(lead: Lead) -> FieldValue:
        if lead.enrichment_data is None:
            return None
        return getter(lead.enrichment_data)

    return read


LEAD_FIELDS: Final[Mapping[str, FieldGetter]] = {
    "lead_id": lambda lead: lead.lead_id,
    "business_name": lambda lead: lead.business_name,
    "canonical_name": lambda lead: lead.canonical_name,
    "address": lambda lead: lead.address,
    "city": lambda lead: lead.city,
    "state": lambda lead: lead.state,
    "postal_code": lambda lead: lead.postal_code,
    "country": lambda lead: lead.country,
    "phone": lambda lead: lead.phone,
    "email": lambda lead: lead.email,
    "website": lambda lead: lead.website,
    "first_seen_at": lambda lead: lead.first_seen_at,
    "last_seen_at": lambda lead: lead.last_seen_at,
    "last_contact_attempt": lambda lead: lead.last_contact_attempt,
    "last_contact_result": lambda lead: lead.last_contact_result,
    "excluded_reason": lambda lead: lead.excluded_reason,
    "cooldown_until": lambda lead: lead.cooldown_until,
    "active_angles": lambda lead: [str(angle) for angle in lead.active_angles],
    "exhausted_angles": lambda lead: [str(angle) for angle in lead.exhausted_angles],
    "score": lambda lead: lead.score,
    "score_reasons": lambda lead: list(lead.score_reasons),
    "status": lambda lead: lead.status,
    "last_output_at": lambda lead: lead.last_output_at,
    "created_at": lambda lead: lead.created_at,
    "updated_at": lambda lead: lead.updated_at,
    "source_metadata.directories": lambda lead: list(lead.source_metadata.directories),
    "source_metadata.geos": lambda lead: list(lead.source_metadata.geos),
    "source_metadata.tags": lambda lead: list(lead.source_metadata.tags),
    "source_metadata.rating": lambda lead: lead.source_metadata.rating,
    "source_metadata.review_count": lambda lead: lead.source_metadata.review_count,
    "source_metadata.original_source": lambda lead: lead.source_metadata.original_source,
    "source_metadata.discovery_run_id": lambda lead: lead.source_metadata.discovery_run_id,
    "enrichment_data.emails": _enrichment(lambda data: list(data.emails)),
    "enrichment_data.phones": _enrichment(lambda data: list(data.phones)),
    "enrichment_data.social_links": _enrichment(lambda data: dict(data.social_links)),
    "enrichment_data.has_online_booking": _enrichment(lambda data: data.has_online_booking),
    "enrichment_data.last_website_update": _enrichment(lambda data: data.last_website_update),
    "enrichment_data.page_title": _enrichment(lambda data: data.page_title),
    "enrichment_data.meta_description": _enrichment(lambda data: data.meta_description),
    "enrichment_data.technologies": _enrichment(lambda data: list(data.technologies)),
    "enrichment_data.employee_count": _enrichment(lambda data: data.employee_count),
    "enrichment_data.linkedin_company_url": _enrichment(
        lambda data: data.linkedin_company_url
    ),
    "enrichment_data.linkedin_employee_count": _enrichment(
        lambda data: data.linkedin_employee_count
    ),
    "enrichment_data.founder_linkedin": _enrichment(lambda data: data.founder_linkedin),
}


def normalize_path(path: str) -> str:
    """Convert ``sourceMetadata.reviewCount`` style paths to snake_case."""

    segments = (segment.strip() for segment in path.split("."))
    return ".".join(_CAMEL_BOUNDARY_RE.sub(r"_\1", segment).lower() for segment in segments)


def resolve_field(path: str) -> FieldGetter:
    """Return the accessor for ``path``.

    Paths that descend into a mapping-valued attribute (``enrichment_data.
    social_links.facebook``) resolve to a getter that indexes into the mapping.
    """

    normalized = normalize_path(path)
    getter = LEAD_FIELDS.get(normalized)
    if getter is not None:
        return getter

    prefix, _, key = normalized.rpartition(".")
    parent = LEAD_FIELDS.get(prefix)
    if parent is None or prefix not in _MAPPING_FIELDS or not key:
        raise UnknownFieldError(path)

    def read_key(lead: Lead) -> FieldValue:
        container = parent(lead)
        if isinstance(container, Mapping):
            return container.get(key)
        return None

    return read_key


def field_value(lead: Lead, path: str) -> FieldValue:
    return resolve_field(path)(lead)
