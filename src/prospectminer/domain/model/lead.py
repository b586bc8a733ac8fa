"""Lead aggregate and its value objects."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Final

from prospectminer.domain.model.enums import (
    AngleType,
    ContactResult,
    ExclusionReason,
    FailureType,
    LeadStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime


class InvalidStatusTransitionError(ValueError):
    """Raised when a lead is moved along an edge the state machine does not allow."""

    def __init__(self, current: LeadStatus, target: LeadStatus) -> None:
        super().__init__(f"Cannot move lead from {current} to {target}")
        self.current = current
        self.target = target


_FORWARD_EDGES: Final[dict[LeadStatus, frozenset[LeadStatus]]] = {
    LeadStatus.NEW: frozenset({LeadStatus.COLLECTED}),
    LeadStatus.COLLECTED: frozenset({LeadStatus.FILTERED}),
    LeadStatus.FILTERED: frozenset({LeadStatus.ENRICHED}),
    LeadStatus.ENRICHED: frozenset({LeadStatus.SCORED}),
    LeadStatus.SCORED: frozenset({LeadStatus.OUTPUT}),
    # signal-change refresh sends exported leads back for re-processing
    LeadStatus.OUTPUT: frozenset({LeadStatus.FILTERED}),
    LeadStatus.EXCLUDED: frozenset(),
    LeadStatus.COOLDOWN: frozenset(
        {LeadStatus.COLLECTED, LeadStatus.FILTERED, LeadStatus.ENRICHED}
    ),
}
_SIDE_STATES: Final[frozenset[LeadStatus]] = frozenset(
    {LeadStatus.EXCLUDED, LeadStatus.COOLDOWN}
)


def can_transition(current: LeadStatus, target: LeadStatus) -> bool:
    """Return whether ``current -> target`` is an edge of the lead state machine."""

    if current == target:
        return True
    if target in _SIDE_STATES and current != LeadStatus.EXCLUDED:
        return True
    return target in _FORWARD_EDGES[current]


def _unique[T](items: Iterable[T]) -> list[T]:
    seen: set[T] = set()
    result: list[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


@dataclass(frozen=True, slots=True)
class SourceMetadata:
    """Where and how a lead was discovered."""

    directories: tuple[str, ...] = ()
    geos: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    rating: float | None = None
    review_count: int | None = None
    original_source: str | None = None
    discovery_run_id: str | None = None

    def merge(self, newer: SourceMetadata) -> SourceMetadata:
        """Union the list fields and let non-null scalars from ``newer`` win."""

        return SourceMetadata(
            directories=tuple(_unique((*self.directories, *newer.directories))),
            geos=tuple(_unique((*self.geos, *newer.geos))),
            tags=tuple(_unique((*self.tags, *newer.tags))),
            rating=newer.rating if newer.rating is not None else self.rating,
            review_count=(
                newer.review_count if newer.review_count is not None else self.review_count
            ),
            original_source=newer.original_source or self.original_source,
            discovery_run_id=newer.discovery_run_id or self.discovery_run_id,
        )


@dataclass(frozen=True, slots=True)
class EnrichmentData:
    """Outreach-relevant attributes attached by the enrich stage."""

    emails: tuple[str, ...] = ()
    phones: tuple[str, ...] = ()
    social_links: Mapping[str, str] = field(default_factory=dict[str, str])
    has_online_booking: bool = False
    last_website_update: datetime | None = None
    page_title: str | None = None
    meta_description: str | None = None
    technologies: tuple[str, ...] = ()
    employee_count: int | None = None
    linkedin_company_url: str | None = None
    linkedin_employee_count: int | None = None
    founder_linkedin: str | None = None

    @property
    def is_empty(self) -> bool:
        return self == EnrichmentData()

    def merge(self, newer: EnrichmentData) -> EnrichmentData:
        """Combine with a fresher payload; lists are unioned, booking is sticky."""

        return replace(
            self,
            emails=tuple(_unique((*self.emails, *newer.emails))),
            phones=tuple(_unique((*self.phones, *newer.phones))),
            social_links={**self.social_links, **newer.social_links},
            has_online_booking=self.has_online_booking or newer.has_online_booking,
            last_website_update=newer.last_website_update or self.last_website_update,
            page_title=newer.page_title or self.page_title,
            meta_description=newer.meta_description or self.meta_description,
            technologies=tuple(_unique((*self.technologies, *newer.technologies))),
            employee_count=(
                newer.employee_count
                if newer.employee_count is not None
                else self.employee_count
            ),
            linkedin_company_url=newer.linkedin_company_url or self.linkedin_company_url,
            linkedin_employee_count=(
                newer.linkedin_employee_count
                if newer.linkedin_employee_count is not None
                else self.linkedin_employee_count
            ),
            founder_linkedin=newer.founder_linkedin or self.founder_linkedin,
        )


@dataclass(frozen=True, slots=True)
class EnrichmentFailure:
    type: FailureType
    source: str
    occurred_at: datetime
    message: str | None = None


@dataclass(eq=False, kw_only=True)
class Lead:
    """A deduplicated business prospect tracked across pipeline runs.

    Every mutator takes the current time explicitly and only ever moves
    ``updated_at`` and ``last_seen_at`` forward. List-valued attributes are
    replaced rather than mutated in place so the persistence layer notices the
    change.
    """

    lead_id: str
    business_name: str
    canonical_name: str

    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str = "US"
    phone: str | None = None
    email: str | None = None
    website: str | None = None

    first_seen_at: datetime
    last_seen_at: datetime
    created_at: datetime
    updated_at: datetime

    last_contact_attempt: datetime | None = None
    last_contact_result: ContactResult | None = None
    excluded_reason: ExclusionReason | None = None
    cooldown_until: datetime | None = None

    active_angles: list[AngleType] = field(default_factory=list[AngleType])
    exhausted_angles: list[AngleType] = field(default_factory=list[AngleType])

    source_metadata: SourceMetadata = field(default_factory=SourceMetadata)
    enrichment_data: EnrichmentData | None = None
    enrichment_failures: list[EnrichmentFailure] = field(
        default_factory=list[EnrichmentFailure]
    )

    score: int | None = None
    score_reasons: list[str] = field(default_factory=list[str])

    status: LeadStatus = LeadStatus.NEW
    last_output_at: datetime | None = None

    # Derived state -----------------------------------------------------------

    def cooldown_active(self, now: datetime) -> bool:
        return self.cooldown_until is not None and self.cooldown_until > now

    @property
    def has_retained_progress(self) -> bool:
        """Whether re-entry may skip collection and filtering."""

        has_enrichment = self.enrichment_data is not None and not self.enrichment_data.is_empty
        return has_enrichment or self.score is not None

    # Mutators ----------------------------------------------------------------

    def touch(self, now: datetime) -> None:
        self.updated_at = max(self.updated_at, now)

    def mark_seen(self, now: datetime) -> None:
        self.last_seen_at = max(self.last_seen_at, now)
        self.touch(now)

    def merge_discovery(self, incoming: Lead, now: datetime) -> None:
        """Fold a freshly discovered copy of this lead into the stored one."""

        for attr in ("business_name", "address", "postal_code", "phone", "email", "website"):
            value = getattr(incoming, attr)
            if value:
                setattr(self, attr, value)
        self.source_metadata = self.source_metadata.merge(incoming.source_metadata)
        self.mark_seen(now)

    def transition_to(self, status: LeadStatus, now: datetime, *, force: bool = False) -> None:
        if not force and not can_transition(self.status, status):
            raise InvalidStatusTransitionError(self.status, status)
        self.status = status
        self.touch(now)

    def exclude(self, reason: ExclusionReason, now: datetime) -> None:
        self.excluded_reason = reason
        self.transition_to(LeadStatus.EXCLUDED, now)

    def start_cooldown(self, until: datetime, now: datetime) -> None:
        self.cooldown_until = until
        self.transition_to(LeadStatus.COOLDOWN, now)

    def clear_cooldown(self, now: datetime) -> None:
        self.cooldown_until = None
        self.touch(now)

    def record_contact(self, result: ContactResult, now: datetime) -> None:
        self.last_contact_attempt = now
        self.last_contact_result = result
        self.touch(now)

    def set_active_angles(self, angles: Iterable[AngleType], now: datetime) -> None:
        exhausted = set(self.exhausted_angles)
        self.active_angles = [angle for angle in _unique(angles) if angle not in exhausted]
        self.touch(now)

    def exhaust_angle(self, angle: AngleType, now: datetime) -> None:
        self.active_angles = [active for active in self.active_angles if active != angle]
        self.exhausted_angles = _unique((*self.exhausted_angles, angle))
        self.touch(now)

    def reset_exhausted_angles(self, now: datetime) -> None:
        self.exhausted_angles = []
        self.touch(now)

    def apply_enrichment(self, data: EnrichmentData, now: datetime) -> None:
        current = self.enrichment_data or EnrichmentData()
        self.enrichment_data = current.merge(data)
        self.touch(now)

    def add_enrichment_failure(self, failure: EnrichmentFailure, now: datetime) -> None:
        self.enrichment_failures = [*self.enrichment_failures, failure]
        self.touch(now)

    def fill_contact_details(
        self,
        *,
        email: str | None,
        phone: str | None,
        now: datetime,
    ) -> None:
        """Populate email/phone only where the lead has none yet."""

        if email and not self.email:
            self.email = email
        if phone and not self.phone:
            self.phone = phone
        self.touch(now)

    def apply_score(self, score: int, reasons: Iterable[str], now: datetime) -> None:
        self.score = score
        self.score_reasons = list(reasons)
        self.touch(now)

    def mark_output(self, now: datetime) -> None:
        self.last_output_at = now
        self.transition_to(LeadStatus.OUTPUT, now)
