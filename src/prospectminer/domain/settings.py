"""Immutable pipeline settings passed explicitly into every stage.

The values here are the built-in defaults; ``prospectminer.config.loader``
overlays a YAML/JSON document on top of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Final

from prospectminer.domain.model import (
    AngleType,
    ContactResult,
    ExclusionReason,
    FailureType,
    FilterOperator,
)

DEFAULT_CONTACT_RESULT_COOLDOWN_DAYS: Final[dict[ContactResult, int]] = {
    ContactResult.BOUNCED_HARD: 365,
    ContactResult.BOUNCED_SOFT: 14,
    ContactResult.NO_REPLY: 30,
    ContactResult.SENT: 7,
    ContactResult.OPENED: 14,
    ContactResult.REPLIED: 90,
}

DEFAULT_FAILURE_COOLDOWN_DAYS: Final[dict[FailureType, int]] = {
    FailureType.CAPTCHA_BLOCK: 7,
    FailureType.NO_CONTACT_PAGE: 30,
    FailureType.SITE_TIMEOUT: 3,
    FailureType.BOUNCE_HARD: 365,
    FailureType.BOUNCE_SOFT: 14,
    FailureType.RATE_LIMITED: 1,
    FailureType.DNS_ERROR: 30,
    FailureType.SSL_ERROR: 30,
    FailureType.PAGE_NOT_FOUND: 60,
    FailureType.PARSE_ERROR: 7,
    FailureType.UNKNOWN: 7,
}

DEFAULT_ANGLE_WEIGHTS: Final[dict[AngleType, float]] = {
    AngleType.NO_WEBSITE: 25,
    AngleType.OUTDATED_WEBSITE: 20,
    AngleType.LOW_REVIEWS: 15,
    AngleType.POOR_RATINGS: 15,
    AngleType.NO_ONLINE_BOOKING: 20,
    AngleType.FOUNDER_LED: 25,
}

DEFAULT_EMAIL_PATTERNS: Final[tuple[str, ...]] = (
    r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
)
DEFAULT_PHONE_PATTERNS: Final[tuple[str, ...]] = (
    r"\+1[-.\s]?\d{3}[-.\s]?\d{3}[-.\s]?\d{4}",
    r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}",
)
DEFAULT_CONTACT_PAGE_PATTERNS: Final[tuple[str, ...]] = (
    "/contact",
    "/contact-us",
    "/about",
    "/about-us",
    "/get-in-touch",
    "/reach-us",
)
DEFAULT_BOOKING_SIGNALS: Final[tuple[str, ...]] = (
    "book now",
    "book online",
    "schedule appointment",
    "schedule now",
    "book appointment",
    "online booking",
    "calendly",
    "acuity",
    "squareup.com/appointments",
    "booksy",
    "schedulicity",
)

DEFAULT_USER_AGENT: Final[str] = "Mozilla/5.0 (compatible; ProspectMiner/0.1)"

DEFAULT_OUTPUT_FIELDS: Final[tuple[str, ...]] = (
    "lead_id",
    "business_name",
    "email",
    "phone",
    "website",
    "city",
    "state",
    "score",
    "active_angles",
    "score_reasons",
)


class OutputFormat(StrEnum):
    CSV = "csv"
    JSON = "json"
    BOTH = "both"


@dataclass(frozen=True, slots=True)
class GeoTarget:
    city: str
    state: str
    country: str = "US"

    @property
    def label(self) -> str:
        return f"{self.city}, {self.state}"


@dataclass(frozen=True, slots=True)
class SourceSettings:
    name: str
    type: str
    enabled: bool = True
    categories: tuple[str, ...] = ()
    geos: tuple[GeoTarget, ...] = ()
    rate_limit: int | None = None  # requests per minute
    options: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True)
class FilterRule:
    field: str
    operator: FilterOperator
    value: Any = None
    reason: ExclusionReason = ExclusionReason.BAD_FIT


@dataclass(frozen=True, slots=True)
class FilterSettings:
    exclude_categories: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = ()
    rules: tuple[FilterRule, ...] = ()


@dataclass(frozen=True, slots=True)
class CooldownSettings:
    default_days: int = 30
    by_contact_result: dict[ContactResult, int] = field(
        default_factory=lambda: dict(DEFAULT_CONTACT_RESULT_COOLDOWN_DAYS)
    )
    by_failure_type: dict[FailureType, int] = field(
        default_factory=lambda: dict(DEFAULT_FAILURE_COOLDOWN_DAYS)
    )


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    has_email: float = 30
    has_phone: float = 20
    has_website: float = 10
    review_count: float = 15
    rating: float = 15
    recent_activity: float = 10


@dataclass(frozen=True, slots=True)
class ScoringThresholds:
    min_score: float = 20
    low_review_count: int = 10
    poor_rating: float = 3.5
    outdated_website_days: int = 365
    founder_max_employees: int = 10


@dataclass(frozen=True, slots=True)
class ScoringSettings:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    thresholds: ScoringThresholds = field(default_factory=ScoringThresholds)
    angle_weights: dict[AngleType, float] = field(
        default_factory=lambda: dict(DEFAULT_ANGLE_WEIGHTS)
    )

    def angle_weight(self, angle: AngleType) -> float:
        return self.angle_weights.get(angle, 0)


@dataclass(frozen=True, slots=True)
class EnrichmentSettings:
    timeout_seconds: float = 30.0
    retries: int = 2
    requests_per_minute: int = 60
    concurrency: int = 5
    max_contact_pages: int = 2
    user_agent: str = DEFAULT_USER_AGENT
    email_patterns: tuple[str, ...] = DEFAULT_EMAIL_PATTERNS
    phone_patterns: tuple[str, ...] = DEFAULT_PHONE_PATTERNS
    contact_page_patterns: tuple[str, ...] = DEFAULT_CONTACT_PAGE_PATTERNS
    booking_signals: tuple[str, ...] = DEFAULT_BOOKING_SIGNALS


@dataclass(frozen=True, slots=True)
class OutputSettings:
    format: OutputFormat = OutputFormat.CSV
    directory: Path = Path("output")
    fields: tuple[str, ...] = DEFAULT_OUTPUT_FIELDS
    include_angles: bool = True
    include_reasons: bool = True
    min_score: float | None = None


@dataclass(frozen=True, slots=True)
class RefreshSettings:
    enabled: bool = True
    check_interval_hours: float = 24
    check_expired_cooldowns: bool = True
    check_signal_changes: bool = True
    reset_exhausted_angles: bool = False
    batch_limit: int = 500
    raw_retention_days: int = 7


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    batch_size: int = 100
    max_leads_per_run: int = 500
    parallelism: int = 5


@dataclass(frozen=True, slots=True)
class ProspectMinerConfig:
    sources: tuple[SourceSettings, ...] = ()
    filters: FilterSettings = field(default_factory=FilterSettings)
    cooldowns: CooldownSettings = field(default_factory=CooldownSettings)
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    enrichment: EnrichmentSettings = field(default_factory=EnrichmentSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    refresh: RefreshSettings = field(default_factory=RefreshSettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
