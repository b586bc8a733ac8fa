"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class LeadStatus(StrEnum):
    """Pipeline status of a lead, in forward order, followed by the side states."""

    NEW = "new"
    COLLECTED = "collected"
    FILTERED = "filtered"
    ENRICHED = "enriched"
    SCORED = "scored"
    OUTPUT = "output"
    EXCLUDED = "excluded"
    COOLDOWN = "cooldown"


class StageName(StrEnum):
    DISCOVER = "discover"
    COLLECT = "collect"
    FILTER = "filter"
    ENRICH = "enrich"
    SCORE = "score"
    OUTPUT = "output"
    REFRESH = "refresh"


class RunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AngleType(StrEnum):
    """Outreach opportunity signals attached to a scored lead."""

    NO_WEBSITE = "no_website"
    OUTDATED_WEBSITE = "outdated_website"
    LOW_REVIEWS = "low_reviews"
    POOR_RATINGS = "poor_ratings"
    NO_ONLINE_BOOKING = "no_online_booking"
    FOUNDER_LED = "founder_led"


class ContactResult(StrEnum):
    SENT = "sent"
    OPENED = "opened"
    BOUNCED_HARD = "bounced_hard"
    BOUNCED_SOFT = "bounced_soft"
    NO_REPLY = "no_reply"
    REPLIED = "replied"


class ExclusionReason(StrEnum):
    BAD_FIT = "bad_fit"
    DUPLICATE_BRAND = "duplicate_brand"
    COMPETITOR = "competitor"
    MANUALLY_EXCLUDED = "manually_excluded"
    INVALID_CONTACT = "invalid_contact"
    OUT_OF_GEO = "out_of_geo"
    WRONG_INDUSTRY = "wrong_industry"


class FailureType(StrEnum):
    """Taxonomy of enrichment fetch failures."""

    CAPTCHA_BLOCK = "captcha_block"
    NO_CONTACT_PAGE = "no_contact_page"
    SITE_TIMEOUT = "site_timeout"
    BOUNCE_HARD = "bounce_hard"
    BOUNCE_SOFT = "bounce_soft"
    RATE_LIMITED = "rate_limited"
    DNS_ERROR = "dns_error"
    SSL_ERROR = "ssl_error"
    PAGE_NOT_FOUND = "page_not_found"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


class FilterOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"
    REGEX = "regex"
