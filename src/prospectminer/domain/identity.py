"""Deterministic lead identity derived from business name and location.

The identity key is the only thing that ties repeated discoveries of the same
business together, so everything here must be a pure function of its input.
"""

from __future__ import annotations

import hashlib
import re
from typing import TYPE_CHECKING, Final

from prospectminer.domain.model import Lead, LeadStatus, SourceMetadata

if TYPE_CHECKING:
    from datetime import datetime

    from prospectminer.domain.model import RawBusinessData

DEFAULT_COUNTRY: Final[str] = "US"
IDENTITY_KEY_LENGTH: Final[int] = 16

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_LEGAL_SUFFIX_RE = re.compile(r"\b(llc|inc|corp|ltd|co|company|the)\b")
_NON_DIGIT_RE = re.compile(r"\D")


def canonicalize_name(name: str) -> str:
    """Return a comparable form of a business name.

    >>> canonicalize_name("The Pro Plumbing Co., LLC")
    'pro plumbing'
    """

    lowered = name.lower()
    without_punctuation = _PUNCTUATION_RE.sub("", lowered)
    collapsed = _WHITESPACE_RE.sub(" ", without_punctuation)
    without_suffixes = _LEGAL_SUFFIX_RE.sub("", collapsed)
    return _WHITESPACE_RE.sub(" ", without_suffixes).strip()


def identity_key(
    canonical_name: str,
    city: str | None,
    state: str | None,
    country: str | None = None,
) -> str:
    parts = (
        canonical_name,
        city or "",
        state or "",
        country or DEFAULT_COUNTRY,
    )
    joined = "|".join(part.strip().lower() for part in parts)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:IDENTITY_KEY_LENGTH]


def normalize_url(url: str) -> str:
    normalized = url.strip().lower()
    if not normalized:
        return ""
    if not normalized.startswith(("http://", "https://")):
        normalized = f"https://{normalized}"
    return normalized.rstrip("/")


def normalize_phone(phone: str) -> str:
    """Best-effort E.164 formatting for North American numbers."""

    digits = _NON_DIGIT_RE.sub("", phone)
    if len(digits) == 10:  # noqa: PLR2004
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):  # noqa: PLR2004
        return f"+{digits}"
    return phone.strip()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def lead_from_raw(
    raw: RawBusinessData,
    *,
    source: str,
    run_id: str | None,
    now: datetime,
) -> Lead:
    """Build a fresh ``new`` lead from a staged discovery record."""

    canonical = canonicalize_name(raw.name)
    country = raw.country or DEFAULT_COUNTRY
    geo = ", ".join(part for part in (raw.city, raw.state) if part)
    metadata = SourceMetadata(
        directories=(source,),
        geos=(geo,) if geo else (),
        tags=tuple(raw.categories),
        rating=raw.rating,
        review_count=raw.review_count,
        original_source=raw.source_url,
        discovery_run_id=run_id,
    )
    return Lead(
        lead_id=identity_key(canonical, raw.city, raw.state, country),
        business_name=raw.name.strip(),
        canonical_name=canonical,
        address=raw.address,
        city=raw.city,
        state=raw.state,
        postal_code=raw.postal_code,
        country=country,
        phone=normalize_phone(raw.phone) if raw.phone else None,
        email=normalize_email(raw.email) if raw.email else None,
        website=raw.website,
        first_seen_at=now,
        last_seen_at=now,
        created_at=now,
        updated_at=now,
        source_metadata=metadata,
        status=LeadStatus.NEW,
    )
