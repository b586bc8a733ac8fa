"""Weighted lead scoring and outreach angle detection."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Final

from prospectminer.domain.model import AngleType

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from prospectminer.domain.model import Lead
    from prospectminer.domain.settings import ScoringSettings

MIN_SCORE: Final[int] = 0
MAX_SCORE: Final[int] = 100
MAX_RATING: Final[float] = 5.0


@dataclass(frozen=True, slots=True)
class ScoreResult:
    score: int
    reasons: tuple[str, ...] = ()
    angles: tuple[AngleType, ...] = ()

    def active_angles(self, exhausted: Iterable[AngleType]) -> tuple[AngleType, ...]:
        """Angles that may still be used, i.e. not yet exhausted on the lead."""

        spent = set(exhausted)
        return tuple(angle for angle in self.angles if angle not in spent)


@dataclass(slots=True)
class _Tally:
    settings: ScoringSettings
    total: float = 0.0
    reasons: list[str] = field(default_factory=list[str])
    angles: list[AngleType] = field(default_factory=list[AngleType])

    def add(self, weight: float, reason: str) -> None:
        self.total += weight
        self.reasons.append(reason)

    def note(self, reason: str) -> None:
        self.reasons.append(reason)

    def angle(self, angle: AngleType, reason: str) -> None:
        self.angles.append(angle)
        self.add(self.settings.angle_weight(angle), reason)


def _format_number(value: float) -> str:
    return f"{value:g}"


def clamp_score(raw: float) -> int:
    """Clamp to [0, 100] and round half up to an integer."""

    return int(min(MAX_SCORE, max(MIN_SCORE, math.floor(raw + 0.5))))


def is_outdated_website(lead: Lead, settings: ScoringSettings, *, now: datetime) -> bool:
    data = lead.enrichment_data
    if data is None or data.last_website_update is None:
        return False
    threshold = timedelta(days=settings.thresholds.outdated_website_days)
    return now - data.last_website_update > threshold


def is_founder_led(lead: Lead, settings: ScoringSettings) -> bool:
    data = lead.enrichment_data
    if data is None:
        return False
    if data.founder_linkedin:
        return True
    limit = settings.thresholds.founder_max_employees
    # a zero headcount means the source did not report one
    headcount = data.employee_count or data.linkedin_employee_count
    return headcount is not None and 0 < headcount <= limit


def score_lead(lead: Lead, settings: ScoringSettings, *, now: datetime) -> ScoreResult:
    """Accumulate signal weights and angles for ``lead``.

    Every signal contributes independently; missing signals only withhold their
    bonus and never subtract. The result still contains exhausted angles, use
    ``ScoreResult.active_angles`` before writing them back.
    """

    weights = settings.weights
    thresholds = settings.thresholds
    enrichment = lead.enrichment_data
    tally = _Tally(settings=settings)

    if lead.email or (enrichment is not None and enrichment.emails):
        tally.add(weights.has_email, "+email_found")
    else:
        tally.note("-no_email")

    if lead.phone or (enrichment is not None and enrichment.phones):
        tally.add(weights.has_phone, "+phone_found")
    else:
        tally.note("-no_phone")

    if not lead.website:
        tally.angle(AngleType.NO_WEBSITE, "+no_website_angle")
    else:
        tally.add(weights.has_website, "+has_website")
        if is_outdated_website(lead, settings, now=now):
            tally.angle(AngleType.OUTDATED_WEBSITE, "+outdated_website_angle")

    if enrichment is None or not enrichment.has_online_booking:
        tally.angle(AngleType.NO_ONLINE_BOOKING, "+no_booking_angle")

    review_count = lead.source_metadata.review_count
    if review_count is not None:
        if review_count < thresholds.low_review_count:
            tally.angle(AngleType.LOW_REVIEWS, "+low_reviews_angle")
        else:
            bonus = min(review_count / 10, weights.review_count)
            tally.add(bonus, f"+review_count({review_count})")

    rating = lead.source_metadata.rating
    if rating is not None:
        if rating < thresholds.poor_rating:
            tally.angle(AngleType.POOR_RATINGS, f"+poor_rating_angle({_format_number(rating)})")
        else:
            bonus = (rating / MAX_RATING) * weights.rating
            tally.add(bonus, f"+good_rating({_format_number(rating)})")

    if is_founder_led(lead, settings):
        tally.angle(AngleType.FOUNDER_LED, "+founder_led_angle")

    return ScoreResult(
        score=clamp_score(tally.total),
        reasons=tuple(tally.reasons),
        angles=tuple(tally.angles),
    )
