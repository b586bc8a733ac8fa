from __future__ import annotations

from datetime import timedelta

import pytest

from prospectminer.domain.model import AngleType, EnrichmentData
from prospectminer.domain.scoring import clamp_score, score_lead
from prospectminer.domain.settings import ScoringSettings, ScoringWeights
from tests.helpers.leads import BASE_TIME, make_lead


def test_bare_listing_scores_only_opportunity_angles() -> None:
    lead = make_lead(
        "Quiet Corner Cafe",
        website=None,
        phone=None,
        email=None,
        review_count=2,
        rating=3.0,
    )

    result = score_lead(lead, ScoringSettings(), now=BASE_TIME)

    assert set(result.angles) == {
        AngleType.NO_WEBSITE,
        AngleType.LOW_REVIEWS,
        AngleType.POOR_RATINGS,
        AngleType.NO_ONLINE_BOOKING,
    }
    assert result.score == 75
    assert "-no_email" in result.reasons
    assert "-no_phone" in result.reasons
    assert "+has_website" not in result.reasons


def test_well_established_listing_earns_bonuses() -> None:
    lead = make_lead(review_count=200, rating=5.0, email="owner@proplumbing.example")
    lead.enrichment_data = EnrichmentData(has_online_booking=True)

    result = score_lead(lead, ScoringSettings(), now=BASE_TIME)

    # email 30 + phone 20 + website 10 + reviews capped at 15 + rating 15
    assert result.score == 90
    assert result.angles == ()
    assert result.reasons == (
        "+email_found",
        "+phone_found",
        "+has_website",
        "+review_count(200)",
        "+good_rating(5)",
    )


def test_enrichment_contacts_count_as_contact_presence() -> None:
    lead = make_lead(phone=None, email=None)
    lead.enrichment_data = EnrichmentData(emails=("a@b.example",), phones=("+15125550100",))

    result = score_lead(lead, ScoringSettings(), now=BASE_TIME)

    assert "+email_found" in result.reasons
    assert "+phone_found" in result.reasons


def test_outdated_website_requires_update_timestamp() -> None:
    lead = make_lead()
    settings = ScoringSettings()

    assert AngleType.OUTDATED_WEBSITE not in score_lead(lead, settings, now=BASE_TIME).angles

    lead.enrichment_data = EnrichmentData(last_website_update=BASE_TIME - timedelta(days=400))
    assert AngleType.OUTDATED_WEBSITE in score_lead(lead, settings, now=BASE_TIME).angles

    lead.enrichment_data = EnrichmentData(last_website_update=BASE_TIME - timedelta(days=30))
    assert AngleType.OUTDATED_WEBSITE not in score_lead(lead, settings, now=BASE_TIME).angles


@pytest.mark.parametrize(
    ("enrichment", "expected"),
    [
        (EnrichmentData(founder_linkedin="https://linkedin.com/in/founder"), True),
        (EnrichmentData(employee_count=10), True),
        (EnrichmentData(employee_count=11), False),
        (EnrichmentData(linkedin_employee_count=4), True),
        (EnrichmentData(employee_count=0), False),
        (EnrichmentData(employee_count=0, linkedin_employee_count=3), True),
        (EnrichmentData(employee_count=0, linkedin_employee_count=0), False),
        (EnrichmentData(), False),
    ],
)
def test_founder_led_signal(enrichment: EnrichmentData, expected: bool) -> None:
    lead = make_lead()
    lead.enrichment_data = enrichment

    result = score_lead(lead, ScoringSettings(), now=BASE_TIME)

    assert (AngleType.FOUNDER_LED in result.angles) is expected


def test_score_is_clamped_to_hundred() -> None:
    settings = ScoringSettings(weights=ScoringWeights(has_email=80, has_phone=80))
    lead = make_lead(email="a@b.example")

    result = score_lead(lead, settings, now=BASE_TIME)

    assert result.score == 100


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(-5, 0), (0, 0), (42.4, 42), (42.5, 43), (99.6, 100), (250, 100)],
)
def test_clamp_score(raw: float, expected: int) -> None:
    assert clamp_score(raw) == expected


def test_active_angles_drop_exhausted() -> None:
    lead = make_lead(website=None, review_count=2)

    result = score_lead(lead, ScoringSettings(), now=BASE_TIME)

    assert result.active_angles([AngleType.NO_WEBSITE]) == tuple(
        angle for angle in result.angles if angle is not AngleType.NO_WEBSITE
    )
