from __future__ import annotations

from datetime import timedelta

from prospectminer.domain.cooldown import (
    contact_result_cooldown,
    default_cooldown,
    failure_cooldown,
    no_signal_change,
    reentry_status,
    signal_check_cutoff,
)
from prospectminer.domain.model import ContactResult, EnrichmentData, FailureType, LeadStatus
from prospectminer.domain.settings import CooldownSettings, RefreshSettings
from tests.helpers.leads import BASE_TIME, make_lead


def test_default_cooldown_uses_default_days() -> None:
    settings = CooldownSettings(default_days=12)

    assert default_cooldown(settings, now=BASE_TIME) == BASE_TIME + timedelta(days=12)


def test_failure_cooldown_per_type() -> None:
    settings = CooldownSettings()

    assert failure_cooldown(settings, FailureType.SITE_TIMEOUT, now=BASE_TIME) == (
        BASE_TIME + timedelta(days=3)
    )
    assert failure_cooldown(settings, FailureType.PAGE_NOT_FOUND, now=BASE_TIME) == (
        BASE_TIME + timedelta(days=60)
    )


def test_missing_override_falls_back_to_default() -> None:
    settings = CooldownSettings(default_days=9, by_failure_type={}, by_contact_result={})

    assert failure_cooldown(settings, FailureType.DNS_ERROR, now=BASE_TIME) == (
        BASE_TIME + timedelta(days=9)
    )
    assert contact_result_cooldown(settings, ContactResult.REPLIED, now=BASE_TIME) == (
        BASE_TIME + timedelta(days=9)
    )


def test_contact_result_cooldown() -> None:
    assert contact_result_cooldown(
        CooldownSettings(), ContactResult.BOUNCED_HARD, now=BASE_TIME
    ) == BASE_TIME + timedelta(days=365)


def test_reentry_status_depends_on_retained_progress() -> None:
    lead = make_lead(status=LeadStatus.COOLDOWN)
    assert reentry_status(lead) is LeadStatus.COLLECTED

    lead.enrichment_data = EnrichmentData()
    assert reentry_status(lead) is LeadStatus.COLLECTED

    lead.enrichment_data = EnrichmentData(emails=("a@b.example",))
    assert reentry_status(lead) is LeadStatus.ENRICHED

    lead.enrichment_data = None
    lead.score = 40
    assert reentry_status(lead) is LeadStatus.ENRICHED


def test_signal_check_cutoff() -> None:
    settings = RefreshSettings(check_interval_hours=6)

    assert signal_check_cutoff(settings, now=BASE_TIME) == BASE_TIME - timedelta(hours=6)


def test_default_signal_check_reports_no_change() -> None:
    assert no_signal_change(make_lead()) is False
