"""Cooldown windows and refresh re-entry decisions."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from prospectminer.domain.model import LeadStatus

if TYPE_CHECKING:
    from datetime import datetime

    from prospectminer.domain.model import ContactResult, FailureType, Lead
    from prospectminer.domain.settings import CooldownSettings, RefreshSettings


def cooldown_until(now: datetime, days: float) -> datetime:
    return now + timedelta(days=days)


def default_cooldown(settings: CooldownSettings, *, now: datetime) -> datetime:
    return cooldown_until(now, settings.default_days)


def contact_result_cooldown(
    settings: CooldownSettings, result: ContactResult, *, now: datetime
) -> datetime:
    days = settings.by_contact_result.get(result, settings.default_days)
    return cooldown_until(now, days)


def failure_cooldown(
    settings: CooldownSettings, failure: FailureType, *, now: datetime
) -> datetime:
    days = settings.by_failure_type.get(failure, settings.default_days)
    return cooldown_until(now, days)


def reentry_status(lead: Lead) -> LeadStatus:
    """Status an expired-cooldown lead resumes at.

    Leads that kept enrichment data or a score skip re-collection and
    re-filtering.
    """

    return LeadStatus.ENRICHED if lead.has_retained_progress else LeadStatus.COLLECTED


def signal_check_cutoff(settings: RefreshSettings, *, now: datetime) -> datetime:
    """Leads last updated before this instant are due for a signal-change check."""

    return now - timedelta(hours=settings.check_interval_hours)


@runtime_checkable
class SignalChangeCheck(Protocol):
    """Decides whether an exported or cooled-down lead changed enough to re-process."""

    def __call__(self, lead: Lead) -> bool: ...


def no_signal_change(lead: Lead) -> bool:
    """Default check: no external change detection is wired in, nothing changed."""

    _ = lead
    return False
