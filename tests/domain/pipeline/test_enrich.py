from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from prospectminer.domain.model import FailureType, LeadStatus
from prospectminer.domain.pipeline import StageContext
from prospectminer.domain.pipeline.stages import EnrichStage
from prospectminer.domain.ports.fetching import FetchResult, PageSignals
from tests.helpers.leads import load_lead, make_lead, store_leads

SITE = "https://proplumbing.example"
CONTACT = f"{SITE}/contact"


@dataclass(slots=True)
class FakeFetcher:
    pages: dict[str, FetchResult]
    requested: list[str] = field(default_factory=list)
    closed: bool = False

    async def fetch(self, url: str) -> FetchResult:
        self.requested.append(url)
        return self.pages.get(
            url, FetchResult(url=url, status_code=404, failure_type=FailureType.PAGE_NOT_FOUND)
        )

    async def aclose(self) -> None:
        self.closed = True


@dataclass(slots=True)
class FakeExtractor:
    signals: dict[str, PageSignals]

    def extract(self, html: str, *, base_url: str) -> PageSignals:
        del html
        return self.signals[base_url]


@dataclass(slots=True)
class ExplodingExtractor:
    def extract(self, html: str, *, base_url: str) -> PageSignals:
        raise ValueError(f"cannot parse {base_url}: {html[:5]}")


def _ok(url: str) -> FetchResult:
    return FetchResult(url=url, html="<html></html>", status_code=200)


def test_enrich_merges_main_and_contact_pages(stage_context: StageContext) -> None:
    lead = make_lead(status=LeadStatus.FILTERED, email=None, website=SITE)
    store_leads(stage_context.unit_of_work, lead)
    fetcher = FakeFetcher({SITE: _ok(SITE), CONTACT: _ok(CONTACT)})
    extractor = FakeExtractor(
        {
            SITE: PageSignals(
                phones=("+15125550199",),
                social_links={"facebook": "https://facebook.com/pro"},
                title="Pro Plumbing",
                contact_links=(CONTACT,),
            ),
            CONTACT: PageSignals(emails=("owner@proplumbing.example",), has_online_booking=True),
        }
    )

    result = EnrichStage(
        stage_context, fetcher_factory=lambda: fetcher, extractor=extractor
    ).run()

    assert (result.processed, result.passed, result.failed) == (1, 1, 0)
    assert fetcher.requested == [SITE, CONTACT]
    assert fetcher.closed
    stored = load_lead(stage_context.unit_of_work, lead.lead_id)
    assert stored.status is LeadStatus.ENRICHED
    assert stored.email == "owner@proplumbing.example"
    assert stored.phone == "+15125550100"
    data = stored.enrichment_data
    assert data is not None
    assert data.emails == ("owner@proplumbing.example",)
    assert data.phones == ("+15125550199",)
    assert data.has_online_booking
    assert data.page_title == "Pro Plumbing"
    assert data.social_links == {"facebook": "https://facebook.com/pro"}


def test_failed_fetch_parks_lead_in_failure_cooldown(stage_context: StageContext) -> None:
    lead = make_lead(status=LeadStatus.FILTERED, website=SITE)
    store_leads(stage_context.unit_of_work, lead)
    fetcher = FakeFetcher(
        {
            SITE: FetchResult(
                url=SITE, failure_type=FailureType.SITE_TIMEOUT, message="timed out"
            )
        }
    )

    result = EnrichStage(
        stage_context, fetcher_factory=lambda: fetcher, extractor=FakeExtractor({})
    ).run()

    assert result.success
    assert result.failed == 1
    assert result.details["failure_site_timeout"] == 1
    stored = load_lead(stage_context.unit_of_work, lead.lead_id)
    assert stored.status is LeadStatus.COOLDOWN
    assert stored.cooldown_until == stage_context.now() + timedelta(days=3)
    (failure,) = stored.enrichment_failures
    assert failure.type is FailureType.SITE_TIMEOUT
    assert failure.source == SITE


def test_extraction_errors_are_recorded_as_unknown_failures(
    stage_context: StageContext,
) -> None:
    lead = make_lead(status=LeadStatus.FILTERED, website=SITE)
    store_leads(stage_context.unit_of_work, lead)

    result = EnrichStage(
        stage_context,
        fetcher_factory=lambda: FakeFetcher({SITE: _ok(SITE)}),
        extractor=ExplodingExtractor(),
    ).run()

    assert result.failed == 1
    stored = load_lead(stage_context.unit_of_work, lead.lead_id)
    assert stored.status is LeadStatus.COOLDOWN
    assert stored.enrichment_failures[0].type is FailureType.UNKNOWN


def test_leads_without_website_advance_without_fetching(stage_context: StageContext) -> None:
    lead = make_lead(status=LeadStatus.FILTERED, website=None)
    store_leads(stage_context.unit_of_work, lead)
    fetcher = FakeFetcher({})

    result = EnrichStage(
        stage_context, fetcher_factory=lambda: fetcher, extractor=FakeExtractor({})
    ).run()

    assert result.passed == 1
    assert fetcher.requested == []
    stored = load_lead(stage_context.unit_of_work, lead.lead_id)
    assert stored.status is LeadStatus.ENRICHED
    assert stored.enrichment_data is not None
    assert stored.enrichment_data.is_empty
