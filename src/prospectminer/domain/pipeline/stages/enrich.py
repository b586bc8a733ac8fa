"""Enrich stage: attach contact details and website signals to filtered leads."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from itertools import batched
from typing import TYPE_CHECKING

from prospectminer.domain.cooldown import failure_cooldown
from prospectminer.domain.model import (
    EnrichmentData,
    EnrichmentFailure,
    FailureType,
    LeadStatus,
    StageName,
)
from prospectminer.domain.pipeline.runner import RecordOutcome, Stage
from prospectminer.domain.ratelimit import SlidingWindowRateLimiter

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from prospectminer.domain.model import Lead
    from prospectminer.domain.pipeline.context import RunContext, StageContext
    from prospectminer.domain.ports.fetching import (
        EnrichmentFetcher,
        FetchResult,
        PageExtractor,
        PageSignals,
    )
    from prospectminer.domain.ports.unit_of_work import PipelineRepositories

type FetcherFactory = Callable[[], EnrichmentFetcher]

WEBSITE_SOURCE = "website"


@dataclass(frozen=True, slots=True)
class WebsiteOutcome:
    """What fetching one lead's website produced: data, a failure, or neither."""

    data: EnrichmentData | None = None
    failure: EnrichmentFailure | None = None


def _merge_signals(pages: Sequence[PageSignals]) -> EnrichmentData:
    main = pages[0]
    emails: dict[str, None] = {}
    phones: dict[str, None] = {}
    social: dict[str, str] = {}
    for page in pages:
        emails.update(dict.fromkeys(page.emails))
        phones.update(dict.fromkeys(page.phones))
        for platform, url in page.social_links.items():
            social.setdefault(platform, url)
    return EnrichmentData(
        emails=tuple(emails),
        phones=tuple(phones),
        social_links=social,
        has_online_booking=any(page.has_online_booking for page in pages),
        page_title=main.title,
        meta_description=main.meta_description,
    )


class EnrichStage(Stage):
    """Fetch websites concurrently, then persist each lead sequentially.

    Fetches are bounded by ``enrichment.concurrency`` and gated by a sliding
    window limiter; every store write still goes through its own unit of work.
    A failed fetch records the failure and parks the lead in a cooldown sized
    for that failure type.
    """

    name = StageName.ENRICH

    def __init__(
        self,
        context: StageContext,
        *,
        fetcher_factory: FetcherFactory,
        extractor: PageExtractor,
        limit: int | None = None,
    ) -> None:
        super().__init__(context, limit=limit)
        self.fetcher_factory = fetcher_factory
        self.extractor = extractor

    def execute(self, run: RunContext) -> None:
        leads = self.select_leads()
        if not leads:
            run.log.info("No leads to enrich")
            return
        run.log.info("Enriching %s leads", len(leads))
        asyncio.run(self._enrich_all(run, leads))
        run.log.info(
            "Enrichment complete: processed=%s, passed=%s, failed=%s",
            run.processed,
            run.passed,
            run.failed,
        )

    async def _enrich_all(self, run: RunContext, leads: list[Lead]) -> None:
        settings = self.settings.enrichment
        limiter = SlidingWindowRateLimiter.per_minute(settings.requests_per_minute)
        semaphore = asyncio.Semaphore(settings.concurrency)
        fetcher = self.fetcher_factory()
        try:
            for batch in batched(leads, self.settings.pipeline.batch_size):
                outcomes = await asyncio.gather(
                    *(self._visit(fetcher, limiter, semaphore, lead) for lead in batch),
                    return_exceptions=True,
                )
                for lead, outcome in zip(batch, outcomes, strict=True):
                    self._persist(run, lead, outcome)
                self.checkpoint(run)
        finally:
            await fetcher.aclose()

    async def _visit(
        self,
        fetcher: EnrichmentFetcher,
        limiter: SlidingWindowRateLimiter,
        semaphore: asyncio.Semaphore,
        lead: Lead,
    ) -> WebsiteOutcome:
        if not lead.website:
            return WebsiteOutcome(data=EnrichmentData())

        async def fetch(url: str) -> FetchResult:
            async with semaphore:
                await limiter.acquire()
                return await fetcher.fetch(url)

        result = await fetch(lead.website)
        if not result.ok or result.html is None:
            return WebsiteOutcome(
                failure=EnrichmentFailure(
                    type=result.failure_type or FailureType.UNKNOWN,
                    source=result.url,
                    occurred_at=self.context.now(),
                    message=result.message,
                )
            )

        main = self.extractor.extract(result.html, base_url=result.url)
        pages = [main]
        for link in main.contact_links[: self.settings.enrichment.max_contact_pages]:
            contact = await fetch(link)
            if contact.ok and contact.html is not None:
                pages.append(self.extractor.extract(contact.html, base_url=contact.url))
        return WebsiteOutcome(data=_merge_signals(pages))

    def _persist(
        self, run: RunContext, lead: Lead, result: WebsiteOutcome | BaseException
    ) -> None:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            run.log.warning("Unexpected error while enriching %s: %r", lead.lead_id, result)
            outcome = WebsiteOutcome(
                failure=EnrichmentFailure(
                    type=FailureType.UNKNOWN,
                    source=lead.website or WEBSITE_SOURCE,
                    occurred_at=self.context.now(),
                    message=str(result) or type(result).__name__,
                )
            )
        else:
            outcome = result

        def handle(repos: PipelineRepositories, lead: Lead, now: datetime) -> RecordOutcome:
            if outcome.failure is not None:
                failure = outcome.failure
                repos.leads.add_enrichment_failure(lead.lead_id, failure, now=now)
                until = failure_cooldown(self.settings.cooldowns, failure.type, now=now)
                repos.leads.set_cooldown(lead.lead_id, until, now=now)
                run.log.debug("Enrichment failed for %s: %s", lead.lead_id, failure.type)
                run.bump(f"failure_{failure.type}")
                return RecordOutcome.FAILED

            data = outcome.data or EnrichmentData()
            repos.leads.update_enrichment(lead.lead_id, data, now=now)
            repos.leads.update_contact_details(
                lead.lead_id,
                email=data.emails[0] if data.emails else None,
                phone=data.phones[0] if data.phones else None,
                now=now,
            )
            repos.leads.update_status(lead.lead_id, LeadStatus.ENRICHED, now=now)
            return RecordOutcome.PASSED

        self.process_lead(run, lead, handle)
