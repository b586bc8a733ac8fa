"""Discover stage: stage raw business listings from configured sources."""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from prospectminer.domain.model import StageName
from prospectminer.domain.pipeline.runner import Stage
from prospectminer.domain.ratelimit import SlidingWindowRateLimiter

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from prospectminer.domain.model import RawBusinessData
    from prospectminer.domain.pipeline.context import RunContext, StageContext
    from prospectminer.domain.pipeline.runner import StageResult
    from prospectminer.domain.ports.fetching import DiscoverySource
    from prospectminer.domain.settings import SourceSettings

type SourceFactory = Callable[[], DiscoverySource]

DEFAULT_SOURCE_RATE_LIMIT = 60


class UnknownSourceTypeError(ValueError):
    """Raised when a configured source type has no registered handler."""

    def __init__(self, source_type: str) -> None:
        super().__init__(source_type)
        self.source_type = source_type

    def __str__(self) -> str:
        return f"No handler for source type: {self.source_type}"


class DiscoverStage(Stage):
    """Pull listings from every enabled source into the staging queue.

    Handlers are looked up by source type and built before the run is
    recorded, so a source missing its credentials aborts the stage instead of
    being counted as a failed source. Only enabled sources are built.
    """

    name = StageName.DISCOVER

    def __init__(
        self,
        context: StageContext,
        *,
        sources: Mapping[str, SourceFactory],
        source_name: str | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(context, limit=limit)
        self.sources = sources
        self.source_name = source_name
        self._handlers: dict[str, DiscoverySource] = {}

    def configured_sources(self) -> list[SourceSettings]:
        return [
            source
            for source in self.settings.sources
            if source.enabled and (self.source_name is None or source.name == self.source_name)
        ]

    def run(self, *, metadata: Mapping[str, Any] | None = None) -> StageResult:
        # configuration errors from a handler factory propagate to the caller
        self._handlers = {
            source.name: factory()
            for source in self.configured_sources()
            if (factory := self.sources.get(source.type)) is not None
        }
        return super().run(metadata=metadata)

    def execute(self, run: RunContext) -> None:
        configured = self.configured_sources()
        if not configured:
            run.log.warning("No enabled sources to discover from")
            return
        run.log.info("Discovering from %s source(s)", len(configured))
        asyncio.run(self._discover_all(run, configured))
        run.log.info("Discovery complete: staged=%s", run.passed)

    async def _discover_all(self, run: RunContext, configured: list[SourceSettings]) -> None:
        staged = 0
        for source in configured:
            if self.limit is not None and staged >= self.limit:
                run.log.info("Reached discovery limit (%s)", self.limit)
                break

            handler = self._handlers.get(source.name)
            if handler is None:
                run.record_processed()
                run.record_error(f"{source.name}: {UnknownSourceTypeError(source.type)}")
                continue

            remaining = None if self.limit is None else self.limit - staged
            try:
                staged += await self._discover_source(run, source, handler, remaining)
            except Exception as exc:  # noqa: BLE001
                run.record_processed()
                run.record_error(f"{source.name}: {exc}")
            finally:
                self.checkpoint(run)

    async def _discover_source(
        self,
        run: RunContext,
        source: SourceSettings,
        handler: DiscoverySource,
        remaining: int | None,
    ) -> int:
        run.log.info("Discovering from source %r (%s)", source.name, source.type)
        rate = source.rate_limit or DEFAULT_SOURCE_RATE_LIMIT
        limiter = SlidingWindowRateLimiter.per_minute(rate)
        batch_size = self.settings.pipeline.batch_size
        batch: list[RawBusinessData] = []
        staged = 0

        async with aclosing(handler.discover(source, limit=remaining)) as stream:
            async for business in stream:
                await limiter.acquire()
                run.record_processed()
                batch.append(business)
                if len(batch) >= batch_size:
                    staged += self._stage(run, source, batch)
                    batch = []
                    self.checkpoint(run)
                if remaining is not None and staged + len(batch) >= remaining:
                    break

        if batch:
            staged += self._stage(run, source, batch)
        run.log.info("Source %r complete: staged=%s", source.name, staged)
        return staged

    def _stage(self, run: RunContext, source: SourceSettings, batch: list[RawBusinessData]) -> int:
        with self.context.unit_of_work() as uow:
            count = uow.repositories.raw_discoveries.add_bulk(
                run.run_id, source.name, batch, now=self.context.now()
            )
            uow.commit()
        for _ in range(count):
            run.record_passed()
        return count
