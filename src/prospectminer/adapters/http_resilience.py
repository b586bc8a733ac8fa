"""Outbound HTTP client used by the discovery and enrichment adapters.

Each adapter describes its needs in a :class:`ResilienceConfig`; this module
turns that into an ``httpx.AsyncClient`` wrapped in a retrying transport, an
optional ``aiolimiter`` throttle and an optional ``hishel`` response cache.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from prospectminer.config.storage import get_storage_config

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from prospectminer.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


def build_cache_storage(cache: CacheConfig | None) -> AsyncSqliteStorage | None:
    if cache is None:
        return None
    match cache.backend:
        case "memory":
            database_path = ":memory:"
        case "sqlite":
            database_path = cache.sqlite_path or str(get_storage_config().http_cache_path())
        case _:
            raise ValueError(f"Unsupported cache backend: {cache.backend}")
    return AsyncSqliteStorage(database_path=database_path, default_ttl=cache.ttl_seconds)


class ResilientClient:
    """Async HTTP client that retries, throttles and caches according to its config."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )

        options: dict[str, Any] = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(retry=build_retry(config.retry)),
            "follow_redirects": config.follow_redirects,
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url
        if config.default_headers:
            options["headers"] = dict(config.default_headers)

        storage = build_cache_storage(config.cache)
        if storage is not None:
            log.debug("Caching responses for %s (%s)", config.name, config.cache)
            self._client: httpx.AsyncClient = AsyncCacheClient(**options, storage=storage)
        else:
            self._client = httpx.AsyncClient(**options)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        url: str,
        *,
        params: Mapping[str, str | int] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return await self._throttled(
            self._client.build_request("GET", url, params=params, headers=headers)
        )

    async def post(
        self,
        url: str,
        *,
        json: object = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        return await self._throttled(
            self._client.build_request("POST", url, json=json, headers=headers)
        )

    async def _throttled(self, request: httpx.Request) -> httpx.Response:
        if self._limiter is None:
            return await self._client.send(request)
        async with self._limiter:
            return await self._client.send(request)
