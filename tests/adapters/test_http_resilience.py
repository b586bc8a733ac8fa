from __future__ import annotations

import asyncio

import httpx
import pytest

from prospectminer.adapters.http_resilience import (
    ResilientClient,
    build_cache_storage,
    build_retry,
)
from prospectminer.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)


def test_build_retry_copies_policy() -> None:
    retry = build_retry(RetryPolicy(total=5, status_forcelist=frozenset({503})))

    assert retry.total == 5  # noqa: PLR2004
    assert 503 in retry.status_forcelist  # noqa: PLR2004


def test_no_cache_config_means_no_storage() -> None:
    assert build_cache_storage(None) is None


def test_unknown_cache_backend_is_rejected() -> None:
    with pytest.raises(ValueError, match="redis"):
        build_cache_storage(CacheConfig(backend="redis"))  # type: ignore[arg-type]


def test_client_sends_default_headers_and_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    config = ResilienceConfig(
        name="test",
        base_url="https://api.test/",
        retry=RetryPolicy(total=0),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        default_headers={"User-Agent": "TestAgent/1.0"},
    )

    async def call() -> httpx.Response:
        async with ResilientClient(config) as client:
            client._client = httpx.AsyncClient(  # noqa: SLF001
                base_url="https://api.test/",
                headers=dict(config.default_headers or {}),
                transport=httpx.MockTransport(handler),
            )
            return await client.get("search", params={"q": "plumbers"})

    response = asyncio.run(call())

    assert response.json() == {"ok": True}
    assert seen[0].url.params["q"] == "plumbers"
    assert seen[0].headers["User-Agent"] == "TestAgent/1.0"


def test_post_sends_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=request.content)

    async def call() -> httpx.Response:
        async with ResilientClient(ResilienceConfig(name="test")) as client:
            client._client = httpx.AsyncClient(  # noqa: SLF001
                transport=httpx.MockTransport(handler)
            )
            return await client.post("https://api.test/items", json={"name": "Pro Plumbing"})

    assert asyncio.run(call()).json() == {"name": "Pro Plumbing"}
