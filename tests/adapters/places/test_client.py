"""Google Places source behaviour against a mocked transport."""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx

from prospectminer.adapters.http_resilience import ResilientClient
from prospectminer.adapters.places import GooglePlacesSource

if TYPE_CHECKING:
    from collections.abc import Callable

    from prospectminer.config.http_resilience import ResilienceConfig
    from prospectminer.config.places import GooglePlacesConfig
    from prospectminer.domain.model import RawBusinessData
    from prospectminer.domain.settings import SourceSettings

type Handler = Callable[[httpx.Request], httpx.Response]


def _source(config: GooglePlacesConfig, handler: Handler) -> GooglePlacesSource:
    def client_factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))  # noqa: SLF001
        return client

    return GooglePlacesSource(config=config, client_factory=client_factory)


def _discover(
    source: GooglePlacesSource, settings: SourceSettings, limit: int | None = None
) -> list[RawBusinessData]:
    async def gather() -> list[RawBusinessData]:
        return [raw async for raw in source.discover(settings, limit=limit)]

    return asyncio.run(gather())


def test_discover_pages_through_results_and_drops_other_states(
    places_config: GooglePlacesConfig,
    austin_plumbers: SourceSettings,
    place_factory: Callable[..., dict[str, Any]],
) -> None:
    requests: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        assert request.headers["X-Goog-Api-Key"] == "test-key"
        assert str(request.url) == "https://places.test/v1/places:searchText"
        if "pageToken" not in body:
            return httpx.Response(
                200,
                json={
                    "places": [
                        place_factory("Pro Plumbing", websiteUri="https://pro.example"),
                        place_factory("Tulsa Pipes", state="OK", city="Tulsa"),
                    ],
                    "nextPageToken": "page-2",
                },
            )
        return httpx.Response(200, json={"places": [place_factory("Drain Masters")]})

    raws = _discover(_source(places_config, handler), austin_plumbers)

    assert [raw.name for raw in raws] == ["Pro Plumbing", "Drain Masters"]
    assert requests[0] == {"textQuery": "plumber in Austin, TX", "pageSize": 20}
    assert requests[1]["pageToken"] == "page-2"
    first = raws[0]
    assert first.state == "TX"
    assert first.city == "Austin"
    assert first.postal_code == "78701"
    assert first.country == "US"
    assert first.website == "https://pro.example"
    assert first.review_count == 8  # noqa: PLR2004
    assert first.categories == ("plumber",)
    assert first.additional_data["google_place_id"] == "places/pro-plumbing"
    assert first.source_url is not None
    assert first.source_url.startswith("https://www.google.com/maps/search/")


def test_discover_respects_limit(
    places_config: GooglePlacesConfig,
    austin_plumbers: SourceSettings,
    place_factory: Callable[..., dict[str, Any]],
) -> None:
    page_sizes: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        page_sizes.append(body["pageSize"])
        return httpx.Response(
            200,
            json={"places": [place_factory(f"Plumber {n}") for n in range(body["pageSize"])]},
        )

    raws = _discover(_source(places_config, handler), austin_plumbers, limit=3)

    assert len(raws) == 3  # noqa: PLR2004
    assert page_sizes == [3]


def test_api_errors_skip_the_query(
    places_config: GooglePlacesConfig,
    austin_plumbers: SourceSettings,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        del request
        return httpx.Response(
            403,
            json={"error": {"code": 403, "message": "API key invalid", "status": "DENIED"}},
        )

    assert _discover(_source(places_config, handler), austin_plumbers) == []


def test_source_without_geos_searches_nothing(
    places_config: GooglePlacesConfig,
    austin_plumbers: SourceSettings,
) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    settings = replace(austin_plumbers, geos=())

    assert _discover(_source(places_config, handler), settings) == []
    assert calls == []
