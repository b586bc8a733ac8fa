"""HTTP discovery source for the Google Places (New) text search API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from prospectminer.adapters.http_resilience import ResilientClient
from prospectminer.config.places import PLACES_BASE_URL, GooglePlacesConfig, get_places_config

from .schema import ErrorResponse, SearchTextResponse
from .translator import parse_place

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from prospectminer.config.http_resilience import ResilienceConfig
    from prospectminer.domain.model import RawBusinessData
    from prospectminer.domain.ports.fetching import DiscoverySource
    from prospectminer.domain.settings import GeoTarget, SourceSettings

log = getLogger(__name__)

SEARCH_TEXT_PATH: Final[str] = "places:searchText"
FIELD_MASK: Final[str] = ",".join(
    (
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.addressComponents",
        "places.internationalPhoneNumber",
        "places.nationalPhoneNumber",
        "places.websiteUri",
        "places.rating",
        "places.userRatingCount",
        "places.googleMapsUri",
        "places.types",
        "nextPageToken",
    )
)
MAX_PAGE_SIZE: Final[int] = 20
MAX_PAGES_PER_QUERY: Final[int] = 3


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class PlacesAPIError(RuntimeError):
    """Raised when the Places API returns an error or an unreadable payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class GooglePlacesSource:
    """Searches Places for every ``category in city, state`` pair of a source config.

    A failing query is logged and skipped so one bad category does not end the
    whole source; listings outside the geo's state are dropped.
    """

    config: GooglePlacesConfig = field(default_factory=get_places_config)
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def discover(
        self,
        source: SourceSettings,
        *,
        limit: int | None = None,
    ) -> AsyncIterator[RawBusinessData]:
        if not source.categories or not source.geos:
            log.warning("Source %r has no categories or geos; nothing to search", source.name)
            return

        discovered = 0
        async with self.client_factory(self.resilience or self.config.resilience) as client:
            for geo in source.geos:
                for category in source.categories:
                    if limit is not None and discovered >= limit:
                        return
                    log.info("Searching Google Places: %s in %s", category, geo.label)
                    try:
                        async for business in self._search(
                            client,
                            category=category,
                            geo=geo,
                            remaining=None if limit is None else limit - discovered,
                        ):
                            yield business
                            discovered += 1
                    except PlacesAPIError:
                        log.exception("Google Places search failed: %s in %s", category, geo.label)

    async def _search(
        self,
        client: ResilientClient,
        *,
        category: str,
        geo: GeoTarget,
        remaining: int | None,
    ) -> AsyncIterator[RawBusinessData]:
        page_token: str | None = None
        for _ in range(MAX_PAGES_PER_QUERY):
            page_size = MAX_PAGE_SIZE if remaining is None else min(MAX_PAGE_SIZE, remaining)
            if page_size <= 0:
                return
            response = await self._request_page(
                client,
                text_query=f"{category} in {geo.city}, {geo.state}",
                page_size=page_size,
                page_token=page_token,
            )
            log.info("Found %s places for %s in %s", len(response.places), category, geo.label)
            for place in response.places:
                business = parse_place(place, category=category, geo=geo)
                if business is None:
                    continue
                yield business
                if remaining is not None:
                    remaining -= 1
                    if remaining <= 0:
                        return
            page_token = response.next_page_token
            if not page_token:
                return

    async def _request_page(
        self,
        client: ResilientClient,
        *,
        text_query: str,
        page_size: int,
        page_token: str | None,
    ) -> SearchTextResponse:
        body: dict[str, object] = {"textQuery": text_query, "pageSize": page_size}
        if page_token:
            body["pageToken"] = page_token

        base_url = (self.resilience or self.config.resilience).base_url or PLACES_BASE_URL
        response = await client.post(
            f"{base_url.rstrip('/')}/{SEARCH_TEXT_PATH}",
            json=body,
            headers={
                "X-Goog-Api-Key": self.config.api_key,
                "X-Goog-FieldMask": FIELD_MASK,
            },
        )

        try:
            payload = response.json()
        except ValueError as exc:
            raise PlacesAPIError(
                "Google Places returned a non-JSON payload", status_code=response.status_code
            ) from exc

        if response.is_error or (isinstance(payload, dict) and "error" in payload):
            try:
                error = ErrorResponse.model_validate(payload).error
                message = error.message
            except ValidationError:
                message = response.text
            raise PlacesAPIError(
                f"Google Places API error {response.status_code}: {message}",
                status_code=response.status_code,
            )

        try:
            return SearchTextResponse.model_validate(payload)
        except ValidationError as exc:
            raise PlacesAPIError("Unexpected Google Places response payload") from exc


if TYPE_CHECKING:
    _source_check: DiscoverySource = GooglePlacesSource()
