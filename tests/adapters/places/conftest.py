from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from prospectminer.config.http_resilience import ResilienceConfig, RetryPolicy
from prospectminer.config.places import GooglePlacesConfig
from prospectminer.domain.settings import GeoTarget, SourceSettings

if TYPE_CHECKING:
    from collections.abc import Callable


def place(
    name: str,
    *,
    state: str = "TX",
    city: str = "Austin",
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": f"places/{name.lower().replace(' ', '-')}",
        "displayName": {"text": name, "languageCode": "en"},
        "formattedAddress": f"1 Main St, {city}, {state} 78701, USA",
        "addressComponents": [
            {"longText": city, "shortText": city, "types": ["locality", "political"]},
            {"longText": "Texas", "shortText": state, "types": ["administrative_area_level_1"]},
            {"longText": "78701", "shortText": "78701", "types": ["postal_code"]},
            {"longText": "United States", "shortText": "US", "types": ["country"]},
        ],
        "nationalPhoneNumber": "(512) 555-0100",
        "rating": 4.2,
        "userRatingCount": 8,
        "types": ["plumber", "point_of_interest"],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def places_config() -> GooglePlacesConfig:
    return GooglePlacesConfig(
        api_key="test-key",
        resilience=ResilienceConfig(
            name="google_places_test",
            base_url="https://places.test/v1/",
            retry=RetryPolicy(total=0),
        ),
    )


@pytest.fixture
def austin_plumbers() -> SourceSettings:
    return SourceSettings(
        name="austin",
        type="google_places",
        categories=("plumber",),
        geos=(GeoTarget(city="Austin", state="TX"),),
    )


@pytest.fixture
def place_factory() -> Callable[..., dict[str, Any]]:
    return place
