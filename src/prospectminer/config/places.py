"""Google Places configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_var
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

PLACES_API_KEY_ENV = "GOOGLE_PLACES_API_KEY"
PLACES_BASE_URL = "https://places.googleapis.com/v1/"
PLACES_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class GooglePlacesConfig:
    """Holds Google Places API configuration values."""

    api_key: str
    resilience: ResilienceConfig


def get_places_config(*, resilience: ResilienceConfig | None = None) -> GooglePlacesConfig:
    return GooglePlacesConfig(
        api_key=require_env_var(PLACES_API_KEY_ENV),
        resilience=resilience
        or ResilienceConfig(
            name="google_places",
            base_url=PLACES_BASE_URL,
            timeout_seconds=PLACES_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
