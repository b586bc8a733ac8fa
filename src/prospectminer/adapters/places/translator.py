"""Translate Google Places payloads into raw business listings."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote_plus

from prospectminer.domain.model import RawBusinessData

if TYPE_CHECKING:
    from prospectminer.domain.settings import GeoTarget

    from .schema import PlacePayload

log = getLogger(__name__)

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="


def parse_place(
    place: PlacePayload,
    *,
    category: str,
    geo: GeoTarget,
) -> RawBusinessData | None:
    """Translate one place, or return ``None`` when it lies outside the target state."""

    state_component = place.component("administrative_area_level_1")
    state = state_component.short_text if state_component else None
    if state is None or state.upper() != geo.state.upper():
        log.debug("Skipping %r: outside target state (%s)", place.name, state)
        return None

    city_component = place.component("locality")
    postal_component = place.component("postal_code")
    country_component = place.component("country")

    name = place.name or "Unknown"
    additional_data: dict[str, object] = {}
    if place.id:
        additional_data["google_place_id"] = place.id
    if place.types:
        additional_data["place_types"] = list(place.types)

    return RawBusinessData(
        name=name,
        address=place.formatted_address,
        city=(city_component.long_text if city_component else None) or geo.city,
        state=state,
        postal_code=postal_component.long_text if postal_component else None,
        country=(country_component.short_text if country_component else None) or geo.country,
        phone=place.international_phone_number or place.national_phone_number,
        website=place.website_uri,
        rating=place.rating,
        review_count=place.user_rating_count,
        categories=(category,),
        source_url=place.google_maps_uri or f"{MAPS_SEARCH_URL}{quote_plus(name)}",
        additional_data=additional_data,
    )
