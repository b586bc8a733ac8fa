"""Public interface for the Google Places adapter."""

from __future__ import annotations

from .client import GooglePlacesSource, PlacesAPIError
from .schema import AddressComponent, PlacePayload, SearchTextResponse
from .translator import parse_place

__all__ = [
    "AddressComponent",
    "GooglePlacesSource",
    "PlacePayload",
    "PlacesAPIError",
    "SearchTextResponse",
    "parse_place",
]
