"""Pydantic models describing the Google Places (New) text search payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class PlacesBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LocalizedText(PlacesBaseModel):
    text: str | None = None
    language_code: str | None = Field(default=None, alias="languageCode")


class AddressComponent(PlacesBaseModel):
    long_text: str | None = Field(default=None, alias="longText")
    short_text: str | None = Field(default=None, alias="shortText")
    types: list[str] = Field(default_factory=list[str])


class PlacePayload(PlacesBaseModel):
    id: str | None = None
    display_name: LocalizedText | None = Field(default=None, alias="displayName")
    formatted_address: str | None = Field(default=None, alias="formattedAddress")
    address_components: list[AddressComponent] = Field(
        default_factory=list[AddressComponent], alias="addressComponents"
    )
    international_phone_number: str | None = Field(default=None, alias="internationalPhoneNumber")
    national_phone_number: str | None = Field(default=None, alias="nationalPhoneNumber")
    website_uri: str | None = Field(default=None, alias="websiteUri")
    rating: float | None = None
    user_rating_count: int | None = Field(default=None, alias="userRatingCount")
    google_maps_uri: str | None = Field(default=None, alias="googleMapsUri")
    types: list[str] = Field(default_factory=list[str])

    _normalize_strings = field_validator(
        "formatted_address",
        "international_phone_number",
        "national_phone_number",
        "website_uri",
        "google_maps_uri",
        mode="before",
    )(_blank_to_none)

    @property
    def name(self) -> str | None:
        if self.display_name is None or self.display_name.text is None:
            return None
        return self.display_name.text.strip() or None

    def component(self, kind: str) -> AddressComponent | None:
        for component in self.address_components:
            if kind in component.types:
                return component
        return None


class SearchTextResponse(PlacesBaseModel):
    places: list[PlacePayload] = Field(default_factory=list[PlacePayload])
    next_page_token: str | None = Field(default=None, alias="nextPageToken")


class ErrorDetail(PlacesBaseModel):
    code: int | None = None
    message: str = "Unknown Google Places error"
    status: str | None = None


class ErrorResponse(PlacesBaseModel):
    error: ErrorDetail
