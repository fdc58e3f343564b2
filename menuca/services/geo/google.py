"""Geocoding through the Google Maps Geocoding API (staging and production)."""

import logging

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from menuca.core.config import get_settings
from menuca.services.geo.base import BaseGeoService, GeocodeResult

logger = logging.getLogger(__name__)

GOOGLE_ERRORS = (ApiError, Timeout, TransportError)


def _postal_code(components: list) -> str | None:
    for component in components:
        if "postal_code" in component.get("types", []):
            return component.get("short_name")
    return None


class GoogleGeoService(BaseGeoService):

    def __init__(self):
        key = get_settings().google_maps_api_key
        if not key:
            raise ValueError("GOOGLE_MAPS_API_KEY must be set outside development")
        self._client = googlemaps.Client(key=key)

    @property
    def provider_name(self) -> str:
        return "google"

    async def geocode(self, address: str, country: str = "CA") -> GeocodeResult:
        try:
            # googlemaps has no async client; lookups are short enough to run inline
            matches = self._client.geocode(address, components={"country": country})
        except GOOGLE_ERRORS as e:
            logger.error(f"Google: geocoding {address!r} failed: {e}")
            return GeocodeResult(is_valid=False, error_message="Address lookup is unavailable right now")

        if not matches:
            logger.info(f"Google: no match for {address!r}")
            return GeocodeResult(is_valid=False, error_message="We couldn't find that address")

        top = matches[0]
        point = top.get("geometry", {}).get("location", {})
        return GeocodeResult(
            is_valid=True,
            formatted_address=top.get("formatted_address", address),
            latitude=point.get("lat"),
            longitude=point.get("lng"),
            postal_code=_postal_code(top.get("address_components", [])),
        )

    async def health_check(self) -> bool:
        try:
            self._client.geocode("Parliament Hill, Ottawa", components={"country": "CA"})
        except GOOGLE_ERRORS as e:
            logger.error(f"Google: health check failed: {e}")
            return False
        return True
