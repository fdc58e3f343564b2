"""
Geocoding without Google, for development and tests.

Addresses registered with add_address() resolve to their coordinates;
anything else lands on downtown Ottawa.
"""

import logging
import random
from typing import Optional

from menuca.services.geo.base import BaseGeoService, GeocodeResult

logger = logging.getLogger(__name__)

OTTAWA = (45.4215, -75.6972)


def _key(address: str) -> str:
    return " ".join(address.lower().split())


class MockGeoService(BaseGeoService):

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.known_addresses: dict[str, GeocodeResult] = {}

    @property
    def provider_name(self) -> str:
        return "mock"

    def add_address(self, address: str, latitude: float, longitude: float, postal_code: Optional[str] = None) -> None:
        self.known_addresses[_key(address)] = GeocodeResult(
            is_valid=True,
            formatted_address=address,
            latitude=latitude,
            longitude=longitude,
            postal_code=postal_code,
        )

    def reset(self) -> None:
        self.known_addresses.clear()

    async def geocode(self, address: str, country: str = "CA") -> GeocodeResult:
        if not address.strip():
            return GeocodeResult(is_valid=False, error_message="Address is required")
        if random.random() < self.failure_rate:
            return GeocodeResult(is_valid=False, error_message="Address lookup is unavailable right now")

        if _key(address) in self.known_addresses:
            return self.known_addresses[_key(address)]

        logger.debug(f"Mock geo: {address!r} is unknown, using downtown Ottawa")
        lat, lng = OTTAWA
        return GeocodeResult(is_valid=True, formatted_address=f"{address}, {country}", latitude=lat, longitude=lng)

    async def health_check(self) -> bool:
        return True
