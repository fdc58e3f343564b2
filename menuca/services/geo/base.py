"""
Geocoding interface.

Customers type addresses; delivery areas are polygons in lng/lat. The
geo service turns one into coordinates for the other, both when checking
a delivery address and when a customer saves an address to their profile.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class GeocodeResult:
    """Coordinates for an address; error_message is set when is_valid is False."""
    is_valid: bool
    formatted_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    postal_code: Optional[str] = None
    error_message: Optional[str] = None


class BaseGeoService(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def geocode(self, address: str, country: str = "CA") -> GeocodeResult:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...
