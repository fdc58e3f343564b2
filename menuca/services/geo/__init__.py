"""Geocoder selection: the mock in development, Google Maps elsewhere."""

import logging
from functools import lru_cache

from menuca.core.config import get_settings
from menuca.services.geo.base import BaseGeoService, GeocodeResult
from menuca.services.geo.google import GoogleGeoService
from menuca.services.geo.mock import MockGeoService

logger = logging.getLogger(__name__)


@lru_cache()
def get_geo_service() -> BaseGeoService:
    settings = get_settings()
    if settings.use_real_services:
        logger.info(f"Geocoding: Google Maps ({settings.env_mode.value})")
        return GoogleGeoService()

    logger.info("Geocoding: in-memory mock")
    return MockGeoService(failure_rate=settings.mock_failure_rate)


def reset_geo_service() -> None:
    get_geo_service.cache_clear()


__all__ = [
    "get_geo_service",
    "reset_geo_service",
    "BaseGeoService",
    "GeocodeResult",
]
