"""
Storage Service Factory

    - ENV_MODE=development → MockStorageService
    - ENV_MODE=staging/production → SupabaseStorageService
"""

import logging
from functools import lru_cache

from menuca.core.config import get_settings
from menuca.services.storage.base import BaseStorageService, UploadResult
from menuca.services.storage.mock import MockStorageService
from menuca.services.storage.supabase import SupabaseStorageService

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_service() -> BaseStorageService:
    settings = get_settings()

    if settings.is_development:
        logger.info("Storage Service: Using MockStorageService (development mode)")
        return MockStorageService()

    logger.info(f"Storage Service: Using SupabaseStorageService ({settings.env_mode.value} mode)")
    return SupabaseStorageService()


def reset_storage_service() -> None:
    get_storage_service.cache_clear()


__all__ = [
    "get_storage_service",
    "reset_storage_service",
    "BaseStorageService",
    "UploadResult",
]
