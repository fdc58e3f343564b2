"""
Identity Service Factory

    - ENV_MODE=development → MockIdentityService
    - ENV_MODE=staging/production → SupabaseIdentityService
"""

import logging
from functools import lru_cache

from menuca.core.config import get_settings
from menuca.services.identity.base import BaseIdentityService, IdentityUser
from menuca.services.identity.mock import MockIdentityService
from menuca.services.identity.supabase import SupabaseIdentityService

logger = logging.getLogger(__name__)


@lru_cache()
def get_identity_service() -> BaseIdentityService:
    settings = get_settings()

    if settings.is_development:
        logger.info("Identity Service: Using MockIdentityService (development mode)")
        return MockIdentityService()

    logger.info(f"Identity Service: Using SupabaseIdentityService ({settings.env_mode.value} mode)")
    return SupabaseIdentityService()


def reset_identity_service() -> None:
    get_identity_service.cache_clear()


__all__ = [
    "get_identity_service",
    "reset_identity_service",
    "BaseIdentityService",
    "IdentityUser",
]
