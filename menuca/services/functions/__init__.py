"""
Edge Function Service Factory

    - ENV_MODE=development → MockFunctionService
    - ENV_MODE=staging/production → SupabaseFunctionService
"""

import logging
from functools import lru_cache
from typing import Optional

from menuca.core.config import get_settings
from menuca.core.errors import ServiceError
from menuca.services.functions.base import BaseFunctionService, FunctionResult
from menuca.services.functions.mock import MockFunctionService
from menuca.services.functions.supabase import SupabaseFunctionService

logger = logging.getLogger(__name__)


@lru_cache()
def get_function_service() -> BaseFunctionService:
    settings = get_settings()

    if settings.is_development:
        logger.info("Function Service: Using MockFunctionService (development mode)")
        return MockFunctionService(failure_rate=settings.mock_failure_rate)

    logger.info(f"Function Service: Using SupabaseFunctionService ({settings.env_mode.value} mode)")
    return SupabaseFunctionService()


def reset_function_service() -> None:
    get_function_service.cache_clear()


async def invoke_or_raise(name: str, payload: dict, access_token: Optional[str] = None):
    """Invoke an edge function and turn a failed call into a ServiceError."""
    result = await get_function_service().invoke(name, payload, access_token)
    if not result.success:
        raise ServiceError(result.error_message or f"Edge function {name} failed", result.status_code)
    return result.data


__all__ = [
    "get_function_service",
    "reset_function_service",
    "invoke_or_raise",
    "BaseFunctionService",
    "FunctionResult",
]
