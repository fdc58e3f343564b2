"""
Procedure Gateway Factory

    - ENV_MODE=development → MockProcedureService
    - ENV_MODE=staging/production → PostgresProcedureService
"""

import logging
from functools import lru_cache

from menuca.core.config import get_settings
from menuca.services.procedures.base import BaseProcedureService
from menuca.services.procedures.mock import MockProcedureService
from menuca.services.procedures.postgres import PostgresProcedureService

logger = logging.getLogger(__name__)


@lru_cache()
def get_procedure_service() -> BaseProcedureService:
    settings = get_settings()

    if settings.is_development:
        logger.info("Procedure Service: Using MockProcedureService (development mode)")
        return MockProcedureService()

    logger.info(f"Procedure Service: Using PostgresProcedureService ({settings.env_mode.value} mode)")
    return PostgresProcedureService()


def reset_procedure_service() -> None:
    get_procedure_service.cache_clear()


__all__ = [
    "get_procedure_service",
    "reset_procedure_service",
    "BaseProcedureService",
]
