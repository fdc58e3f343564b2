"""
Supabase Edge Function Service

POST {SUPABASE_URL}/functions/v1/{name} with the caller's access token so
the function can apply its own authorization. Without a user token the
service role key is sent instead.
"""

import logging
from typing import Optional

import httpx

from menuca.core.config import get_settings
from menuca.services.functions.base import BaseFunctionService, FunctionResult

logger = logging.getLogger(__name__)


class SupabaseFunctionService(BaseFunctionService):

    def __init__(self):
        settings = get_settings()

        if not settings.supabase_anon_key or not settings.supabase_service_role_key:
            raise ValueError(
                "SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY are required "
                "outside development mode."
            )

        self._base_url = f"{settings.supabase_url.rstrip('/')}/functions/v1"
        self._anon_key = settings.supabase_anon_key
        self._service_key = settings.supabase_service_role_key
        self._timeout = settings.supabase_timeout

    @property
    def provider_name(self) -> str:
        return "supabase"

    async def invoke(
        self,
        name: str,
        payload: dict,
        access_token: Optional[str] = None,
    ) -> FunctionResult:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token or self._service_key}",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/{name}", headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Edge function {name}: transport error - {e}")
            return FunctionResult(success=False, error_message=f"Edge function {name} unavailable")

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text}

        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"Edge function {name}: status {response.status_code} - {message}")
            return FunctionResult(
                success=False,
                data=data,
                error_message=message or f"Edge function {name} failed",
                status_code=response.status_code,
            )

        return FunctionResult(success=True, data=data, status_code=response.status_code)
