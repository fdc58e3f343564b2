"""
Supabase Auth Identity Service

Talks to the GoTrue REST API of the Supabase project:
    - GET    /auth/v1/user              (resolve an access token)
    - POST   /auth/v1/admin/users       (create a confirmed user)
    - DELETE /auth/v1/admin/users/{id}  (remove a user)

Admin endpoints require the service role key.
"""

import logging
from typing import Optional

import httpx

from menuca.core.config import get_settings
from menuca.core.errors import ServiceError
from menuca.services.identity.base import BaseIdentityService, IdentityUser

logger = logging.getLogger(__name__)


class SupabaseIdentityService(BaseIdentityService):

    def __init__(self):
        settings = get_settings()

        if not settings.supabase_anon_key or not settings.supabase_service_role_key:
            raise ValueError(
                "SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY are required "
                "outside development mode."
            )

        self._base_url = f"{settings.supabase_url.rstrip('/')}/auth/v1"
        self._anon_key = settings.supabase_anon_key
        self._service_key = settings.supabase_service_role_key
        self._timeout = settings.supabase_timeout

    @property
    def provider_name(self) -> str:
        return "supabase"

    def _admin_headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }

    @staticmethod
    def _to_user(data: dict) -> IdentityUser:
        return IdentityUser(
            id=data["id"],
            email=data.get("email"),
            user_metadata=data.get("user_metadata") or {},
        )

    async def get_user(self, access_token: str) -> Optional[IdentityUser]:
        headers = {"apikey": self._anon_key, "Authorization": f"Bearer {access_token}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Supabase Auth: user lookup failed - {e}")
            raise ServiceError("Authentication service unavailable")

        if response.status_code in (401, 403, 404):
            return None
        if response.is_error:
            logger.error(f"Supabase Auth: unexpected status {response.status_code}")
            raise ServiceError("Authentication service error")

        return self._to_user(response.json())

    async def create_user(
        self,
        email: str,
        password: str,
        user_metadata: Optional[dict] = None,
    ) -> IdentityUser:
        payload = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": user_metadata or {},
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/admin/users",
                    headers=self._admin_headers(),
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Supabase Auth: create user failed - {e}")
            raise ServiceError("Authentication service unavailable")

        if response.is_error:
            body = response.json() if response.content else {}
            message = body.get("msg") or body.get("message") or "Failed to create auth user"
            logger.warning(f"Supabase Auth: create user rejected ({response.status_code}) - {message}")
            raise ServiceError(message, response.status_code)

        user = self._to_user(response.json())
        logger.info(f"Supabase Auth: created user {user.id}")
        return user

    async def delete_user(self, user_id: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.delete(
                    f"{self._base_url}/admin/users/{user_id}",
                    headers=self._admin_headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"Supabase Auth: delete user {user_id} failed - {e}")
            return False
        return response.is_success

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(
                    f"{self._base_url}/health", headers={"apikey": self._anon_key}
                )
            return response.is_success
        except httpx.HTTPError as e:
            logger.error(f"Supabase Auth: health check failed - {e}")
            return False
