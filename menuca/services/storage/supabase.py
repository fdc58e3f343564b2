"""
Supabase Storage Service

Uses the storage REST API with the service role key:
    - POST   /storage/v1/object/{bucket}/{path}   (x-upsert header)
    - DELETE /storage/v1/object/{bucket}/{path}
Public objects are served from /storage/v1/object/public/{bucket}/{path}.
"""

import logging

import httpx

from menuca.core.config import get_settings
from menuca.services.storage.base import BaseStorageService, UploadResult

logger = logging.getLogger(__name__)


class SupabaseStorageService(BaseStorageService):

    def __init__(self):
        settings = get_settings()

        if not settings.supabase_service_role_key:
            raise ValueError("SUPABASE_SERVICE_ROLE_KEY is required outside development mode.")

        self._base_url = f"{settings.supabase_url.rstrip('/')}/storage/v1"
        self._service_key = settings.supabase_service_role_key
        self._timeout = settings.supabase_timeout

    @property
    def provider_name(self) -> str:
        return "supabase"

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._base_url}/object/public/{bucket}/{path}"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> UploadResult:
        headers = {
            **self._headers(),
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
            "cache-control": "max-age=3600",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/object/{bucket}/{path}", headers=headers, content=content
                )
        except httpx.HTTPError as e:
            logger.error(f"Storage: upload to {bucket}/{path} failed - {e}")
            return UploadResult(success=False, error_message="Storage service unavailable")

        if response.is_error:
            body = response.json() if response.content else {}
            message = body.get("message") or body.get("error") or "Upload failed"
            logger.warning(f"Storage: upload rejected ({response.status_code}) - {message}")
            return UploadResult(success=False, error_message=message)

        logger.info(f"Storage: uploaded {bucket}/{path} ({len(content)} bytes)")
        return UploadResult(success=True, path=path, public_url=self.public_url(bucket, path))

    async def delete(self, bucket: str, path: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.delete(
                    f"{self._base_url}/object/{bucket}/{path}", headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"Storage: delete {bucket}/{path} failed - {e}")
            return False
        return response.is_success
