"""
Mock Storage Service

Keeps uploaded objects in memory, keyed by (bucket, path).
"""

import logging

from menuca.core.config import get_settings
from menuca.services.storage.base import BaseStorageService, UploadResult

logger = logging.getLogger(__name__)


class MockStorageService(BaseStorageService):

    def __init__(self):
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self._base_url = get_settings().supabase_url.rstrip("/")

    @property
    def provider_name(self) -> str:
        return "mock"

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{bucket}/{path}"

    def reset(self) -> None:
        self.objects.clear()

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> UploadResult:
        key = (bucket, path)
        if key in self.objects and not upsert:
            return UploadResult(success=False, error_message="The resource already exists")

        self.objects[key] = (content, content_type)
        logger.debug(f"Mock: stored {len(content)} bytes at {bucket}/{path}")
        return UploadResult(success=True, path=path, public_url=self.public_url(bucket, path))

    async def delete(self, bucket: str, path: str) -> bool:
        return self.objects.pop((bucket, path), None) is not None
