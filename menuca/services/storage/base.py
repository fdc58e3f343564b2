"""
Object Storage Service Abstract Base Class

Restaurant logos and photos are stored in hosted object-storage buckets.
Uploads overwrite an existing object at the same path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class UploadResult:
    success: bool
    path: Optional[str] = None
    public_url: Optional[str] = None
    error_message: Optional[str] = None


class BaseStorageService(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> UploadResult:
        pass

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> bool:
        pass

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        pass
