"""
Image uploads to the object-storage buckets.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from menuca.api.deps import AdminContext, ensure_restaurant_access, get_admin_context
from menuca.core.config import get_settings
from menuca.core.errors import BadRequestError, ForbiddenError, ServiceError
from menuca.services.storage import get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage", tags=["Storage"])

# Paths are "<restaurant_id>/<file name>"
PATH_RE = re.compile(r"^(\d+)/")


@router.post("/upload")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    bucket: Optional[str] = Form(None),
    path: Optional[str] = Form(None),
    admin: AdminContext = Depends(get_admin_context),
) -> dict:
    settings = get_settings()

    if file is None or not bucket or not path:
        raise BadRequestError("Missing required fields: file, bucket, or path")

    allowed_buckets = settings.storage_allowed_buckets_list
    if bucket not in allowed_buckets:
        raise ForbiddenError(
            f"Bucket '{bucket}' is not allowed. Allowed buckets: {', '.join(allowed_buckets)}"
        )

    if file.content_type not in settings.storage_allowed_types_list:
        raise BadRequestError(f"File type '{file.content_type}' is not allowed. Allowed types: images only")

    content = await file.read()
    if len(content) > settings.storage_max_file_size:
        max_mb = settings.storage_max_file_size / 1024 / 1024
        raise BadRequestError(f"File size exceeds maximum of {max_mb:g}MB")

    match = PATH_RE.match(path)
    if match is None:
        raise BadRequestError("Invalid path format. Path must start with restaurant ID")
    ensure_restaurant_access(admin, int(match.group(1)))

    result = await get_storage_service().upload(bucket, path, content, file.content_type, upsert=True)
    if not result.success:
        logger.error(f"Upload to {bucket}/{path} failed: {result.error_message}")
        raise ServiceError(result.error_message or "Upload failed")

    logger.info(f"Uploaded {len(content)} bytes to {bucket}/{path}")
    return {"url": result.public_url, "path": result.path}
