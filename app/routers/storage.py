from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from ..config import Settings
from ..deps import get_app_settings, get_storage_provider
from ..envelope import success
from ..errors import NotFound, upstream_failure
from ..providers.gcs import GcsStorageProvider
from ..validation import check_file_size, check_file_type, require_bucket, require_file

logger = logging.getLogger("proxy-inference-server.routers.storage")

router = APIRouter(prefix="/api/gcs", tags=["storage"])


def _not_found(file_name: str) -> NotFound:
    return NotFound("File not found", f"File '{file_name}' does not exist", fileName=file_name)


@router.post("/upload")
async def upload_file(
    file: Optional[UploadFile] = File(default=None),
    settings: Settings = Depends(get_app_settings),
    storage: GcsStorageProvider = Depends(get_storage_provider),
):
    upload = require_file(file)
    check_file_type(upload.filename, upload.content_type, settings.allowed_upload_extensions)
    # One extra byte is enough to tell that the cap was exceeded
    data = await upload.read(settings.upload_max_bytes + 1)
    check_file_size(len(data), settings.upload_max_bytes)
    require_bucket(settings)

    with upstream_failure("Failed to upload file"):
        descriptor, link = await storage.upload(data, upload.filename, upload.content_type)

    logger.info("file uploaded", extra={"file_name": descriptor.file_name, "size": descriptor.size})
    return success(
        message="File uploaded successfully",
        fileName=descriptor.file_name,
        originalName=descriptor.original_name,
        size=descriptor.size,
        mimeType=descriptor.content_type,
        signedUrl=link.url,
        expiresAt=link.expires_at_iso,
    )


@router.get("/download/{file_name}")
async def download_link(
    file_name: str,
    settings: Settings = Depends(get_app_settings),
    storage: GcsStorageProvider = Depends(get_storage_provider),
):
    require_bucket(settings)

    with upstream_failure("Failed to generate download URL"):
        if not await storage.exists(file_name):
            raise _not_found(file_name)
        link = await storage.sign_url(file_name, timedelta(seconds=settings.download_url_ttl_seconds))

    return success(fileName=file_name, downloadUrl=link.url, expiresAt=link.expires_at_iso)


@router.get("/files")
async def list_files(
    settings: Settings = Depends(get_app_settings),
    storage: GcsStorageProvider = Depends(get_storage_provider),
):
    require_bucket(settings)

    with upstream_failure("Failed to list files"):
        files = await storage.list_objects()

    return success(files=[f.model_dump(by_alias=True) for f in files], count=len(files))


@router.delete("/files/{file_name}")
async def delete_file(
    file_name: str,
    settings: Settings = Depends(get_app_settings),
    storage: GcsStorageProvider = Depends(get_storage_provider),
):
    require_bucket(settings)

    with upstream_failure("Failed to delete file"):
        if not await storage.exists(file_name):
            raise _not_found(file_name)
        await storage.delete_object(file_name)

    logger.info("file deleted", extra={"file_name": file_name})
    return success(message="File deleted successfully", fileName=file_name)


@router.get("/files/{file_name}/metadata")
async def file_metadata(
    file_name: str,
    settings: Settings = Depends(get_app_settings),
    storage: GcsStorageProvider = Depends(get_storage_provider),
):
    require_bucket(settings)

    # No existence check here; a missing object fails inside the storage client
    with upstream_failure("Failed to get file metadata"):
        descriptor = await storage.get_metadata(file_name)

    return success(metadata=descriptor.model_dump(by_alias=True))
