"""Google Cloud Storage provider adapter for a single bucket."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from google.cloud import storage
from google.oauth2 import service_account

from ..config import Settings
from ..envelope import isoformat
from ..schemas import ObjectDescriptor, SignedLink

logger = logging.getLogger("proxy-inference-server.providers.gcs")

TOKEN_URI = "https://oauth2.googleapis.com/token"


def generate_object_name(original_name: str, now_ms: Optional[int] = None, token: Optional[str] = None) -> str:
    """`<epoch millis>-<random token><original extension>`; unique with high probability only."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if token is None:
        token = uuid4().hex[:12]
    return f"{now_ms}-{token}{PurePath(original_name).suffix}"


def describe_blob(blob: Any) -> ObjectDescriptor:
    metadata = dict(blob.metadata or {})
    return ObjectDescriptor(
        file_name=blob.name,
        original_name=metadata.get("originalName", blob.name),
        size=int(blob.size or 0),
        content_type=blob.content_type,
        created=isoformat(blob.time_created) if blob.time_created else None,
        updated=isoformat(blob.updated) if blob.updated else None,
        metadata=metadata,
    )


def build_client(settings: Settings) -> storage.Client:
    """Create a storage client from whichever credential form is configured."""
    project = settings.gcs_project_id
    if settings.gcs_key_file:
        logger.info("Using GCS credentials from key file", extra={"key_file": settings.gcs_key_file})
        return storage.Client.from_service_account_json(settings.gcs_key_file, project=project)
    if settings.inline_credentials:
        logger.info("Using inline GCS service account credentials")
        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "project_id": project,
                "client_email": settings.gcs_client_email,
                "private_key": settings.gcs_private_key,
                "token_uri": TOKEN_URI,
            }
        )
        return storage.Client(project=project, credentials=credentials)
    logger.info("Using application default credentials for GCS")
    return storage.Client(project=project)


class GcsStorageProvider:
    """Object operations against the configured bucket.

    The google client is blocking, so every call is pushed to a worker thread.
    The client itself is created on first use so that an unconfigured bucket
    never triggers credential lookup.
    """

    def __init__(self, settings: Settings, client: Any = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = build_client(self.settings)
        return self._client

    @property
    def bucket_name(self) -> str:
        if not self.settings.gcs_bucket_name:
            raise RuntimeError("Bucket not configured")
        return self.settings.gcs_bucket_name

    def _blob(self, name: str) -> Any:
        return self.client.bucket(self.bucket_name).blob(name)

    async def exists(self, name: str) -> bool:
        return await asyncio.to_thread(self._blob(name).exists)

    async def put_object(self, name: str, data: bytes, content_type: str, metadata: Dict[str, str]) -> None:
        def _upload() -> None:
            blob = self._blob(name)
            blob.metadata = metadata
            blob.upload_from_string(data, content_type=content_type)

        await asyncio.to_thread(_upload)

    async def sign_url(self, name: str, ttl: timedelta) -> SignedLink:
        expires_at = datetime.now(timezone.utc) + ttl

        def _sign() -> str:
            return self._blob(name).generate_signed_url(version="v4", expiration=expires_at, method="GET")

        url = await asyncio.to_thread(_sign)
        return SignedLink(file_name=name, url=url, expires_at=expires_at)

    async def list_objects(self) -> List[ObjectDescriptor]:
        # No pagination: every object in the bucket is returned
        def _list() -> List[Any]:
            return list(self.client.list_blobs(self.bucket_name))

        blobs = await asyncio.to_thread(_list)
        return [describe_blob(blob) for blob in blobs]

    async def delete_object(self, name: str) -> None:
        await asyncio.to_thread(self._blob(name).delete)

    async def get_metadata(self, name: str) -> ObjectDescriptor:
        """Reload a blob's metadata; a missing object raises the library's NotFound."""

        def _reload() -> Any:
            blob = self._blob(name)
            blob.reload()
            return blob

        blob = await asyncio.to_thread(_reload)
        return describe_blob(blob)

    async def upload(self, data: bytes, original_name: str, content_type: str) -> Tuple[ObjectDescriptor, SignedLink]:
        name = generate_object_name(original_name)
        now = datetime.now(timezone.utc)
        metadata = {"originalName": original_name, "uploadedAt": isoformat(now)}

        logger.info(
            "uploading object",
            extra={"file_name": name, "original_name": original_name, "size": len(data), "content_type": content_type},
        )
        await self.put_object(name, data, content_type, metadata)
        link = await self.sign_url(name, timedelta(seconds=self.settings.upload_url_ttl_seconds))

        descriptor = ObjectDescriptor(
            file_name=name,
            original_name=original_name,
            size=len(data),
            content_type=content_type,
            created=isoformat(now),
            updated=isoformat(now),
            metadata=metadata,
        )
        return descriptor, link
