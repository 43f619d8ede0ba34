"""Input and configuration checks run before any upstream call."""

from __future__ import annotations

from pathlib import PurePath
from typing import Dict, FrozenSet, Iterable, Optional

from fastapi import UploadFile

from .config import Settings
from .errors import FileTooLarge, InvalidFileType, MissingField, MissingFile, ServiceUnavailable
from .schemas import GenerationRequest

MIME_TYPES: Dict[str, FrozenSet[str]] = {
    "jpeg": frozenset({"image/jpeg"}),
    "jpg": frozenset({"image/jpeg"}),
    "png": frozenset({"image/png"}),
    "gif": frozenset({"image/gif"}),
    "pdf": frozenset({"application/pdf"}),
    "txt": frozenset({"text/plain"}),
    "doc": frozenset({"application/msword"}),
    "docx": frozenset({"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}),
    "xls": frozenset({"application/vnd.ms-excel"}),
    "xlsx": frozenset({"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"}),
    "csv": frozenset({"text/csv", "application/csv", "application/vnd.ms-excel"}),
    "zip": frozenset({"application/zip", "application/x-zip-compressed"}),
    "rar": frozenset({"application/vnd.rar", "application/x-rar-compressed"}),
}


def require_prompt(payload: Optional[GenerationRequest]) -> GenerationRequest:
    if payload is None or not payload.prompt:
        raise MissingField("Prompt is required", "Request body must include a non-empty 'prompt'")
    return payload


def require_generation_credentials(settings: Settings) -> str:
    if not settings.cohere_api_key:
        raise ServiceUnavailable(
            "Cohere API key not configured",
            "COHERE_API_KEY environment variable is not set",
        )
    return settings.cohere_api_key


def require_bucket(settings: Settings) -> str:
    if not settings.gcs_bucket_name:
        raise ServiceUnavailable(
            "Google Cloud Storage not configured",
            "GCS_BUCKET_NAME environment variable is not set",
        )
    return settings.gcs_bucket_name


def require_file(upload: Optional[UploadFile]) -> UploadFile:
    if upload is None or not upload.filename:
        raise MissingFile("No file uploaded", "Attach a file using the 'file' form field")
    return upload


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower().lstrip(".")


def check_file_type(filename: str, content_type: Optional[str], allowed: Iterable[str]) -> None:
    allowed = list(allowed)
    extension = file_extension(filename)
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    # The MIME type has to belong to the file's own extension
    if extension not in allowed or mime not in MIME_TYPES.get(extension, ()):
        raise InvalidFileType(
            "Invalid file type",
            f"Only {', '.join(allowed)} files are allowed",
            fileName=filename,
            mimeType=content_type,
        )


def check_file_size(size: int, limit: int) -> None:
    if size > limit:
        raise FileTooLarge(
            "File too large",
            f"Maximum upload size is {limit} bytes",
            maxBytes=limit,
        )
