from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, validator
from pydantic_settings import BaseSettings

from .secrets import get_secret_from_manager, should_use_secret_manager

logger = logging.getLogger("proxy-inference-server.config")

DEFAULT_ALLOWED_EXTENSIONS = [
    "jpeg", "jpg", "png", "gif", "pdf", "txt", "doc", "docx", "xls", "xlsx", "csv", "zip", "rar",
]


class Settings(BaseSettings):
    app_name: str = "proxy-inference-server"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Object storage (Google Cloud Storage); GOOGLE_CLOUD_* are the legacy names
    gcs_bucket_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gcs_bucket_name", "google_cloud_bucket_name"),
    )
    gcs_project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gcs_project_id", "google_cloud_project_id"),
    )
    gcs_key_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gcs_key_file", "google_application_credentials"),
    )
    gcs_client_email: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gcs_client_email", "google_cloud_client_email"),
    )
    gcs_private_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gcs_private_key", "google_cloud_private_key"),
    )

    # Text generation (Cohere); declared after the storage fields so the
    # Secret Manager lookup can reuse gcs_project_id
    cohere_secret_name: str = "cohere-api-key"
    cohere_api_key: Optional[str] = None
    cohere_base_url: str = "https://api.cohere.ai/v1/generate"
    request_timeout_seconds: int = 90

    # Uploads
    upload_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    allowed_upload_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS))
    upload_url_ttl_seconds: int = 24 * 60 * 60
    download_url_ttl_seconds: int = 60 * 60

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    @property
    def generation_configured(self) -> bool:
        return bool(self.cohere_api_key)

    @property
    def storage_configured(self) -> bool:
        return bool(self.gcs_bucket_name)

    @property
    def inline_credentials(self) -> bool:
        return bool(self.gcs_client_email and self.gcs_private_key)

    @validator("cohere_api_key", pre=True, always=True)
    def _load_cohere_api_key(cls, value: object, values: dict) -> Optional[str]:
        if should_use_secret_manager() and not value:
            logger.info("Loading cohere_api_key from Secret Manager")
            project_id = values.get("gcs_project_id")
            secret_name = values.get("cohere_secret_name") or "cohere-api-key"
            try:
                return get_secret_from_manager(secret_name, project_id).strip()
            except Exception as e:
                logger.error(f"Failed to load cohere_api_key from Secret Manager: {e}")
                raise
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @validator("gcs_private_key", pre=True)
    def _unescape_private_key(cls, value: object) -> object:
        # Keys pasted into a single env line carry literal "\n" sequences
        if isinstance(value, str):
            return value.replace("\\n", "\n")
        return value

    @validator("allowed_upload_extensions")
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        return [ext.lower().lstrip(".") for ext in value if ext.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
