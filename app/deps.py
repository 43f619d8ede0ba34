from __future__ import annotations

from fastapi import Depends, Request

from .config import Settings
from .providers.cohere import CohereProvider
from .providers.gcs import GcsStorageProvider


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def get_storage_provider(request: Request) -> GcsStorageProvider:
    return request.app.state.storage_provider


def get_cohere_provider(settings: Settings = Depends(get_app_settings)) -> CohereProvider:
    return CohereProvider(
        api_key=settings.cohere_api_key or "",
        base_url=settings.cohere_base_url,
        timeout=settings.request_timeout_seconds,
    )
