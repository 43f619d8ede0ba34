from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Settings, get_settings
from .deps import get_app_settings
from .envelope import error_response, success, timestamp
from .errors import InvalidRequest, ProxyError, UpstreamFailure
from .providers.cohere import CohereProvider
from .providers.gcs import GcsStorageProvider
from .routers import generation, storage
from .schemas import DataRequest

logger = logging.getLogger("proxy-inference-server")
logging.basicConfig(level=logging.INFO)

STARTED_AT = time.monotonic()

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /api/health",
    "GET /api/models",
    "GET /api/docs",
    "POST /api/data",
    "POST /api/cohere/inference",
    "POST /api/gcs/upload",
    "GET /api/gcs/download/:fileName",
    "GET /api/gcs/files",
    "DELETE /api/gcs/files/:fileName",
    "GET /api/gcs/files/:fileName/metadata",
]

ENDPOINT_DOCS = {
    "GET /": "Server status and version info",
    "GET /api/health": "Health check with service status",
    "GET /api/models": "Available AI models information",
    "GET /api/docs": "This API documentation",
    "POST /api/data": "Example endpoint that accepts JSON data",
    "POST /api/cohere/inference": "Cohere AI text generation",
    "POST /api/gcs/upload": "Upload a file (multipart field 'file') and get a 24h signed URL",
    "GET /api/gcs/download/:fileName": "Get a 1h signed download URL for a stored file",
    "GET /api/gcs/files": "List all files in the bucket",
    "DELETE /api/gcs/files/:fileName": "Delete a stored file",
    "GET /api/gcs/files/:fileName/metadata": "Get metadata for a stored file",
}

CATCH_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    base = f"http://localhost:{settings.port}"
    logger.info(f"Proxy AI Inference Server is running on port {settings.port}")
    logger.info(f"Health check: {base}/api/health")
    logger.info(f"API docs: {base}/api/docs")
    logger.info(
        "upstream configuration",
        extra={
            "cohere_configured": settings.generation_configured,
            "gcs_configured": settings.storage_configured,
        },
    )
    yield


def _configured(flag: bool) -> str:
    return "configured" if flag else "not configured"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage_provider = GcsStorageProvider(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.middleware("http")
    async def add_app_header(request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers["X-App"] = settings.app_name
        return response

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        if not isinstance(exc, UpstreamFailure):
            logger.warning(
                "request rejected",
                extra={"path": request.url.path, "error": exc.error, "status_code": exc.status_code},
            )
        return error_response(exc.status_code, exc.error, exc.message, **exc.extra)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = InvalidRequest("Invalid request", "Request body failed validation")
        return error_response(
            error.status_code, error.error, error.message, details=jsonable_encoder(exc.errors())
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error", extra={"path": request.url.path})
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!", str(exc)
        )

    @app.get("/")
    async def root():
        return {
            "message": "Proxy AI Inference Server is running!",
            "version": __version__,
            "timestamp": timestamp(),
        }

    @app.get("/api/health")
    async def health(settings: Settings = Depends(get_app_settings)):
        return {
            "status": "OK",
            "uptime": time.monotonic() - STARTED_AT,
            "timestamp": timestamp(),
            "services": {
                "generation": _configured(settings.generation_configured),
                "storage": _configured(settings.storage_configured),
            },
        }

    @app.get("/api/models")
    async def models():
        return {
            "cohere": {
                "models": list(CohereProvider.MODELS),
                "endpoint": "/api/cohere/inference",
                "description": "Cohere Command models for text generation",
            },
            "timestamp": timestamp(),
        }

    @app.get("/api/docs")
    async def docs():
        return {
            "endpoints": ENDPOINT_DOCS,
            "examples": {
                "cohere_inference": {
                    "method": "POST",
                    "url": "/api/cohere/inference",
                    "body": {
                        "prompt": "Write a short story about a robot",
                        "model": "command",
                        "max_tokens": 150,
                        "temperature": 0.7,
                    },
                },
                "gcs_upload": {
                    "method": "POST",
                    "url": "/api/gcs/upload",
                    "content_type": "multipart/form-data",
                    "form_field": "file",
                    "allowed_types": settings.allowed_upload_extensions,
                    "max_bytes": settings.upload_max_bytes,
                },
                "gcs_download": {"method": "GET", "url": "/api/gcs/download/1700000000000-abc123def456.pdf"},
            },
            "timestamp": timestamp(),
        }

    @app.post("/api/data")
    async def receive_data(payload: Optional[DataRequest] = None):
        return success(
            message="Data received successfully",
            receivedData=payload.data if payload else None,
        )

    app.include_router(generation.router)
    app.include_router(storage.router)

    # Registered last so it only sees requests no other route matched
    @app.api_route("/{path:path}", methods=CATCH_ALL_METHODS, include_in_schema=False)
    async def route_not_found(request: Request, path: str):
        original_url = request.url.path
        if request.url.query:
            original_url = f"{original_url}?{request.url.query}"
        return error_response(
            status.HTTP_404_NOT_FOUND,
            "Route not found",
            f"Cannot {request.method} {original_url}",
            path=original_url,
            available_endpoints=AVAILABLE_ENDPOINTS,
        )

    return app


app = create_app()
