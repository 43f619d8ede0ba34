"""Failure kinds returned by the proxy and the HTTP status each maps to."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import status

logger = logging.getLogger("proxy-inference-server.errors")


class ProxyError(Exception):
    """Base for every failure rendered as an error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, error: str, message: Optional[str] = None, **extra: Any):
        super().__init__(message or error)
        self.error = error
        self.message = message
        self.extra: Dict[str, Any] = extra


class MissingField(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST


class MissingFile(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidFileType(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST


class FileTooLarge(InvalidFileType):
    pass


class InvalidRequest(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST


class ServiceUnavailable(ProxyError):
    """Required configuration for an upstream is absent."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class NotFound(ProxyError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamFailure(ProxyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def upstream_failure(error: str) -> Iterator[None]:
    """Re-raise anything thrown by an upstream call as UpstreamFailure(error)."""
    try:
        yield
    except ProxyError:
        raise
    except Exception as exc:
        logger.error(f"{error}: {exc}")
        raise UpstreamFailure(error, str(exc)) from exc
