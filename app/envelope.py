from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


def isoformat(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a trailing Z."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp() -> str:
    return isoformat(datetime.now(timezone.utc))


def success(**payload: Any) -> Dict[str, Any]:
    return {"success": True, **payload, "timestamp": timestamp()}


def error_body(error: str, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message if message is not None else error}
    body.update(extra)
    body["timestamp"] = timestamp()
    return body


def error_response(status_code: int, error: str, message: Optional[str] = None, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(error, message, **extra))
