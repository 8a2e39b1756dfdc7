"""Shared error helpers and codes."""

from __future__ import annotations

from typing import Any

from starlette.responses import JSONResponse


class ErrorCode:
    MISSING_FIELD = "missing_field"
    BAD_REQUEST = "bad_request"
    CONFIGURATION = "configuration_error"
    CRYPTO_UNAVAILABLE = "crypto_unavailable"
    ENCODING = "encoding_error"
    SIGNING_FAILED = "signing_failed"


def error_response(
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a JSON error body of the form ``{"error": message, "code": code}``."""
    payload: dict[str, Any] = {
        "error": message,
        "code": code,
    }
    if details:
        payload["details"] = details
    return JSONResponse(payload, status_code=status_code)
