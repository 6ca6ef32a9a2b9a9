"""Error types and JSON error envelopes.

HTTP error responses share one shape:
    {
        "code": "http_404",
        "message": "Plan not found",
        "details": null,
        "request_id": "uuid"
    }
"""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Startup configuration is unusable; the process must not serve."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + ", ".join(self.errors))


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_envelope(
    request: Request, status_code: int, code: str, message: str, details: object = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": _request_id(request),
        },
    )


def register_error_handlers(app: object) -> None:
    @app.exception_handler(HTTPException)  # type: ignore[arg-type]
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = detail if isinstance(detail, str) else "Request failed"
        details = None if isinstance(detail, str) else detail
        return error_envelope(request, exc.status_code, code, message, details)

    @app.exception_handler(RequestValidationError)  # type: ignore[arg-type]
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(
            "Validation error on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        return error_envelope(
            request, 422, "validation_error", "Validation error", jsonable_encoder(exc.errors())
        )

    @app.exception_handler(Exception)  # type: ignore[arg-type]
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        return error_envelope(request, 500, "internal_error", "Internal server error")
