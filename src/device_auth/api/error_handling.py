"""
device_auth.api.error_handling

Boundary mapping from domain errors to HTTP responses.

Responsibilities:
- Render every `AuthError` as `{"error": {"code", "message"}}` with its status.
- Keep infrastructure details (storage/hashing messages) out of responses.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from device_auth.errors import AuthError, InternalError
from device_auth.observability.logging import get_logger

log = get_logger(__name__)


def error_body(code: str, message: str) -> dict[str, dict[str, str]]:
    return {"error": {"code": code, "message": message}}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        if isinstance(exc, InternalError) or exc.status_code >= 500:
            # Full detail goes to the log only.
            log.error(
                "internal error",
                error_type=type(exc).__name__,
                error=exc.message,
            )
            return JSONResponse(
                status_code=500,
                content=error_body("internal", InternalError.public_message),
            )

        log.warning(
            "request rejected",
            error_type=type(exc).__name__,
            error_code=exc.error_code,
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.public_message),
        )


# --- Module Notes -----------------------------------------------------------
# Path/method are already bound into the log context by RequestContextMiddleware.
