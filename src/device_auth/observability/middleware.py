"""
device_auth.observability.middleware

HTTP middleware for request-scoped logging context and call instrumentation.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata into structlog contextvars.
- Record operation name, wall-clock duration and outcome for every call.
"""

from __future__ import annotations

import time
import uuid
from collections import Counter, deque
from dataclasses import dataclass

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from device_auth.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CallRecord:
    operation: str
    duration_ms: float
    status_code: int

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class CallRecorder:
    """
    In-process sink for call records: recent history plus per-operation
    success/failure counters.
    """

    def __init__(self, *, history: int = 1000) -> None:
        self._recent: deque[CallRecord] = deque(maxlen=history)
        self._outcomes: Counter[tuple[str, str]] = Counter()

    def record(self, rec: CallRecord) -> None:
        self._recent.append(rec)
        self._outcomes[(rec.operation, "success" if rec.ok else "failure")] += 1

    def recent(self) -> list[CallRecord]:
        return list(self._recent)

    def count(self, operation: str, outcome: str) -> int:
        return self._outcomes[(operation, outcome)]


def _operation_name(request: Request) -> str:
    # The router stores the matched route in the (shared) scope; unmatched paths fall back to the URL.
    route = request.scope.get("route")
    return getattr(route, "name", None) or request.url.path


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Ensures every request has a request id
    - Binds request-scoped contextvars for structured logs
    - Times the call and records its outcome; never alters the response
    """

    def __init__(self, app: ASGIApp, *, recorder: CallRecorder) -> None:
        super().__init__(app)
        self._recorder = recorder

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
        finally:
            rec = CallRecord(
                operation=_operation_name(request),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                status_code=status_code,
            )
            self._recorder.record(rec)
            if rec.ok:
                log.info(
                    "method completed successfully",
                    operation=rec.operation,
                    duration_ms=round(rec.duration_ms, 3),
                    status_code=rec.status_code,
                )
            else:
                log.warning(
                    "method failed",
                    operation=rec.operation,
                    duration_ms=round(rec.duration_ms, 3),
                    status_code=rec.status_code,
                )
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# Authorization is not done here; see `device_auth.auth.authorizer`.
