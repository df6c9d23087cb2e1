"""
device_auth.services.deadlines

Bounded storage steps.

Responsibilities:
- Give each storage-touching step a fresh deadline.
- Translate timeouts and driver errors into opaque internal errors, logged
  with the step name. Domain errors raised inside the step pass through.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError

from device_auth.errors import StorageInternal, StorageTimeout
from device_auth.observability.logging import get_logger

log = get_logger(__name__)


@asynccontextmanager
async def storage_step(op: str, timeout_seconds: float) -> AsyncIterator[None]:
    try:
        async with asyncio.timeout(timeout_seconds):
            yield
    except TimeoutError as e:
        log.error("storage step timed out", op=op, timeout_seconds=timeout_seconds)
        raise StorageTimeout(f"{op}: timed out after {timeout_seconds}s") from e
    except SQLAlchemyError as e:
        log.error("storage step failed", op=op, error=str(e))
        raise StorageInternal(f"{op}: {type(e).__name__}") from e


# --- Module Notes -----------------------------------------------------------
# Nothing is retried here; retry policy belongs to the caller.
