"""
device_auth.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with a bounded DB round-trip.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from device_auth.api.deps import db_session

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", response_model=None)
async def readyz(
    request: Request,
    session: AsyncSession = Depends(db_session),
) -> dict[str, str] | JSONResponse:
    timeout = request.app.state.settings.storage_timeout_seconds
    try:
        async with asyncio.timeout(timeout):
            await session.execute(text("SELECT 1"))
    except (TimeoutError, SQLAlchemyError):
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating.
