"""
device_auth.api.app

FastAPI app factory for the authentication service.

Responsibilities:
- Build the FastAPI application and register routers, middleware and the
  bearer-token gate.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Wire the services and the periodic device-expiry sweep.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from device_auth.api.error_handling import register_exception_handlers
from device_auth.api.routers.auth import router as auth_router
from device_auth.api.routers.health import router as health_router
from device_auth.auth.authorizer import RequestAuthorizer
from device_auth.auth.jwt import JwtConfig, TokenCodec
from device_auth.auth.passwords import CredentialManager
from device_auth.db.init_db import init_db
from device_auth.db.session import create_engine, create_sessionmaker
from device_auth.observability.logging import configure_logging, get_logger
from device_auth.observability.middleware import CallRecorder, RequestContextMiddleware
from device_auth.services.auth_service import AuthService
from device_auth.services.devices import DeviceRegistry
from device_auth.settings import Settings

log = get_logger(__name__)


async def _sweep_expired_devices(devices: DeviceRegistry, interval_seconds: int) -> None:
    # Cancelled from the lifespan on shutdown; a failed sweep waits for the next tick.
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await devices.purge_expired()
        except Exception:
            log.exception("device sweep failed")


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    # Pure, IO-free pieces are built eagerly so the gate exists before the first request.
    tokens = TokenCodec(JwtConfig(alg=settings.jwt_alg, secret=settings.jwt_secret))
    authorizer = RequestAuthorizer(
        tokens=tokens,
        protected_operations=settings.protected_operations,
    )
    recorder = CallRecorder()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            await init_db(engine)

        devices = DeviceRegistry(
            session_factory=sessionmaker,
            quota=settings.device_quota,
            binding_ttl=settings.device_binding_ttl,
            timeout_seconds=settings.storage_timeout_seconds,
        )
        app.state.engine = engine
        app.state.sessionmaker = sessionmaker
        app.state.devices = devices
        app.state.auth_service = AuthService(
            session_factory=sessionmaker,
            credentials=CredentialManager(rounds=settings.password_hash_rounds),
            tokens=tokens,
            devices=devices,
            token_ttl=settings.token_ttl,
            storage_timeout_seconds=settings.storage_timeout_seconds,
        )

        sweep: asyncio.Task[None] | None = None
        if settings.device_sweep_interval_seconds > 0:
            sweep = asyncio.create_task(
                _sweep_expired_devices(devices, settings.device_sweep_interval_seconds)
            )
        try:
            yield
        finally:
            if sweep is not None:
                sweep.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweep
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Device-bound Authentication Service",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        dependencies=[Depends(authorizer)],
    )
    app.state.settings = settings
    app.state.tokens = tokens
    app.state.authorizer = authorizer
    app.state.call_recorder = recorder

    app.add_middleware(RequestContextMiddleware, recorder=recorder)
    register_exception_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; the flows live in
# `device_auth.services`.
