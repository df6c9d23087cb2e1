"""
tests.conftest

Shared fixtures for the device_auth test-suite.

Responsibilities:
- Per-test settings pointing at a file-backed SQLite database in tmp_path
  (file-backed so concurrent sessions really use separate connections).
- Engine/sessionmaker, service and HTTP client fixtures.
- A controllable clock for expiry tests.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from device_auth.api.app import create_app
from device_auth.auth.jwt import JwtConfig, TokenCodec
from device_auth.auth.passwords import CredentialManager
from device_auth.db.init_db import init_db
from device_auth.db.repositories.accounts import AccountRepo
from device_auth.db.session import create_engine, create_sessionmaker
from device_auth.services.auth_service import AuthService
from device_auth.services.devices import DeviceRegistry
from device_auth.settings import Settings

TEST_SECRET = "test-secret-0123456789abcdef0123456789"


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}",
        jwt_secret=TEST_SECRET,
        password_hash_rounds=4,
        device_sweep_interval_seconds=0,
    )


@pytest_asyncio.fixture
async def sessionmaker(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def registry_clock() -> FakeClock:
    # Naive UTC, matching the storage convention.
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def token_clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def credentials() -> CredentialManager:
    return CredentialManager(rounds=4)


@pytest.fixture
def tokens() -> TokenCodec:
    return TokenCodec(JwtConfig(alg="HS256", secret=TEST_SECRET))


@pytest.fixture
def sign_claims() -> Callable[[dict], str]:
    """HS256-sign arbitrary claims with the test secret, skipping any encode-side claim checks."""

    def _b64(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    def _sign(claims: dict) -> str:
        header = _b64(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
        payload = _b64(json.dumps(claims).encode())
        signing_input = f"{header}.{payload}"
        mac = hmac.new(TEST_SECRET.encode(), signing_input.encode(), hashlib.sha256).digest()
        return f"{signing_input}.{_b64(mac)}"

    return _sign


@pytest.fixture
def registry(
    sessionmaker: async_sessionmaker[AsyncSession], registry_clock: FakeClock
) -> DeviceRegistry:
    return DeviceRegistry(session_factory=sessionmaker, clock=registry_clock)


@pytest.fixture
def service(
    sessionmaker: async_sessionmaker[AsyncSession],
    credentials: CredentialManager,
    tokens: TokenCodec,
    registry: DeviceRegistry,
) -> AuthService:
    return AuthService(
        session_factory=sessionmaker,
        credentials=credentials,
        tokens=tokens,
        devices=registry,
        token_ttl=timedelta(minutes=5),
    )


@pytest.fixture
def create_account(sessionmaker: async_sessionmaker[AsyncSession]):
    async def _create(email: str, password_hash: str = "x") -> int:
        async with sessionmaker() as session, session.begin():
            account = await AccountRepo(session).create(email=email, password_hash=password_hash)
        return account.id

    return _create


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run the lifespan; enter it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
