"""
device_auth.services.auth_service

The three user-facing authentication flows.

Responsibilities:
- Register: hash the password and persist a new account.
- Login: check credentials, bind the device, issue a device-bound token.
- RefreshToken: trade a valid token for a fresh one from the same device.

Every flow is a short linear sequence with early exit on the first failure.
Each storage step runs in its own session under its own deadline; nothing is
cached between calls and nothing is retried.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from device_auth.auth.jwt import TokenCodec
from device_auth.auth.passwords import CredentialManager
from device_auth.db.repositories.accounts import AccountRepo
from device_auth.errors import (
    AccountNotFound,
    AddressMismatch,
    AlreadyExists,
    DeviceNotFound,
    HashingFailure,
    InvalidCredentials,
    StorageInternal,
    TokenError,
    WrongPassword,
)
from device_auth.observability.logging import get_logger, mask_email
from device_auth.services.deadlines import storage_step
from device_auth.services.devices import DeviceRegistry

log = get_logger(__name__)


class AuthService:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        credentials: CredentialManager,
        tokens: TokenCodec,
        devices: DeviceRegistry,
        token_ttl: timedelta,
        storage_timeout_seconds: float = 3.0,
    ) -> None:
        self._sessions = session_factory
        self._credentials = credentials
        self._tokens = tokens
        self._devices = devices
        self._token_ttl = token_ttl
        self._timeout = storage_timeout_seconds

    async def register(self, *, email: str, password: str) -> int:
        op = "AuthService.register"
        flog = log.bind(op=op, email=mask_email(email))
        flog.info("registering user")

        try:
            password_hash = await asyncio.to_thread(self._credentials.hash, password)
        except HashingFailure as e:
            flog.error("failed to hash password", error=e.message)
            raise

        try:
            async with storage_step(op, self._timeout):
                async with self._sessions() as session, session.begin():
                    account = await AccountRepo(session).create(
                        email=email, password_hash=password_hash
                    )
        except AlreadyExists:
            flog.warning("user already exists")
            raise

        flog.info("user registered", user_id=account.id)
        return account.id

    async def login(self, *, email: str, password: str, device_id: str) -> str:
        op = "AuthService.login"
        flog = log.bind(op=op, email=mask_email(email))
        flog.info("attempting to login user")

        async with storage_step(op, self._timeout):
            async with self._sessions() as session:
                account = await AccountRepo(session).get_by_email(email)

        if account is None:
            await asyncio.to_thread(self._credentials.equalize, password)
            flog.warning("user not found")
            raise InvalidCredentials()

        try:
            await asyncio.to_thread(self._credentials.verify, account.password_hash, password)
        except WrongPassword:
            flog.info("wrong password")
            raise

        try:
            await self._devices.bind(account.email, device_id)
        except AccountNotFound as e:
            # The account was read a moment ago; losing it now is a consistency anomaly.
            flog.error("account disappeared during device bind")
            raise StorageInternal(f"{op}: account vanished before device bind") from e

        flog.info("successfully logged in")
        return self._tokens.issue(email=account.email, device_id=device_id, ttl=self._token_ttl)

    async def refresh_token(self, *, device_id: str, access_token: str) -> str:
        op = "AuthService.refresh_token"
        flog = log.bind(op=op)
        flog.info("attempting to refresh token")

        try:
            identity = self._tokens.validate(access_token)
        except TokenError as e:
            flog.warning("token rejected", reason=e.error_code)
            raise

        flog = flog.bind(email=mask_email(identity.email))
        # A token replayed from another device must not be refreshable.
        if identity.device_id != device_id:
            flog.warning("address is mismatch")
            raise AddressMismatch()

        if not await self._devices.is_bound(identity.email, device_id):
            flog.warning("device not found")
            raise DeviceNotFound()

        return self._tokens.issue(email=identity.email, device_id=device_id, ttl=self._token_ttl)


# --- Module Notes -----------------------------------------------------------
# Refresh never asks for the password: it relies on the token signature and on
# the device check above.
