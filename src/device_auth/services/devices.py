"""
device_auth.services.devices

Device registry: which devices may act for an account.

Responsibilities:
- Bind a device to an account, enforcing the per-account quota atomically.
- Answer whether a (email, device) binding is still live.
- Remove expired bindings when the periodic sweep asks for it.

Bind is idempotent: re-binding a live pair only renews its expiry window and
never consumes a quota slot. A new pair needs a free slot; when the account is
full the transaction is rolled back and existing bindings are left untouched.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from device_auth.db.models import utcnow
from device_auth.db.repositories.accounts import AccountRepo
from device_auth.db.repositories.devices import DeviceRepo
from device_auth.errors import AccountNotFound, QuotaExceeded
from device_auth.observability.logging import get_logger, mask_email
from device_auth.services.deadlines import storage_step

log = get_logger(__name__)


class DeviceRegistry:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        quota: int = 5,
        binding_ttl: timedelta = timedelta(days=7),
        timeout_seconds: float = 3.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessions = session_factory
        self._quota = quota
        self._ttl = binding_ttl
        self._timeout = timeout_seconds
        self._clock = clock

    @property
    def quota(self) -> int:
        return self._quota

    async def bind(self, email: str, device_id: str) -> None:
        op = "DeviceRegistry.bind"
        async with storage_step(op, self._timeout):
            async with self._sessions() as session, session.begin():
                accounts = AccountRepo(session)
                devices = DeviceRepo(session)

                # Serializes concurrent binds for this account until commit/rollback.
                if not await accounts.lock_for_device_bind(email):
                    raise AccountNotFound()

                now = self._clock()
                expires_at = now + self._ttl
                binding = await devices.get(email, device_id)
                if binding is not None and binding.expires_at > now:
                    binding.expires_at = expires_at
                    log.info("device binding renewed", op=op, email=mask_email(email))
                    return

                live = await devices.count_live(email, now=now)
                if live >= self._quota:
                    log.warning(
                        "device limit exceeded", op=op, email=mask_email(email), live=live
                    )
                    raise QuotaExceeded()

                if binding is None:
                    await devices.add(
                        email=email,
                        device_id=device_id,
                        registered_at=now,
                        expires_at=expires_at,
                    )
                else:
                    # Expired but not yet swept: revive it as a fresh binding.
                    binding.registered_at = now
                    binding.expires_at = expires_at
                log.info("device bound", op=op, email=mask_email(email), live=live + 1)

    async def is_bound(self, email: str, device_id: str) -> bool:
        async with storage_step("DeviceRegistry.is_bound", self._timeout):
            async with self._sessions() as session:
                return await DeviceRepo(session).exists_live(email, device_id, now=self._clock())

    async def live_count(self, email: str) -> int:
        async with storage_step("DeviceRegistry.live_count", self._timeout):
            async with self._sessions() as session:
                return await DeviceRepo(session).count_live(email, now=self._clock())

    async def purge_expired(self) -> int:
        async with storage_step("DeviceRegistry.purge_expired", self._timeout):
            async with self._sessions() as session, session.begin():
                removed = await DeviceRepo(session).delete_expired(now=self._clock())
        log.info("expired device bindings purged", removed=removed)
        return removed


# --- Module Notes -----------------------------------------------------------
# `purge_expired` is only called by the background sweep started in the app
# lifespan; no request path depends on it having run.
