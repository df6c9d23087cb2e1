"""
device_auth.db.repositories.devices

Repository for `DeviceBinding` entities.

Responsibilities:
- Read a single binding and count/check live bindings for an account.
- Insert new bindings inside the caller's transaction.
- Bulk-delete expired bindings for the periodic sweep.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from device_auth.db.models import DeviceBinding


class DeviceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, email: str, device_id: str) -> DeviceBinding | None:
        return await self._session.get(DeviceBinding, (email, device_id))

    async def count_live(self, email: str, *, now: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(DeviceBinding)
            .where(DeviceBinding.email == email, DeviceBinding.expires_at > now)
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def exists_live(self, email: str, device_id: str, *, now: datetime) -> bool:
        stmt = select(DeviceBinding.device_id).where(
            DeviceBinding.email == email,
            DeviceBinding.device_id == device_id,
            DeviceBinding.expires_at > now,
        )
        return (await self._session.execute(stmt)).first() is not None

    async def add(
        self, *, email: str, device_id: str, registered_at: datetime, expires_at: datetime
    ) -> DeviceBinding:
        binding = DeviceBinding(
            email=email,
            device_id=device_id,
            registered_at=registered_at,
            expires_at=expires_at,
        )
        self._session.add(binding)
        await self._session.flush()
        return binding

    async def delete_expired(self, *, now: datetime) -> int:
        stmt = delete(DeviceBinding).where(DeviceBinding.expires_at <= now)
        result = await self._session.execute(stmt)
        return result.rowcount or 0


# --- Module Notes -----------------------------------------------------------
# "Live" means `expires_at > now`; callers pass `now` so one transaction sees one instant.
