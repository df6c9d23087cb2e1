"""
tests.test_devices

DeviceRegistry quota, idempotency, expiry and concurrency.

Responsibilities:
- The quota is enforced atomically and never leaves partial state.
- Re-binding is free; expired bindings stop counting.
- Concurrent binds at the edge of the quota let exactly one through.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from device_auth.db.models import Account, DeviceBinding
from device_auth.db.repositories.devices import DeviceRepo
from device_auth.errors import AccountNotFound, QuotaExceeded
from device_auth.services.devices import DeviceRegistry

EMAIL = "a@x.com"


async def _rows(sessionmaker, email: str = EMAIL) -> int:
    async with sessionmaker() as session:
        stmt = select(func.count()).select_from(DeviceBinding).where(DeviceBinding.email == email)
        return int((await session.execute(stmt)).scalar_one())


@pytest.mark.asyncio
async def test_sixth_device_is_rejected_and_five_remain(
    registry: DeviceRegistry, create_account, sessionmaker
) -> None:
    await create_account(EMAIL)
    for i in range(5):
        await registry.bind(EMAIL, f"dev-{i}")

    with pytest.raises(QuotaExceeded):
        await registry.bind(EMAIL, "dev-5")

    assert await registry.live_count(EMAIL) == 5
    assert await _rows(sessionmaker) == 5
    assert not await registry.is_bound(EMAIL, "dev-5")
    for i in range(5):
        assert await registry.is_bound(EMAIL, f"dev-{i}")


@pytest.mark.asyncio
async def test_rebind_is_idempotent_and_renews_expiry(
    registry: DeviceRegistry, create_account, sessionmaker, registry_clock
) -> None:
    await create_account(EMAIL)
    await registry.bind(EMAIL, "dev-1")
    registry_clock.advance(timedelta(days=3))

    await registry.bind(EMAIL, "dev-1")

    assert await registry.live_count(EMAIL) == 1
    async with sessionmaker() as session:
        binding = await DeviceRepo(session).get(EMAIL, "dev-1")
    assert binding is not None
    assert binding.expires_at == registry_clock() + timedelta(days=7)


@pytest.mark.asyncio
async def test_rebind_succeeds_when_quota_is_full(
    registry: DeviceRegistry, create_account
) -> None:
    await create_account(EMAIL)
    for i in range(5):
        await registry.bind(EMAIL, f"dev-{i}")

    await registry.bind(EMAIL, "dev-3")

    assert await registry.live_count(EMAIL) == 5


@pytest.mark.asyncio
async def test_bind_without_account(registry: DeviceRegistry, sessionmaker) -> None:
    with pytest.raises(AccountNotFound):
        await registry.bind("ghost@x.com", "dev-1")
    assert await _rows(sessionmaker, "ghost@x.com") == 0


@pytest.mark.asyncio
async def test_quotas_are_per_account(registry: DeviceRegistry, create_account) -> None:
    await create_account(EMAIL)
    await create_account("b@x.com")
    for i in range(5):
        await registry.bind(EMAIL, f"dev-{i}")

    await registry.bind("b@x.com", "dev-0")

    assert await registry.live_count("b@x.com") == 1


@pytest.mark.asyncio
async def test_expired_bindings_free_their_slot(
    registry: DeviceRegistry, create_account, registry_clock
) -> None:
    await create_account(EMAIL)
    for i in range(5):
        await registry.bind(EMAIL, f"dev-{i}")

    registry_clock.advance(timedelta(days=7))

    assert not await registry.is_bound(EMAIL, "dev-0")
    assert await registry.live_count(EMAIL) == 0

    await registry.bind(EMAIL, "dev-new")
    # An expired row that was never swept is revived in place.
    await registry.bind(EMAIL, "dev-0")

    assert await registry.is_bound(EMAIL, "dev-0")
    assert await registry.live_count(EMAIL) == 2


@pytest.mark.asyncio
async def test_purge_expired_removes_only_expired_rows(
    registry: DeviceRegistry, create_account, sessionmaker, registry_clock
) -> None:
    await create_account(EMAIL)
    await registry.bind(EMAIL, "old-1")
    await registry.bind(EMAIL, "old-2")
    registry_clock.advance(timedelta(days=5))
    await registry.bind(EMAIL, "fresh")
    registry_clock.advance(timedelta(days=3))

    removed = await registry.purge_expired()

    assert removed == 2
    assert await _rows(sessionmaker) == 1
    assert await registry.is_bound(EMAIL, "fresh")


@pytest.mark.asyncio
async def test_concurrent_binds_cannot_both_take_the_last_slot(
    registry: DeviceRegistry, create_account
) -> None:
    await create_account(EMAIL)
    for i in range(4):
        await registry.bind(EMAIL, f"dev-{i}")

    results = await asyncio.gather(
        registry.bind(EMAIL, "race-a"),
        registry.bind(EMAIL, "race-b"),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], QuotaExceeded)
    assert await registry.live_count(EMAIL) == 5


@pytest.mark.asyncio
async def test_bindings_cascade_with_account(
    registry: DeviceRegistry, create_account, sessionmaker
) -> None:
    await create_account(EMAIL)
    await registry.bind(EMAIL, "dev-1")
    await registry.bind(EMAIL, "dev-2")

    async with sessionmaker() as session, session.begin():
        account = (
            await session.execute(select(Account).where(Account.email == EMAIL))
        ).scalar_one()
        await session.delete(account)

    assert await _rows(sessionmaker) == 0
