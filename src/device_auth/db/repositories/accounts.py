"""
device_auth.db.repositories.accounts

Repository for `Account` entities.

Responsibilities:
- Create accounts, reporting duplicate emails as `AlreadyExists`.
- Look accounts up by email.
- Take the per-account write lock used to serialize device binds.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from device_auth.db.models import Account
from device_auth.errors import AlreadyExists


class AccountRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, email: str, password_hash: str) -> Account:
        account = Account(email=email, password_hash=password_hash, device_bind_revision=0)
        self._session.add(account)
        try:
            await self._session.flush()
        except IntegrityError as e:
            # The only unique column besides the PK is email.
            raise AlreadyExists() from e
        return account

    async def get_by_email(self, email: str) -> Account | None:
        stmt = select(Account).where(Account.email == email)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def lock_for_device_bind(self, email: str) -> bool:
        """
        Must be the first statement of the bind transaction: the UPDATE takes a row
        lock (PostgreSQL) or the database write lock (SQLite) and holds it until
        commit, so a concurrent bind for the same account waits here.
        Returns False when the account does not exist.
        """

        stmt = (
            update(Account)
            .where(Account.email == email)
            .values(device_bind_revision=Account.device_bind_revision + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0
