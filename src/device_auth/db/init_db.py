"""
device_auth.db.init_db

DB initialization helpers (dev/test convenience).

Responsibilities:
- Create the accounts and device_bindings tables for local development and tests.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from device_auth.db import models  # noqa: F401  # registers tables on Base.metadata
from device_auth.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create tables if they don't exist.
    Production databases are provisioned ahead of deployment.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
