"""
device_auth.db.models

Persistence schema for accounts and device bindings.

Responsibilities:
- Account: identity + password hash.
- DeviceBinding: (email, device_id) pair with a sliding expiry window.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from device_auth.db.base import Base


def utcnow() -> datetime:
    # Naive UTC timestamps; every comparison in this package uses the same convention.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Case-sensitive as stored.
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    registered_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    # Bumped at the start of every bind transaction to take the account's write lock.
    device_bind_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    devices: Mapped[list[DeviceBinding]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DeviceBinding(Base):
    __tablename__ = "device_bindings"

    email: Mapped[str] = mapped_column(
        String(320),
        ForeignKey("accounts.email", ondelete="CASCADE"),
        primary_key=True,
    )
    device_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    registered_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    account: Mapped[Account] = relationship(back_populates="devices")

    __table_args__ = (Index("ix_device_bindings_expires_at", "expires_at"),)


# --- Module Notes -----------------------------------------------------------
# A binding is live while `expires_at > now`; the quota counts live bindings only.
