"""
device_auth.db.base

SQLAlchemy declarative base.

Responsibilities:
- Provide a shared DeclarativeBase for the account and device-binding models.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
