"""
device_auth.auth.models

Auth domain models.

Responsibilities:
- Define the identity carried by a validated token (`TokenIdentity`).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TokenIdentity:
    """
    Who a token speaks for and which device it was issued to.
    """

    email: str
    device_id: str


# --- Module Notes -----------------------------------------------------------
# The gate stores this on `request.state.identity` for protected operations.
