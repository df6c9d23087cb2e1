"""
device_auth.auth.passwords

One-way password hashing (bcrypt).

Responsibilities:
- Hash passwords with a salted, tunable-cost function; the salt lives inside
  the hash so nothing else needs storing.
- Verify a password against a stored hash with constant-time comparison.
- Spend the same bcrypt work for unknown accounts as for wrong passwords.

All methods are blocking (tens of milliseconds at the default cost); async
callers run them through `asyncio.to_thread`.
"""

from __future__ import annotations

import bcrypt

from device_auth.errors import HashingFailure, WrongPassword


class CredentialManager:
    def __init__(self, *, rounds: int = 12) -> None:
        self._rounds = rounds
        # Same cost as real hashes so an unknown email is not measurably faster.
        self._dummy_hash = self.hash("device-auth-timing-dummy")

    def hash(self, password: str) -> str:
        try:
            return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode(
                "ascii"
            )
        except (ValueError, TypeError) as e:
            # bcrypt rejects passwords over 72 bytes and NUL bytes.
            raise HashingFailure(f"failed to hash password: {type(e).__name__}") from e

    def verify(self, password_hash: str, password: str) -> None:
        try:
            ok = bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError):
            ok = False
        if not ok:
            raise WrongPassword()

    def equalize(self, password: str) -> None:
        try:
            self.verify(self._dummy_hash, password)
        except WrongPassword:
            pass


# --- Module Notes -----------------------------------------------------------
# bcrypt.checkpw compares digests in constant time; do not replace it with `==`.
