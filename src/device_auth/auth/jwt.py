"""
device_auth.auth.jwt

Device-bound bearer tokens (HMAC-signed JWTs).

Responsibilities:
- Issue short-lived tokens asserting {email, deviceAddress, iat, exp}.
- Validate tokens and report the most specific failure cause.

Validation order:
  1. structure          -> TokenMalformed
  2. header algorithm   -> TokenInvalidSignMethod (anything but the configured HMAC, incl. "none")
  3. signature          -> TokenInvalidSignature
  4. claims             -> TokenMissingClaims / TokenIncorrectExpiration
  5. exp > now          -> TokenExpired

The server keeps no session table: validity is signature + clock only.
"""

from __future__ import annotations

import math
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidAlgorithmError, InvalidSignatureError, InvalidTokenError

from device_auth.auth.models import TokenIdentity
from device_auth.errors import (
    TokenExpired,
    TokenIncorrectExpiration,
    TokenInvalidSignature,
    TokenInvalidSignMethod,
    TokenMalformed,
    TokenMissingClaims,
)

EMAIL_CLAIM = "email"
DEVICE_CLAIM = "deviceAddress"

# Claim checks are done by `TokenCodec.validate` so each one maps to its own error.
_DECODE_OPTIONS: dict[str, Any] = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_iss": False,
    "verify_aud": False,
    "verify_jti": False,
    "verify_sub": False,
}


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    secret: str


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class TokenCodec:
    def __init__(self, cfg: JwtConfig, *, clock: Callable[[], datetime] = _utcnow) -> None:
        if not cfg.alg.startswith("HS"):
            raise ValueError(f"unsupported signing algorithm: {cfg.alg}")
        self._cfg = cfg
        self._clock = clock

    def issue(self, *, email: str, device_id: str, ttl: timedelta) -> str:
        now = self._clock()
        payload: dict[str, Any] = {
            EMAIL_CLAIM: email,
            DEVICE_CLAIM: device_id,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            # Distinguishes tokens minted for the same identity within one second.
            "jti": secrets.token_urlsafe(8),
        }
        return jwt.encode(payload, self._cfg.secret, algorithm=self._cfg.alg)

    def validate(self, token: str) -> TokenIdentity:
        try:
            header = jwt.get_unverified_header(token)
        except InvalidTokenError as e:
            raise TokenMalformed() from e

        if header.get("alg") != self._cfg.alg:
            raise TokenInvalidSignMethod()

        try:
            claims = jwt.decode(
                token,
                self._cfg.secret,
                algorithms=[self._cfg.alg],
                options=_DECODE_OPTIONS,
            )
        # InvalidSignatureError subclasses InvalidTokenError; keep it first.
        except InvalidSignatureError as e:
            raise TokenInvalidSignature() from e
        except InvalidAlgorithmError as e:
            raise TokenInvalidSignMethod() from e
        # DecodeError and any remaining registered-claim failure.
        except InvalidTokenError as e:
            raise TokenMalformed() from e

        email = claims.get(EMAIL_CLAIM)
        device_id = claims.get(DEVICE_CLAIM)
        if not isinstance(email, str) or not email or not isinstance(device_id, str) or not device_id:
            raise TokenMissingClaims()

        exp = claims.get("exp")
        if (
            isinstance(exp, bool)
            or not isinstance(exp, int | float)
            or not math.isfinite(exp)
        ):
            raise TokenIncorrectExpiration()
        if exp <= self._clock().timestamp():
            raise TokenExpired()

        return TokenIdentity(email=email, device_id=device_id)


# --- Module Notes -----------------------------------------------------------
# The claim name `deviceAddress` is part of the wire format shared with clients.
