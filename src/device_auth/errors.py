"""
device_auth.errors

Error taxonomy for the authentication core.

Responsibilities:
- Give every failure a stable identity (`error_code`) and an HTTP status.
- Separate business errors (surfaced as-is) from infrastructure errors
  (surfaced as an opaque internal failure).

Clients branch on `error_code`: an expired token means "refresh silently",
a malformed or forged one means "log in again", a quota error means "show the
too-many-devices message".
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by the authentication core."""

    status_code: int = 500
    error_code: str = "internal"
    public_message: str = "internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


# --- Accounts & credentials ---------------------------------------------------


class AlreadyExists(AuthError):
    status_code = 409
    error_code = "already_exists"
    public_message = "user already exists"


class AccountNotFound(AuthError):
    status_code = 404
    error_code = "account_not_found"
    public_message = "user not found"


class InvalidCredentials(AuthError):
    """Email/password pair rejected. Unknown email and wrong password look the same."""

    status_code = 401
    error_code = "invalid_credentials"
    public_message = "invalid credentials"


class WrongPassword(InvalidCredentials):
    pass


# --- Devices -----------------------------------------------------------------


class QuotaExceeded(AuthError):
    status_code = 429
    error_code = "device_limit_exceeded"
    public_message = "device limit exceeded"


class DeviceNotFound(AuthError):
    status_code = 404
    error_code = "device_not_found"
    public_message = "device not found"


class AddressMismatch(AuthError):
    """Token was issued to a different device than the one refreshing it."""

    status_code = 412
    error_code = "address_mismatch"
    public_message = "address mismatch"


# --- Tokens ------------------------------------------------------------------


class TokenError(AuthError):
    status_code = 401
    error_code = "token_invalid"
    public_message = "invalid token"


class TokenMalformed(TokenError):
    error_code = "token_malformed"
    public_message = "malformed token"


class TokenInvalidSignMethod(TokenError):
    error_code = "token_invalid_sign_method"
    public_message = "invalid signature method"


class TokenInvalidSignature(TokenError):
    error_code = "token_invalid_signature"
    public_message = "invalid token signature"


class TokenMissingClaims(TokenError):
    error_code = "token_missing_claims"
    public_message = "failed to extract data from token"


class TokenIncorrectExpiration(TokenError):
    error_code = "token_incorrect_expiration"
    public_message = "incorrect token expiration time value"


class TokenExpired(TokenError):
    error_code = "token_expired"
    public_message = "token expired"


# --- Request gate ------------------------------------------------------------


class Unauthenticated(AuthError):
    status_code = 401
    error_code = "unauthenticated"
    public_message = "token is not provided"


class PermissionDenied(AuthError):
    status_code = 403
    error_code = "permission_denied"
    public_message = "token is not valid"


# --- Infrastructure ----------------------------------------------------------


class InternalError(AuthError):
    """Infrastructure failure. `message` is for logs only, never for clients."""


class HashingFailure(InternalError):
    pass


class StorageTimeout(InternalError):
    pass


class StorageInternal(InternalError):
    pass


# --- Module Notes -----------------------------------------------------------
# `device_auth.api.error_handling` is the only place these become HTTP responses.
