"""
device_auth.auth.authorizer

Bearer-token gate for protected operations.

Responsibilities:
- Keep a static allow-list of operation (route) names that need a token.
- For those operations, require a bearer token and validate signature + expiry.
- Attach the validated identity to the request.

The gate is lighter than the refresh flow: it does not consult device bindings.
Register/Login/RefreshToken are entry points and must never be listed.
"""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from device_auth.auth.jwt import TokenCodec
from device_auth.auth.models import TokenIdentity
from device_auth.errors import PermissionDenied, TokenError, Unauthenticated
from device_auth.observability.logging import get_logger, mask_email

log = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


class RequestAuthorizer:
    """
    Installed once as an app-wide dependency:

        FastAPI(dependencies=[Depends(authorizer)])

    The matched route's `name` is the operation name checked against the list.
    """

    def __init__(self, *, tokens: TokenCodec, protected_operations: Iterable[str]) -> None:
        self._tokens = tokens
        self._protected = frozenset(protected_operations)

    @property
    def protected_operations(self) -> frozenset[str]:
        return self._protected

    def authorize(self, operation: str, token: str | None) -> TokenIdentity | None:
        if operation not in self._protected:
            return None
        if not token:
            log.info("token is not provided", operation=operation)
            raise Unauthenticated()
        try:
            identity = self._tokens.validate(token)
        except TokenError as e:
            log.info("token is not valid", operation=operation, reason=e.error_code)
            raise PermissionDenied() from e
        log.debug("token accepted", operation=operation, email=mask_email(identity.email))
        return identity

    async def __call__(
        self,
        request: Request,
        creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    ) -> None:
        route = request.scope.get("route")
        operation = getattr(route, "name", "")
        identity = self.authorize(operation, creds.credentials if creds else None)
        if identity is not None:
            request.state.identity = identity


# --- Module Notes -----------------------------------------------------------
# Errors raised here are `AuthError`s and go through the same exception handlers
# as the service layer (401 unauthenticated / 403 permission_denied).
