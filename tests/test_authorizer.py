"""
tests.test_authorizer

RequestAuthorizer decisions, in isolation and through the HTTP gate.

Responsibilities:
- Unprotected operations pass without a token.
- Protected operations: no token -> 401, bad/expired token -> 403, valid -> call proceeds.
- Every call is instrumented, whatever the gate decides.
"""

from __future__ import annotations

from datetime import timedelta

import httpx
import pytest
from fastapi import FastAPI

from device_auth.auth.authorizer import RequestAuthorizer
from device_auth.auth.jwt import JwtConfig, TokenCodec
from device_auth.auth.models import TokenIdentity
from device_auth.errors import PermissionDenied, Unauthenticated


@pytest.fixture
def authorizer(tokens: TokenCodec) -> RequestAuthorizer:
    return RequestAuthorizer(tokens=tokens, protected_operations={"check_token"})


def test_unprotected_operation_needs_no_token(authorizer: RequestAuthorizer) -> None:
    assert authorizer.authorize("login", None) is None
    assert authorizer.authorize("refresh_token", "garbage") is None


def test_protected_operation_without_token(authorizer: RequestAuthorizer) -> None:
    with pytest.raises(Unauthenticated):
        authorizer.authorize("check_token", None)
    with pytest.raises(Unauthenticated):
        authorizer.authorize("check_token", "")


def test_protected_operation_with_invalid_token(authorizer: RequestAuthorizer) -> None:
    with pytest.raises(PermissionDenied):
        authorizer.authorize("check_token", "garbage")


def test_protected_operation_with_expired_token(
    authorizer: RequestAuthorizer, settings, token_clock
) -> None:
    old = TokenCodec(JwtConfig(alg="HS256", secret=settings.jwt_secret), clock=token_clock)
    token = old.issue(email="a@x.com", device_id="dev-1", ttl=timedelta(seconds=1))

    # The authorizer's codec runs on the real clock, long after 2026-01-01 12:00:01.
    with pytest.raises(PermissionDenied):
        authorizer.authorize("check_token", token)


def test_protected_operation_with_valid_token(
    authorizer: RequestAuthorizer, tokens: TokenCodec
) -> None:
    token = tokens.issue(email="a@x.com", device_id="dev-1", ttl=timedelta(minutes=5))

    assert authorizer.authorize("check_token", token) == TokenIdentity("a@x.com", "dev-1")


def test_gate_does_not_consult_device_bindings(
    authorizer: RequestAuthorizer, tokens: TokenCodec
) -> None:
    # No account or binding exists anywhere; a well-signed token is enough.
    token = tokens.issue(email="ghost@x.com", device_id="nowhere", ttl=timedelta(minutes=5))

    assert authorizer.authorize("check_token", token) is not None


@pytest.mark.asyncio
async def test_check_token_over_http(
    app: FastAPI, client: httpx.AsyncClient, tokens: TokenCodec
) -> None:
    r = await client.get("/v1/auth/check")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "unauthenticated"

    r = await client.get("/v1/auth/check", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "permission_denied"

    token = tokens.issue(email="a@x.com", device_id="dev-1", ttl=timedelta(minutes=5))
    r = await client.get("/v1/auth/check", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == {"message": "OK"}

    recorder = app.state.call_recorder
    assert recorder.count("check_token", "failure") == 2
    assert recorder.count("check_token", "success") == 1
    last = recorder.recent()[-1]
    assert last.operation == "check_token"
    assert last.status_code == 200
    assert last.duration_ms >= 0


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})

    assert r.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_gate_accepts_signed_token_with_non_string_jti(
    app: FastAPI, client: httpx.AsyncClient, sign_claims
) -> None:
    token = sign_claims(
        {"email": "a@x.com", "deviceAddress": "dev-1", "exp": 4_102_444_800, "jti": 5}
    )

    r = await client.get("/v1/auth/check", headers={"Authorization": f"Bearer {token}"})

    assert r.status_code == 200
    assert app.state.call_recorder.count("check_token", "success") == 1


@pytest.mark.asyncio
async def test_gate_denies_signed_token_with_non_finite_exp(
    client: httpx.AsyncClient, sign_claims
) -> None:
    token = sign_claims({"email": "a@x.com", "deviceAddress": "dev-1", "exp": float("nan")})

    r = await client.get("/v1/auth/check", headers={"Authorization": f"Bearer {token}"})

    assert r.status_code == 403
    assert r.json()["error"]["code"] == "permission_denied"
