"""
device_auth.api.routers.auth

Authentication endpoints.

Responsibilities:
- Register, Login and RefreshToken entry points (never gated).
- CheckToken: protected no-op that exercises the bearer-token gate.

Route names double as operation names for `RequestAuthorizer`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from device_auth.api.deps import auth_service
from device_auth.services.auth_service import AuthService

router = APIRouter(prefix="/v1/auth", tags=["auth"])

EMAIL_PATTERN = r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$"

# bcrypt works on at most 72 bytes of UTF-8 and refuses NUL.
PASSWORD_MAX_BYTES = 72


def _check_password(value: str) -> str:
    if "\x00" in value:
        raise ValueError("password must not contain NUL characters")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes of UTF-8")
    return value


class RegisterRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password(value)


class RegisterResponse(BaseModel):
    user_id: int


class LoginRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_BYTES)
    device_id: str = Field(min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password(value)


class RefreshTokenRequest(BaseModel):
    device_id: str = Field(min_length=1, max_length=255)
    access_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class CheckTokenResponse(BaseModel):
    message: str = "OK"


@router.post("/register", name="register", response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    svc: AuthService = Depends(auth_service),
) -> RegisterResponse:
    user_id = await svc.register(email=body.email, password=body.password)
    return RegisterResponse(user_id=user_id)


@router.post("/login", name="login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    svc: AuthService = Depends(auth_service),
) -> TokenResponse:
    token = await svc.login(email=body.email, password=body.password, device_id=body.device_id)
    return TokenResponse(token=token)


@router.post("/refresh", name="refresh_token", response_model=TokenResponse)
async def refresh_token(
    body: RefreshTokenRequest,
    svc: AuthService = Depends(auth_service),
) -> TokenResponse:
    token = await svc.refresh_token(device_id=body.device_id, access_token=body.access_token)
    return TokenResponse(token=token)


@router.get("/check", name="check_token", response_model=CheckTokenResponse)
async def check_token() -> CheckTokenResponse:
    # The gate has already validated the bearer token by the time we get here.
    return CheckTokenResponse()
