"""Pydantic request/response schemas for API endpoints."""

from aidhub.schemas.accounts import (
    ChangePasswordRequest,
    ConfirmRegistrationRequest,
    LoginRequest,
    MeResponse,
    NewPasswordRequest,
    PasswordTokenRequest,
    RegisterRequest,
)

__all__ = [
    "ChangePasswordRequest",
    "ConfirmRegistrationRequest",
    "LoginRequest",
    "MeResponse",
    "NewPasswordRequest",
    "PasswordTokenRequest",
    "RegisterRequest",
]
