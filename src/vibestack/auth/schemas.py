"""Pydantic schemas for auth endpoints.

Emails and passwords are plain strings here; their rules are checked by the
service so failures come back as INVALID_EMAIL / WEAK_PASSWORD envelopes.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SignUpRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=128)
    username: str | None = Field(None, min_length=3, max_length=30)
    display_name: str | None = Field(None, max_length=100)


class SignInRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=128)


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., max_length=320)


class UpdatePasswordRequest(BaseModel):
    new_password: str = Field(..., max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class SessionValidateRequest(BaseModel):
    access_token: str | None = None
    expires_at: int | None = None  # epoch seconds


class MfaEnrollRequest(BaseModel):
    factor_type: str = "totp"


class MfaVerifyRequest(BaseModel):
    factor_id: str
    code: str = Field(..., min_length=6, max_length=10)
