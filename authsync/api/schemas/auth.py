from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)


class EmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)


class PasswordRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=256)


class ConfirmPasswordResetRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=256)
    code: str = Field(..., min_length=1)


class AuthUserResponse(BaseModel):
    id: str
    email: str | None
    email_confirmed_at: datetime | None
    provider: str
    access_token: str | None = None


class OkResponse(BaseModel):
    ok: bool
