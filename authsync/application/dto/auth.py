from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from authsync.domain.entities.user import AuthSession, AuthUser


SessionChangeEventType = Literal[
    "SIGNED_IN",
    "SIGNED_OUT",
    "USER_UPDATED",
    "TOKEN_REFRESHED",
    "PASSWORD_RECOVERY",
]


@dataclass(frozen=True)
class ProviderErrorInfo:
    message: str
    status: int | None = None
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderResponse:
    user: AuthUser | None = None
    session: AuthSession | None = None
    error: ProviderErrorInfo | None = None


@dataclass(frozen=True)
class SessionChangeEvent:
    event: SessionChangeEventType
    session: AuthSession | None
