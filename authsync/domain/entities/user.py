from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None
    email_confirmed_at: datetime | None
    provider: str
    app_metadata: dict[str, Any] = field(default_factory=dict)
    user_metadata: dict[str, Any] = field(default_factory=dict)

    def as_attributes(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "email_confirmed_at": self.email_confirmed_at,
            "provider": self.provider,
            "app_metadata": dict(self.app_metadata),
            "user_metadata": dict(self.user_metadata),
        }


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str | None
    expires_at: datetime | None
    user: AuthUser
