from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from authsync.domain.entities.user import AuthSession, AuthUser


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def map_payload_to_user(payload: Mapping[str, Any]) -> AuthUser:
    app_metadata = dict(payload.get("app_metadata") or {})
    return AuthUser(
        id=str(payload["id"]),
        email=payload.get("email") or None,
        email_confirmed_at=_parse_datetime(payload.get("email_confirmed_at") or payload.get("confirmed_at")),
        provider=str(app_metadata.get("provider") or "email"),
        app_metadata=app_metadata,
        user_metadata=dict(payload.get("user_metadata") or {}),
    )


def map_payload_to_session(payload: Mapping[str, Any], *, now: datetime | None = None) -> AuthSession:
    now = now or datetime.now(timezone.utc)
    expires_at = None
    if payload.get("expires_at") is not None:
        expires_at = datetime.fromtimestamp(int(payload["expires_at"]), tz=timezone.utc)
    elif payload.get("expires_in") is not None:
        expires_at = now + timedelta(seconds=int(payload["expires_in"]))

    return AuthSession(
        access_token=str(payload["access_token"]),
        refresh_token=payload.get("refresh_token"),
        expires_at=expires_at,
        user=map_payload_to_user(payload["user"]),
    )


def map_session_to_payload(session: AuthSession) -> dict[str, Any]:
    user = session.user
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_at": int(session.expires_at.timestamp()) if session.expires_at else None,
        "user": {
            "id": user.id,
            "email": user.email,
            "email_confirmed_at": _format_datetime(user.email_confirmed_at),
            "app_metadata": {**user.app_metadata, "provider": user.provider},
            "user_metadata": user.user_metadata,
        },
    }
