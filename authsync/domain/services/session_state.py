from __future__ import annotations

from urllib.parse import urlsplit

from authsync.domain.entities.auth_state import ANONYMOUS, Authenticated, SessionUser
from authsync.domain.entities.user import AuthSession


# OAuth and magic-link completions land with the tokens in the URL fragment.
AUTH_REDIRECT_FRAGMENT_MARKER = "#access_token="


def session_user_from(session: AuthSession | None) -> SessionUser:
    if session is None:
        return ANONYMOUS
    return Authenticated(user=session.user)


def has_auth_redirect_fragment(url: str) -> bool:
    fragment = urlsplit(url).fragment
    if not fragment:
        return False
    return AUTH_REDIRECT_FRAGMENT_MARKER in f"#{fragment}"
