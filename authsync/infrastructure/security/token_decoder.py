from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import jwt


@dataclass(frozen=True)
class AccessTokenClaims:
    user_id: str
    email: str | None
    expires_at: datetime | None


class SupabaseTokenDecoder:
    """Reads the claims of provider-issued access tokens.

    The signature is verified when the project JWT secret is configured.
    """

    def __init__(self, *, jwt_secret: str = "", audience: str = "authenticated"):
        self._jwt_secret = jwt_secret
        self._audience = audience

    def decode_access_token(self, *, token: str) -> AccessTokenClaims:
        try:
            if self._jwt_secret:
                payload = jwt.decode(
                    token,
                    self._jwt_secret,
                    algorithms=["HS256"],
                    audience=self._audience,
                )
            else:
                payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise ValueError("Invalid access token.") from exc

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise ValueError("Invalid token subject.")

        exp = payload.get("exp")
        expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc) if exp is not None else None
        email = payload.get("email") if isinstance(payload.get("email"), str) else None
        return AccessTokenClaims(user_id=user_id, email=email, expires_at=expires_at)
