from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx

from authsync.application.dto.auth import (
    ProviderErrorInfo,
    ProviderResponse,
    SessionChangeEvent,
    SessionChangeEventType,
)
from authsync.application.ports.identity_provider_port import (
    IdentityProviderPort,
    SessionChangeHandler,
    Unsubscribe,
)
from authsync.application.ports.navigator_port import NavigatorPort
from authsync.domain.entities.user import AuthSession
from authsync.domain.services.session_state import has_auth_redirect_fragment
from authsync.infrastructure.clients.gotrue_mapper import map_payload_to_session, map_payload_to_user
from authsync.infrastructure.security.token_decoder import SupabaseTokenDecoder
from authsync.infrastructure.storage.session_cache import JsonFileSessionCache


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoTrueClientSettings:
    supabase_url: str
    anon_key: str
    timeout_seconds: float


class GoTrueClient(IdentityProviderPort):
    """Supabase Auth (GoTrue) REST client.

    Keeps the current session in memory and in the session cache and pushes
    ``SessionChangeEvent``s to registered handlers on the event loop.
    """

    def __init__(
        self,
        settings: GoTrueClientSettings,
        *,
        session_cache: JsonFileSessionCache,
        navigator: NavigatorPort,
        token_decoder: SupabaseTokenDecoder,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings
        self._session_cache = session_cache
        self._navigator = navigator
        self._token_decoder = token_decoder
        self._http = http_client or httpx.AsyncClient(
            base_url=f"{settings.supabase_url}/auth/v1",
            timeout=settings.timeout_seconds,
        )
        self._session: AuthSession | None = session_cache.load()
        self._handlers: list[SessionChangeHandler] = []

    async def __aenter__(self) -> GoTrueClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def get_current_session(self) -> AuthSession | None:
        session = self._session
        if session is None:
            return None
        if session.expires_at is not None and session.expires_at <= datetime.now(timezone.utc):
            logger.info("gotrue_client: cached_session_expired user_id=%s", session.user.id)
            return None
        return session

    def on_session_change(self, handler: SessionChangeHandler) -> Unsubscribe:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    async def sign_up(self, *, email: str, password: str) -> ProviderResponse:
        payload, error = await self._request("POST", "/signup", json={"email": email, "password": password})
        if error is not None:
            return ProviderResponse(error=error)

        # Without email confirmation the provider returns a full session.
        if "access_token" in payload:
            return self._start_session(map_payload_to_session(payload))
        return ProviderResponse(user=map_payload_to_user(payload))

    async def sign_in(self, *, email: str, password: str) -> ProviderResponse:
        payload, error = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if error is not None:
            return ProviderResponse(error=error)

        return self._start_session(map_payload_to_session(payload))

    async def sign_in_with_redirect_provider(self, *, provider: str, redirect_to: str) -> ProviderResponse:
        url = self.build_authorize_url(provider=provider, redirect_to=redirect_to)
        self._navigator.assign(url)
        return ProviderResponse()

    def build_authorize_url(self, *, provider: str, redirect_to: str) -> str:
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"{self._settings.supabase_url}/auth/v1/authorize?{query}"

    async def sign_out(self) -> ProviderResponse:
        session = self._session
        self._set_session(None, "SIGNED_OUT")
        if session is None:
            return ProviderResponse()

        _, error = await self._request("POST", "/logout", access_token=session.access_token)
        return ProviderResponse(error=error)

    async def update_email(self, *, email: str) -> ProviderResponse:
        return await self._update_user({"email": email})

    async def update_password(self, *, password: str) -> ProviderResponse:
        return await self._update_user({"password": password})

    async def reset_password_for_email(self, *, email: str) -> ProviderResponse:
        _, error = await self._request("POST", "/recover", json={"email": email})
        return ProviderResponse(error=error)

    async def complete_redirect(self, url: str) -> ProviderResponse:
        """Finish an OAuth or magic-link login from the tokens in ``url``'s fragment."""
        if not has_auth_redirect_fragment(url):
            return ProviderResponse()

        params = dict(parse_qsl(urlsplit(url).fragment))
        access_token = params.get("access_token", "")
        try:
            claims = self._token_decoder.decode_access_token(token=access_token)
        except ValueError as exc:
            logger.warning("gotrue_client: redirect_token_rejected error=%s", exc)
            return ProviderResponse(error=ProviderErrorInfo(message=str(exc)))

        expires_at = claims.expires_at
        if params.get("expires_in"):
            try:
                expires_in = int(params["expires_in"])
            except ValueError:
                logger.warning("gotrue_client: redirect_expires_in_rejected value=%s", params["expires_in"])
                return ProviderResponse(error=ProviderErrorInfo(message="Invalid expires_in in redirect URL."))
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

        payload, error = await self._request("GET", "/user", access_token=access_token)
        if error is not None:
            return ProviderResponse(error=error)

        user = map_payload_to_user(payload)
        session = AuthSession(
            access_token=access_token,
            refresh_token=params.get("refresh_token"),
            expires_at=expires_at,
            user=user,
        )
        event: SessionChangeEventType = "PASSWORD_RECOVERY" if params.get("type") == "recovery" else "SIGNED_IN"
        self._set_session(session, event)
        return ProviderResponse(user=user, session=session)

    def _start_session(self, session: AuthSession) -> ProviderResponse:
        # Unconfirmed users get no local session; the caller rejects them.
        if session.user.email_confirmed_at is None:
            logger.info("gotrue_client: session_withheld_unconfirmed user_id=%s", session.user.id)
            return ProviderResponse(user=session.user)
        self._set_session(session, "SIGNED_IN")
        return ProviderResponse(user=session.user, session=session)

    async def _update_user(self, attributes: dict[str, Any]) -> ProviderResponse:
        session = self._session
        if session is None:
            return ProviderResponse(error=ProviderErrorInfo(message="Not logged in."))

        payload, error = await self._request("PUT", "/user", json=attributes, access_token=session.access_token)
        if error is not None:
            return ProviderResponse(error=error)

        user = map_payload_to_user(payload)
        updated = AuthSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            user=user,
        )
        self._set_session(updated, "USER_UPDATED")
        return ProviderResponse(user=user, session=updated)

    def _set_session(self, session: AuthSession | None, event: SessionChangeEventType) -> None:
        self._session = session
        if session is None:
            self._session_cache.clear()
        else:
            self._session_cache.save(session)

        logger.info(
            "gotrue_client: session_change event=%s user_id=%s handlers=%s",
            event,
            session.user.id if session else None,
            len(self._handlers),
        )
        change = SessionChangeEvent(event=event, session=session)
        for handler in list(self._handlers):
            handler(change)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> tuple[dict[str, Any], ProviderErrorInfo | None]:
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {access_token or self._settings.anon_key}",
        }
        try:
            response = await self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("gotrue_client: request_failed method=%s path=%s error=%s", method, path, exc)
            return {}, ProviderErrorInfo(message=f"Identity provider is unreachable: {exc}")

        payload = _json_body(response)
        if response.status_code >= 400:
            message = (
                payload.get("error_description")
                or payload.get("msg")
                or payload.get("message")
                or payload.get("error")
                or f"Identity provider returned HTTP {response.status_code}."
            )
            code = payload.get("error_code") or payload.get("code") or payload.get("error")
            logger.info(
                "gotrue_client: request_rejected method=%s path=%s status=%s",
                method,
                path,
                response.status_code,
            )
            return {}, ProviderErrorInfo(
                message=str(message),
                status=response.status_code,
                code=str(code) if code is not None else None,
                details=payload,
            )
        return payload, None


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
