from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import secrets
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request

from authsync.application.use_cases.session_coordinator import SessionCoordinator
from authsync.domain.entities.formatted_user import FormattedUser
from authsync.domain.exceptions import ProfileFetchError
from authsync.domain.services.gate import decide_gate
from authsync.infrastructure.clients.browser_navigator import BrowserNavigator
from authsync.infrastructure.clients.gotrue_client import GoTrueClient, GoTrueClientSettings
from authsync.infrastructure.clients.plan_lookup import StaticPlanLookup
from authsync.infrastructure.db.engine import get_engine
from authsync.infrastructure.db.profile_store import PollingProfileStore
from authsync.infrastructure.db.repositories.profile_repository import SqlProfileRepository
from authsync.infrastructure.security.token_decoder import SupabaseTokenDecoder
from authsync.infrastructure.storage.session_cache import JsonFileSessionCache
from authsync.shared.config import Settings


logger = logging.getLogger(__name__)


def _get_profile_store(settings: Settings) -> PollingProfileStore:
    if not settings.postgres_dsn:
        raise RuntimeError("POSTGRES_DSN is required.")
    return PollingProfileStore(
        SqlProfileRepository(get_engine(settings.postgres_dsn)),
        poll_interval_seconds=settings.profile_poll_interval_seconds,
    )


def _get_gotrue_client(settings: Settings, navigator: BrowserNavigator) -> GoTrueClient:
    if not settings.supabase_url:
        raise RuntimeError("SUPABASE_URL is required.")
    if not settings.supabase_anon_key:
        raise RuntimeError("SUPABASE_ANON_KEY is required.")
    return GoTrueClient(
        GoTrueClientSettings(
            supabase_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            timeout_seconds=settings.supabase_timeout_seconds,
        ),
        session_cache=JsonFileSessionCache(settings.session_cache_path),
        navigator=navigator,
        token_decoder=SupabaseTokenDecoder(jwt_secret=settings.supabase_jwt_secret),
    )


@asynccontextmanager
async def build_session_coordinator(settings: Settings) -> AsyncIterator[SessionCoordinator]:
    navigator = BrowserNavigator(start_url=settings.app_start_url)
    async with _get_gotrue_client(settings, navigator) as identity_provider:
        coordinator = SessionCoordinator(
            identity_provider=identity_provider,
            profile_store=_get_profile_store(settings),
            plan_lookup=StaticPlanLookup(settings.stripe_price_ids),
            navigator=navigator,
            redirect_to=f"{settings.site_url}{settings.auth_redirect_path}",
            merge_profile_data=settings.merge_profile_data,
        )
        async with coordinator:
            # Runs after subscribe() so the SIGNED_IN event reaches the coordinator.
            response = await identity_provider.complete_redirect(navigator.current_url())
            if response.error is not None:
                logger.warning("deps: redirect_login_failed error=%s", response.error.message)
            yield coordinator


def get_session_coordinator(request: Request) -> SessionCoordinator:
    coordinator = getattr(request.app.state, "session_coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=500, detail="Session coordinator is not running.")
    return coordinator


def _check_bearer(authorization: str | None, coordinator: SessionCoordinator) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing access token.")

    current = coordinator.access_token()
    if current is None or not secrets.compare_digest(token.encode(), current.encode()):
        raise HTTPException(status_code=401, detail="Access token does not match the signed-in session.")
    return token


def require_session_token(
    authorization: str | None = Header(None),
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
) -> str:
    return _check_bearer(authorization, coordinator)


def require_auth(
    request: Request,
    authorization: str | None = Header(None),
    coordinator: SessionCoordinator = Depends(get_session_coordinator),
) -> FormattedUser:
    try:
        decision = decide_gate(coordinator.user)
    except ProfileFetchError as exc:
        _check_bearer(authorization, coordinator)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    if decision == "redirect":
        raise HTTPException(
            status_code=401,
            detail="Sign in required.",
            headers={"Location": request.app.state.signin_path},
        )
    if decision == "placeholder":
        raise HTTPException(
            status_code=503,
            detail="Authentication is still loading.",
            headers={"Retry-After": "1"},
        )
    _check_bearer(authorization, coordinator)
    return coordinator.user  # type: ignore[return-value]
