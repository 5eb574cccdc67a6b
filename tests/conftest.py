from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

import pytest

from authsync.application.dto.auth import (
    ProviderErrorInfo,
    ProviderResponse,
    SessionChangeEvent,
)
from authsync.application.dto.profile import ProfileQuerySnapshot
from authsync.domain.entities.profile import BillingRecord, ProfileRecord
from authsync.domain.entities.user import AuthSession, AuthUser


CONFIRMED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_user(
    user_id: str = "user-1",
    *,
    email: str = "ada@example.com",
    confirmed: bool = True,
    provider: str = "email",
) -> AuthUser:
    return AuthUser(
        id=user_id,
        email=email,
        email_confirmed_at=CONFIRMED_AT if confirmed else None,
        provider=provider,
        app_metadata={"provider": provider},
        user_metadata={},
    )


def make_session(user: AuthUser | None = None) -> AuthSession:
    user = user or make_user()
    return AuthSession(
        access_token=f"access-{user.id}",
        refresh_token="refresh-token",
        expires_at=None,
        user=user,
    )


def make_profile(
    user_id: str = "user-1",
    *,
    name: str = "Ada",
    billing: BillingRecord | None = None,
    **fields: Any,
) -> ProfileRecord:
    return ProfileRecord(id=user_id, fields={"name": name, **fields}, billing=billing)


class FakeIdentityProvider:
    def __init__(self, *, session: AuthSession | None = None):
        self.session = session
        self.handlers: list = []
        self.calls: list[tuple[str, dict]] = []
        self.get_current_session_calls = 0
        self.responses: dict[str, ProviderResponse] = {}

    def respond(self, method: str, response: ProviderResponse) -> None:
        self.responses[method] = response

    def fail(self, method: str, message: str, *, status: int = 400) -> None:
        self.responses[method] = ProviderResponse(error=ProviderErrorInfo(message=message, status=status))

    def emit(self, event: str, session: AuthSession | None) -> None:
        self.session = session
        for handler in list(self.handlers):
            handler(SessionChangeEvent(event=event, session=session))

    def _response(self, method: str, **kwargs) -> ProviderResponse:
        self.calls.append((method, kwargs))
        response = self.responses.get(method, ProviderResponse())
        if response.session is not None:
            self.session = response.session
        return response

    async def sign_up(self, *, email: str, password: str) -> ProviderResponse:
        return self._response("sign_up", email=email, password=password)

    async def sign_in(self, *, email: str, password: str) -> ProviderResponse:
        return self._response("sign_in", email=email, password=password)

    async def sign_in_with_redirect_provider(self, *, provider: str, redirect_to: str) -> ProviderResponse:
        return self._response("sign_in_with_redirect_provider", provider=provider, redirect_to=redirect_to)

    async def sign_out(self) -> ProviderResponse:
        return self._response("sign_out")

    def get_current_session(self) -> AuthSession | None:
        self.get_current_session_calls += 1
        return self.session

    def on_session_change(self, handler):
        self.handlers.append(handler)

        def _unsubscribe() -> None:
            self.handlers.remove(handler)

        return _unsubscribe

    async def update_email(self, *, email: str) -> ProviderResponse:
        return self._response("update_email", email=email)

    async def update_password(self, *, password: str) -> ProviderResponse:
        return self._response("update_password", password=password)

    async def reset_password_for_email(self, *, email: str) -> ProviderResponse:
        return self._response("reset_password_for_email", email=email)


class FakeWatch:
    def __init__(self, user_id: str, on_snapshot):
        self.user_id = user_id
        self.on_snapshot = on_snapshot
        self.closed = False

    def push(self, snapshot: ProfileQuerySnapshot) -> None:
        self.on_snapshot(snapshot)

    def close(self) -> None:
        self.closed = True


class FakeProfileStore:
    def __init__(self, records: Mapping[str, ProfileRecord | None] | None = None):
        self.records = dict(records or {})
        self.watches: list[FakeWatch] = []
        self.updates: list[tuple[str, dict]] = []

    def watch_profile(self, *, user_id: str, on_snapshot) -> FakeWatch:
        watch = FakeWatch(user_id, on_snapshot)
        self.watches.append(watch)
        if user_id in self.records:
            watch.push(ProfileQuerySnapshot(status="success", data=self.records[user_id]))
        return watch

    def open_watches(self) -> list[FakeWatch]:
        return [watch for watch in self.watches if not watch.closed]

    async def update_profile(self, *, user_id: str, fields: Mapping[str, Any]) -> None:
        self.updates.append((user_id, dict(fields)))


class FakeNavigator:
    def __init__(self, url: str = "http://localhost:8000/"):
        self.url = url
        self.assigned: list[str] = []
        self.replaced: list[str] = []

    def current_url(self) -> str:
        return self.url

    def assign(self, url: str) -> None:
        self.assigned.append(url)

    def replace(self, path: str) -> None:
        self.replaced.append(path)


class FakePlanLookup:
    def __init__(self, plans: Mapping[str, str] | None = None):
        self._plans = dict(plans or {"price_starter": "starter", "price_pro": "pro"})

    def friendly_plan_id(self, price_id: str) -> str | None:
        return self._plans.get(price_id)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def profile_store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def plan_lookup() -> FakePlanLookup:
    return FakePlanLookup()
