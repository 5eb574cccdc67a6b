from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
import json
from urllib.parse import parse_qs, urlsplit

import httpx
import jwt
import pytest

from authsync.application.use_cases.session_state_machine import SessionStateMachine
from authsync.domain.entities.auth_state import ANONYMOUS
from authsync.domain.exceptions import UnconfirmedEmailError
from authsync.infrastructure.clients.gotrue_client import GoTrueClient, GoTrueClientSettings
from authsync.infrastructure.security.token_decoder import SupabaseTokenDecoder
from authsync.infrastructure.storage.session_cache import JsonFileSessionCache

from conftest import FakeNavigator, make_session


SUPABASE_URL = "https://project.supabase.co"
JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes"

USER_PAYLOAD = {
    "id": "user-1",
    "email": "ada@example.com",
    "email_confirmed_at": "2024-01-01T00:00:00Z",
    "app_metadata": {"provider": "email"},
    "user_metadata": {},
}


def _token_payload(**overrides):
    payload = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "expires_in": 3600,
        "user": USER_PAYLOAD,
    }
    payload.update(overrides)
    return payload


def _client(handler, tmp_path, *, navigator=None, requests=None) -> GoTrueClient:
    def _record(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(
        base_url=f"{SUPABASE_URL}/auth/v1",
        transport=httpx.MockTransport(_record),
    )
    return GoTrueClient(
        GoTrueClientSettings(supabase_url=SUPABASE_URL, anon_key="anon-key", timeout_seconds=5),
        session_cache=JsonFileSessionCache(tmp_path / "session.json"),
        navigator=navigator or FakeNavigator(),
        token_decoder=SupabaseTokenDecoder(jwt_secret=JWT_SECRET),
        http_client=http_client,
    )


@pytest.mark.asyncio
async def test_sign_in_stores_session_and_emits_event(tmp_path):
    requests = []
    events = []
    client = _client(lambda request: httpx.Response(200, json=_token_payload()), tmp_path, requests=requests)
    client.on_session_change(events.append)

    async with client:
        response = await client.sign_in(email="ada@example.com", password="secret-password")

    assert response.error is None
    assert response.user.id == "user-1"
    assert response.user.email_confirmed_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert client.get_current_session().access_token == "access-1"
    assert [event.event for event in events] == ["SIGNED_IN"]

    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/auth/v1/token"
    assert request.url.params["grant_type"] == "password"
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content) == {"email": "ada@example.com", "password": "secret-password"}


@pytest.mark.asyncio
async def test_sign_up_without_session_returns_unconfirmed_user(tmp_path):
    events = []
    unconfirmed = {**USER_PAYLOAD, "email_confirmed_at": None}
    client = _client(lambda request: httpx.Response(200, json=unconfirmed), tmp_path)
    client.on_session_change(events.append)

    response = await client.sign_up(email="ada@example.com", password="secret-password")

    assert response.user.email_confirmed_at is None
    assert response.session is None
    assert events == []
    assert client.get_current_session() is None


@pytest.mark.asyncio
async def test_rejected_request_maps_error_payload(tmp_path):
    client = _client(
        lambda request: httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
        ),
        tmp_path,
    )

    response = await client.sign_in(email="ada@example.com", password="wrong")

    assert response.user is None
    assert response.error.message == "Invalid login credentials"
    assert response.error.status == 400
    assert response.error.code == "invalid_grant"


@pytest.mark.asyncio
async def test_transport_error_becomes_provider_error(tmp_path):
    def _raise(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(_raise, tmp_path)

    response = await client.reset_password_for_email(email="ada@example.com")

    assert response.error is not None
    assert response.error.message.startswith("Identity provider is unreachable")
    assert response.error.status is None


@pytest.mark.asyncio
async def test_sign_out_clears_session_before_logout_call(tmp_path):
    requests = []
    events = []
    client = _client(lambda request: httpx.Response(204), tmp_path, requests=requests)
    client._set_session(make_session(), "SIGNED_IN")
    client.on_session_change(events.append)

    response = await client.sign_out()

    assert response.error is None
    assert [(event.event, event.session) for event in events] == [("SIGNED_OUT", None)]
    assert client.get_current_session() is None
    assert requests[0].url.path == "/auth/v1/logout"
    assert requests[0].headers["Authorization"] == "Bearer access-user-1"
    assert not (tmp_path / "session.json").exists()


@pytest.mark.asyncio
async def test_update_email_requires_session(tmp_path):
    client = _client(lambda request: httpx.Response(200, json=USER_PAYLOAD), tmp_path)

    response = await client.update_email(email="ada@new.example.com")

    assert response.error.message == "Not logged in."


@pytest.mark.asyncio
async def test_update_email_keeps_current_address_until_confirmed(tmp_path):
    requests = []
    events = []
    pending = {**USER_PAYLOAD, "new_email": "ada@new.example.com"}
    client = _client(lambda request: httpx.Response(200, json=pending), tmp_path, requests=requests)
    client._set_session(make_session(), "SIGNED_IN")
    client.on_session_change(events.append)

    response = await client.update_email(email="ada@new.example.com")

    assert response.error is None
    assert requests[0].method == "PUT"
    assert json.loads(requests[0].content) == {"email": "ada@new.example.com"}
    assert [event.event for event in events] == ["USER_UPDATED"]
    assert events[0].session.user.email == "ada@example.com"


@pytest.mark.asyncio
async def test_redirect_provider_navigates_to_authorize_url(tmp_path):
    navigator = FakeNavigator()
    client = _client(lambda request: httpx.Response(500), tmp_path, navigator=navigator)

    response = await client.sign_in_with_redirect_provider(
        provider="github",
        redirect_to="http://localhost:8000/dashboard",
    )

    assert response.error is None
    url = urlsplit(navigator.assigned[0])
    assert f"{url.scheme}://{url.netloc}{url.path}" == f"{SUPABASE_URL}/auth/v1/authorize"
    assert parse_qs(url.query) == {
        "provider": ["github"],
        "redirect_to": ["http://localhost:8000/dashboard"],
    }


@pytest.mark.asyncio
async def test_complete_redirect_signs_in_from_fragment(tmp_path):
    requests = []
    events = []
    token = jwt.encode(
        {
            "sub": "user-1",
            "aud": "authenticated",
            "email": "ada@example.com",
            "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
        },
        JWT_SECRET,
        algorithm="HS256",
    )
    client = _client(lambda request: httpx.Response(200, json=USER_PAYLOAD), tmp_path, requests=requests)
    client.on_session_change(events.append)

    response = await client.complete_redirect(
        f"http://localhost:8000/dashboard#access_token={token}&refresh_token=refresh-1&token_type=bearer"
    )

    assert response.error is None
    assert response.session.access_token == token
    assert response.session.refresh_token == "refresh-1"
    assert requests[0].url.path == "/auth/v1/user"
    assert requests[0].headers["Authorization"] == f"Bearer {token}"
    assert [event.event for event in events] == ["SIGNED_IN"]


@pytest.mark.asyncio
async def test_complete_redirect_rejects_forged_token(tmp_path):
    requests = []
    token = jwt.encode({"sub": "user-1", "aud": "authenticated"}, "another-secret-with-at-least-32-bytes", algorithm="HS256")
    client = _client(lambda request: httpx.Response(200, json=USER_PAYLOAD), tmp_path, requests=requests)

    response = await client.complete_redirect(f"http://localhost:8000/#access_token={token}")

    assert response.error.message == "Invalid access token."
    assert requests == []
    assert client.get_current_session() is None


@pytest.mark.asyncio
async def test_complete_redirect_without_fragment_is_noop(tmp_path):
    client = _client(lambda request: httpx.Response(500), tmp_path)

    response = await client.complete_redirect("http://localhost:8000/dashboard")

    assert response.user is None
    assert response.error is None


def test_session_is_restored_from_cache(tmp_path):
    cache = JsonFileSessionCache(tmp_path / "session.json")
    session = replace(make_session(), expires_at=datetime.now(timezone.utc).replace(microsecond=0) + timedelta(hours=1))
    cache.save(session)

    client = _client(lambda request: httpx.Response(500), tmp_path)

    assert client.get_current_session() == session


def test_expired_cached_session_is_ignored(tmp_path):
    cache = JsonFileSessionCache(tmp_path / "session.json")
    cache.save(replace(make_session(), expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)))

    client = _client(lambda request: httpx.Response(500), tmp_path)

    assert client.get_current_session() is None


def test_unreadable_cache_is_discarded(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonFileSessionCache(path).load() is None
    assert not path.exists()


@pytest.mark.asyncio
async def test_unconfirmed_sign_in_does_not_start_a_session(tmp_path):
    navigator = FakeNavigator()
    unconfirmed = _token_payload(user={**USER_PAYLOAD, "email_confirmed_at": None})
    client = _client(lambda request: httpx.Response(200, json=unconfirmed), tmp_path, navigator=navigator)
    machine = SessionStateMachine(
        identity_provider=client,
        navigator=navigator,
        redirect_to="http://localhost:8000/dashboard",
    )
    machine.initialize()

    with machine.subscribe():
        with pytest.raises(UnconfirmedEmailError):
            await machine.sign_in("ada@example.com", "secret-password")

        assert machine.state == ANONYMOUS

    assert client.get_current_session() is None
    assert not (tmp_path / "session.json").exists()


@pytest.mark.asyncio
async def test_unconfirmed_sign_up_with_session_payload_is_not_cached(tmp_path):
    events = []
    unconfirmed = _token_payload(user={**USER_PAYLOAD, "email_confirmed_at": None})
    client = _client(lambda request: httpx.Response(200, json=unconfirmed), tmp_path)
    client.on_session_change(events.append)

    response = await client.sign_up(email="ada@example.com", password="secret-password")

    assert response.user.email_confirmed_at is None
    assert response.session is None
    assert events == []
    assert not (tmp_path / "session.json").exists()


@pytest.mark.asyncio
async def test_complete_redirect_rejects_malformed_expires_in(tmp_path):
    requests = []
    token = jwt.encode({"sub": "user-1", "aud": "authenticated"}, JWT_SECRET, algorithm="HS256")
    client = _client(lambda request: httpx.Response(200, json=USER_PAYLOAD), tmp_path, requests=requests)

    response = await client.complete_redirect(f"http://localhost:8000/#access_token={token}&expires_in=soon")

    assert response.error.message == "Invalid expires_in in redirect URL."
    assert requests == []
    assert client.get_current_session() is None
