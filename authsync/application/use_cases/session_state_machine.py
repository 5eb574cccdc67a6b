from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from authsync.application.dto.auth import ProviderResponse, SessionChangeEvent
from authsync.application.ports.identity_provider_port import IdentityProviderPort
from authsync.application.ports.navigator_port import NavigatorPort
from authsync.domain.entities.auth_state import LOADING, Authenticated, SessionUser
from authsync.domain.entities.user import AuthUser
from authsync.domain.exceptions import (
    ConfirmationPendingError,
    NotAuthenticatedError,
    ProviderError,
    UnconfirmedEmailError,
    UnsupportedOperationError,
)
from authsync.domain.services.session_state import has_auth_redirect_fragment, session_user_from


logger = logging.getLogger(__name__)

SessionUserListener = Callable[[SessionUser], None]


def raise_for_provider_error(response: ProviderResponse) -> ProviderResponse:
    if response.error is not None:
        details = dict(response.error.details)
        if response.error.status is not None:
            details["status"] = response.error.status
        if response.error.code is not None:
            details["code"] = response.error.code
        raise ProviderError(response.error.message, details=details)
    return response


class SessionStateMachine:
    """Owns the session user and applies identity provider results to it."""

    def __init__(
        self,
        *,
        identity_provider: IdentityProviderPort,
        navigator: NavigatorPort,
        redirect_to: str,
    ):
        self._identity_provider = identity_provider
        self._navigator = navigator
        self._redirect_to = redirect_to
        self._state: SessionUser = LOADING
        self._listeners: list[SessionUserListener] = []
        self._subscribed = False

    @property
    def state(self) -> SessionUser:
        return self._state

    def add_listener(self, listener: SessionUserListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def require_user(self) -> AuthUser:
        if not isinstance(self._state, Authenticated):
            raise NotAuthenticatedError("An authenticated session is required.")
        return self._state.user

    def current_access_token(self) -> str | None:
        if not isinstance(self._state, Authenticated):
            return None
        session = self._identity_provider.get_current_session()
        return session.access_token if session is not None else None

    def initialize(self) -> SessionUser:
        # A cached "logged out" session would send the user back to sign-in
        # before the provider finishes the redirect login.
        if has_auth_redirect_fragment(self._navigator.current_url()):
            logger.info("session_state_machine: redirect_login_in_progress skip_cached_session=true")
            return self._state

        session = self._identity_provider.get_current_session()
        self._transition(session_user_from(session), reason="cached_session")
        return self._state

    @contextmanager
    def subscribe(self) -> Iterator[None]:
        if self._subscribed:
            raise RuntimeError("Session change subscription is already active.")

        unsubscribe = self._identity_provider.on_session_change(self._handle_event)
        self._subscribed = True
        logger.debug("session_state_machine: subscribed")
        try:
            yield
        finally:
            self._subscribed = False
            unsubscribe()
            logger.debug("session_state_machine: unsubscribed")

    def _handle_event(self, event: SessionChangeEvent) -> None:
        self._transition(session_user_from(event.session), reason=event.event)

    def _transition(self, new_state: SessionUser, *, reason: str) -> None:
        if new_state == self._state:
            logger.debug("session_state_machine: unchanged state=%s reason=%s", new_state.kind, reason)
            return

        self._state = new_state
        logger.info("session_state_machine: transition state=%s reason=%s", new_state.kind, reason)
        for listener in list(self._listeners):
            listener(new_state)

    def _handle_auth(self, response: ProviderResponse) -> AuthUser:
        user = response.user
        if user is None:
            raise ProviderError("Identity provider returned no user.")

        # Confirmation is skipped automatically when the provider has it disabled.
        if user.email_confirmed_at is None:
            raise UnconfirmedEmailError(
                "Thanks for signing up! Please check your email to complete the process."
            )

        self._transition(Authenticated(user=user), reason="credentials")
        return user

    async def sign_up(self, email: str, password: str) -> AuthUser:
        response = await self._identity_provider.sign_up(email=email, password=password)
        return self._handle_auth(raise_for_provider_error(response))

    async def sign_in(self, email: str, password: str) -> AuthUser:
        response = await self._identity_provider.sign_in(email=email, password=password)
        return self._handle_auth(raise_for_provider_error(response))

    async def sign_in_with_provider(self, name: str) -> None:
        response = await self._identity_provider.sign_in_with_redirect_provider(
            provider=name,
            redirect_to=self._redirect_to,
        )
        raise_for_provider_error(response)
        logger.info("session_state_machine: redirect_login_started provider=%s", name)

        # The login completes after the redirect back into the application,
        # which runs initialize()/subscribe() again. Nothing resolves this.
        await asyncio.get_running_loop().create_future()

    async def sign_out(self) -> None:
        # The SIGNED_OUT event drives the transition to Anonymous.
        raise_for_provider_error(await self._identity_provider.sign_out())

    async def update_email(self, new_email: str) -> None:
        user = self.require_user()
        if new_email == user.email:
            return

        raise_for_provider_error(await self._identity_provider.update_email(email=new_email))
        raise ConfirmationPendingError(
            "To complete this process click the confirmation links sent to your new and old email addresses"
        )

    async def send_password_reset(self, email: str) -> None:
        raise_for_provider_error(await self._identity_provider.reset_password_for_email(email=email))

    async def update_password(self, password: str) -> None:
        raise_for_provider_error(await self._identity_provider.update_password(password=password))

    async def confirm_password_reset(self, password: str, code: str) -> None:
        _ = (password, code)
        raise UnsupportedOperationError("Confirming a password reset code is not supported by the identity provider.")
