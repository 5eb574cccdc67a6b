from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any, Callable, Mapping

from authsync.application.ports.identity_provider_port import IdentityProviderPort
from authsync.application.ports.navigator_port import NavigatorPort
from authsync.application.ports.plan_lookup_port import PlanLookupPort
from authsync.application.ports.profile_store_port import ProfileStorePort
from authsync.application.use_cases.profile_merge_stage import ProfileMergeStage
from authsync.application.use_cases.session_state_machine import SessionStateMachine
from authsync.application.use_cases.user_formatter import UserFormatter
from authsync.domain.entities.auth_state import LOADING, MergedUser, MergeFailed, SessionUser
from authsync.domain.entities.formatted_user import FormattedUserState
from authsync.domain.entities.user import AuthUser


logger = logging.getLogger(__name__)

UserListener = Callable[[FormattedUserState], None]


class SessionCoordinator:
    """Single "current user" view built from the identity provider session and
    the profile store.

    Use as ``async with SessionCoordinator(...) as coordinator:``; the provider
    subscription and the profile query live for the duration of the block.
    """

    def __init__(
        self,
        *,
        identity_provider: IdentityProviderPort,
        profile_store: ProfileStorePort,
        plan_lookup: PlanLookupPort,
        navigator: NavigatorPort,
        redirect_to: str,
        merge_profile_data: bool = True,
    ):
        self._profile_store = profile_store
        self.session = SessionStateMachine(
            identity_provider=identity_provider,
            navigator=navigator,
            redirect_to=redirect_to,
        )
        self._merge_stage = ProfileMergeStage(profile_store=profile_store, enabled=merge_profile_data)
        self._formatter = UserFormatter(friendly_plan_id=plan_lookup.friendly_plan_id)
        self._user: FormattedUserState = LOADING
        self._listeners: list[UserListener] = []
        self._exit_stack: ExitStack | None = None

    async def __aenter__(self) -> SessionCoordinator:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        self.stop()

    @property
    def started(self) -> bool:
        return self._exit_stack is not None

    @property
    def user(self) -> FormattedUserState:
        return self._user

    @property
    def merged_user(self) -> MergedUser:
        return self._merge_stage.merged

    @property
    def session_user(self) -> SessionUser:
        return self.session.state

    def access_token(self) -> str | None:
        return self.session.current_access_token()

    def current_user(self) -> FormattedUserState:
        """Formatted user, raising the profile fetch failure if there is one."""
        if isinstance(self._user, MergeFailed):
            raise self._user.error
        return self._user

    def add_listener(self, listener: UserListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def start(self) -> None:
        if self._exit_stack is not None:
            raise RuntimeError("Session coordinator is already started.")

        with ExitStack() as stack:
            stack.callback(self._merge_stage.add_listener(self._on_merged_user))
            stack.callback(self.session.add_listener(self._on_session_user))
            stack.callback(self._merge_stage.close)
            self.session.initialize()
            stack.enter_context(self.session.subscribe())
            self._on_session_user(self.session.state)
            self._exit_stack = stack.pop_all()
        logger.info("session_coordinator: started state=%s", self._user.kind)

    def stop(self) -> None:
        if self._exit_stack is None:
            return
        stack, self._exit_stack = self._exit_stack, None
        stack.close()
        logger.info("session_coordinator: stopped")

    def _on_session_user(self, session_user: SessionUser) -> None:
        self._merge_stage.sync(session_user)

    def _on_merged_user(self, merged: MergedUser) -> None:
        formatted = self._formatter(merged)
        if formatted is self._user:
            return
        self._user = formatted
        for listener in list(self._listeners):
            listener(formatted)

    async def sign_up(self, email: str, password: str) -> AuthUser:
        return await self.session.sign_up(email, password)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        return await self.session.sign_in(email, password)

    async def sign_in_with_provider(self, name: str) -> None:
        await self.session.sign_in_with_provider(name)

    async def sign_out(self) -> None:
        await self.session.sign_out()

    async def send_password_reset(self, email: str) -> None:
        await self.session.send_password_reset(email)

    async def confirm_password_reset(self, password: str, code: str) -> None:
        await self.session.confirm_password_reset(password, code)

    async def update_password(self, password: str) -> None:
        await self.session.update_password(password)

    async def update_email(self, new_email: str) -> None:
        await self.session.update_email(new_email)

    async def update_profile_fields(self, fields: Mapping[str, Any]) -> None:
        other = {key: value for key, value in fields.items() if key != "email"}
        if not other:
            return

        user = self.session.require_user()
        await self._profile_store.update_profile(user_id=user.id, fields=other)
        logger.info("session_coordinator: profile_updated user_id=%s fields=%s", user.id, sorted(other))

    async def update_profile(self, data: Mapping[str, Any]) -> None:
        """Update email and profile fields in one call.

        A changed email is sent to the identity provider first and stops with
        ConfirmationPendingError; the profile store mirrors it once confirmed.
        """
        email = data.get("email")
        if email:
            await self.session.update_email(email)
        await self.update_profile_fields(data)
