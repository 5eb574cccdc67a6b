from __future__ import annotations

from typing import Callable, Protocol

from authsync.application.dto.auth import ProviderResponse, SessionChangeEvent
from authsync.domain.entities.user import AuthSession


SessionChangeHandler = Callable[[SessionChangeEvent], None]
Unsubscribe = Callable[[], None]


class IdentityProviderPort(Protocol):
    async def sign_up(self, *, email: str, password: str) -> ProviderResponse:
        ...

    async def sign_in(self, *, email: str, password: str) -> ProviderResponse:
        ...

    async def sign_in_with_redirect_provider(self, *, provider: str, redirect_to: str) -> ProviderResponse:
        ...

    async def sign_out(self) -> ProviderResponse:
        ...

    def get_current_session(self) -> AuthSession | None:
        ...

    def on_session_change(self, handler: SessionChangeHandler) -> Unsubscribe:
        ...

    async def update_email(self, *, email: str) -> ProviderResponse:
        ...

    async def update_password(self, *, password: str) -> ProviderResponse:
        ...

    async def reset_password_for_email(self, *, email: str) -> ProviderResponse:
        ...
