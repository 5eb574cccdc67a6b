from __future__ import annotations

import logging
from typing import Callable, TypeVar

from authsync.application.ports.navigator_port import NavigatorPort
from authsync.domain.entities.formatted_user import FormattedUser, FormattedUserState
from authsync.domain.services.gate import GateDecision, decide_gate


logger = logging.getLogger(__name__)

TRendered = TypeVar("TRendered")


class AuthGate:
    """Guards a protected view.

    The sign-in redirect fires once per transition into ``Anonymous``; repeated
    renders while still anonymous only show the placeholder.
    """

    def __init__(self, *, navigator: NavigatorPort, signin_path: str = "/auth/signin"):
        self._navigator = navigator
        self._signin_path = signin_path
        self._previous: GateDecision | None = None

    def render(
        self,
        state: FormattedUserState,
        *,
        render: Callable[[FormattedUser], TRendered],
        placeholder: Callable[[], TRendered],
    ) -> TRendered:
        decision = decide_gate(state)
        previous, self._previous = self._previous, decision

        if decision == "redirect":
            if previous != "redirect":
                logger.info("auth_gate: redirect path=%s", self._signin_path)
                self._navigator.replace(self._signin_path)
            return placeholder()
        if decision == "placeholder":
            return placeholder()
        return render(state)  # type: ignore[arg-type]
