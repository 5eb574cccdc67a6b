from __future__ import annotations

from typing import Callable

from authsync.domain.entities.auth_state import MergedUser
from authsync.domain.entities.formatted_user import FormattedUserState
from authsync.domain.services.user_format import format_user


_UNSET = object()


class UserFormatter:
    """Memoized format_user: equal inputs return the previous output object."""

    def __init__(self, *, friendly_plan_id: Callable[[str], str | None]):
        self._friendly_plan_id = friendly_plan_id
        self._last_input: object = _UNSET
        self._last_output: FormattedUserState | None = None

    def __call__(self, merged: MergedUser) -> FormattedUserState:
        if self._last_input is not _UNSET and merged == self._last_input:
            return self._last_output  # type: ignore[return-value]

        output = format_user(merged, friendly_plan_id=self._friendly_plan_id)
        self._last_input = merged
        self._last_output = output
        return output
