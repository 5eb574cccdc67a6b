from __future__ import annotations

from typing import Literal

from authsync.domain.entities.auth_state import Anonymous, Loading, MergeFailed
from authsync.domain.entities.formatted_user import FormattedUser, FormattedUserState


GateDecision = Literal["render", "placeholder", "redirect"]


def decide_gate(state: FormattedUserState) -> GateDecision:
    if isinstance(state, MergeFailed):
        raise state.error
    if isinstance(state, Anonymous):
        return "redirect"
    if isinstance(state, Loading):
        return "placeholder"
    if isinstance(state, FormattedUser):
        return "render"
    raise TypeError(f"Unknown user state: {state!r}")
