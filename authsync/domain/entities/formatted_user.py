from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from authsync.domain.entities.auth_state import Anonymous, Loading, MergeFailed
from authsync.domain.entities.subscription import SubscriptionStatus


@dataclass(frozen=True)
class FormattedUser:
    uid: str
    email: str | None
    name: str | None
    providers: tuple[str, ...]
    customer_id: str | None
    subscription_id: str | None
    price_id: str | None
    subscription_status: SubscriptionStatus | None
    plan_id: str | None
    plan_is_active: bool
    attributes: dict[str, Any]
    kind: Literal["authenticated"] = "authenticated"


FormattedUserState = Union[Loading, Anonymous, FormattedUser, MergeFailed]
