from __future__ import annotations

from typing import Callable

from authsync.domain.entities.auth_state import (
    Anonymous,
    Loading,
    MergedAuthenticated,
    MergedUser,
    MergeFailed,
)
from authsync.domain.entities.formatted_user import FormattedUser, FormattedUserState
from authsync.domain.entities.subscription import is_subscription_active


# Provider-native name -> name used by the rest of the application.
PROVIDER_ALIASES = {"email": "password"}


def normalize_provider(provider: str) -> str:
    return PROVIDER_ALIASES.get(provider, provider)


def format_user(
    merged: MergedUser,
    *,
    friendly_plan_id: Callable[[str], str | None],
) -> FormattedUserState:
    if isinstance(merged, (Loading, Anonymous, MergeFailed)):
        return merged
    if not isinstance(merged, MergedAuthenticated):
        raise TypeError(f"Unknown merged user state: {merged!r}")

    billing = merged.profile.billing if merged.profile is not None else None
    customer_id = billing.customer_id if billing else None
    subscription_id = billing.subscription_id if billing else None
    price_id = billing.price_id if billing else None
    status = billing.subscription_status if billing else None

    attributes = merged.attributes
    name = attributes.get("name")
    return FormattedUser(
        uid=merged.user.id,
        email=attributes.get("email"),
        name=name if isinstance(name, str) else None,
        providers=(normalize_provider(merged.user.provider),),
        customer_id=customer_id,
        subscription_id=subscription_id,
        price_id=price_id,
        subscription_status=status,
        plan_id=friendly_plan_id(price_id) if price_id else None,
        plan_is_active=is_subscription_active(status),
        attributes=dict(attributes),
    )
