from __future__ import annotations

from typing import Literal


SubscriptionStatus = Literal[
    "trialing",
    "active",
    "past_due",
    "canceled",
    "unpaid",
    "incomplete",
    "incomplete_expired",
]

ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})


def is_subscription_active(status: SubscriptionStatus | None) -> bool:
    return status in ACTIVE_SUBSCRIPTION_STATUSES
