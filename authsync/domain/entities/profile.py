from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from authsync.domain.entities.subscription import SubscriptionStatus


@dataclass(frozen=True)
class BillingRecord:
    customer_id: str | None
    subscription_id: str | None
    price_id: str | None
    subscription_status: SubscriptionStatus | None


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    billing: BillingRecord | None = None


@dataclass(frozen=True)
class QueryPending:
    key: str
    status: Literal["pending"] = "pending"


@dataclass(frozen=True)
class QueryFailed:
    key: str
    reason: str
    status: Literal["failed"] = "failed"


@dataclass(frozen=True)
class QuerySucceeded:
    key: str
    record: ProfileRecord | None
    status: Literal["succeeded"] = "succeeded"


ProfileQueryResult = Union[QueryPending, QueryFailed, QuerySucceeded]
