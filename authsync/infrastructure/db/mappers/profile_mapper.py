from __future__ import annotations

from typing import Any, Mapping

from authsync.domain.entities.profile import BillingRecord, ProfileRecord


PROFILE_FIELDS = ("email", "name")


def _as_str(value: Any) -> str:
    return str(value)


def map_row_to_billing_record(row: Mapping[str, Any]) -> BillingRecord | None:
    if row.get("customer_row_id") is None:
        return None
    return BillingRecord(
        customer_id=row.get("stripe_customer_id"),
        subscription_id=row.get("stripe_subscription_id"),
        price_id=row.get("stripe_price_id"),
        subscription_status=row.get("stripe_subscription_status"),
    )


def map_row_to_profile_record(row: Mapping[str, Any]) -> ProfileRecord:
    return ProfileRecord(
        id=_as_str(row["id"]),
        fields={name: row.get(name) for name in PROFILE_FIELDS},
        billing=map_row_to_billing_record(row),
    )
