from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class MeResponse(BaseModel):
    uid: str
    email: str | None
    name: str | None
    providers: list[str]
    customer_id: str | None
    subscription_id: str | None
    price_id: str | None
    subscription_status: str | None
    plan_id: str | None
    plan_is_active: bool


class UpdateProfileRequest(BaseModel):
    fields: dict[str, Any]
