from __future__ import annotations

from typing import Protocol


class PlanLookupPort(Protocol):
    def friendly_plan_id(self, price_id: str) -> str | None:
        ...
