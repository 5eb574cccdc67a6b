from __future__ import annotations

from typing import Mapping

from authsync.application.ports.plan_lookup_port import PlanLookupPort


class StaticPlanLookup(PlanLookupPort):
    """Maps payment provider price ids back to the plan ids used in the app
    (``starter``, ``pro``, ``business``).
    """

    def __init__(self, price_ids_by_plan: Mapping[str, str]):
        self._plan_by_price_id = {
            price_id: plan_id for plan_id, price_id in price_ids_by_plan.items() if price_id
        }

    def friendly_plan_id(self, price_id: str) -> str | None:
        return self._plan_by_price_id.get(price_id)
