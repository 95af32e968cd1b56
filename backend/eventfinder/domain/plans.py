from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .models import NormalizedEvent


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Any) -> "Plan":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.FREE
        return cls.FREE


@dataclass(frozen=True)
class PlanLimits:
    plan: Plan
    max_radius_miles: Optional[float]
    max_events: Optional[int]

    @property
    def unlimited(self) -> bool:
        return self.max_events is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.value,
            "maxRadiusMiles": self.max_radius_miles,
            "maxEvents": self.max_events,
        }


PLAN_LIMITS: Dict[Plan, PlanLimits] = {
    Plan.FREE: PlanLimits(Plan.FREE, max_radius_miles=5, max_events=50),
    Plan.PRO: PlanLimits(Plan.PRO, max_radius_miles=25, max_events=200),
    Plan.PREMIUM: PlanLimits(Plan.PREMIUM, max_radius_miles=None, max_events=None),
}


class PlanPolicy:
    """Result shaping per subscription tier.

    The radius is approximated by an exact (case-insensitive) match on the
    event's city label. When that would drop more than half of the candidates
    the unfiltered list is kept, since city labels differ between providers.
    Geodesic filtering over lat/lng is not done.
    """

    def __init__(self, limits: Optional[Dict[Plan, PlanLimits]] = None) -> None:
        self._limits = dict(limits or PLAN_LIMITS)

    def limits_for(self, plan: Any) -> PlanLimits:
        return self._limits[Plan.parse(plan)]

    def apply(
        self,
        events: Sequence[NormalizedEvent],
        limits: PlanLimits,
        city: Optional[str] = None,
    ) -> List[NormalizedEvent]:
        shaped = list(events)
        if limits.max_radius_miles is not None and city:
            shaped = self._filter_city(shaped, city)
        if limits.max_events is not None:
            shaped = shaped[: limits.max_events]
        return shaped

    @staticmethod
    def _filter_city(events: List[NormalizedEvent], city: str) -> List[NormalizedEvent]:
        target = city.strip().lower()
        nearby = [event for event in events if (event.city or "").strip().lower() == target]
        if len(events) - len(nearby) > len(events) / 2:
            return events
        return nearby
