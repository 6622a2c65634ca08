"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ...models.domain import Destination, ReturnOption, Store


class LegKind(str, Enum):
    DELIVERY = "delivery"
    RETURN = "return"


class ScheduleSource(str, Enum):
    """Upstream timestamp field that seeded a schedule."""

    COMPLETION = "completiontime"
    ESTIMATED_DELIVERY = "estimated_delivery_time"
    REACHED_CUSTOMER = "reached_customer"
    ON_THE_WAY = "on_the_way"
    ACCEPTED = "accepted"
    NOW = "now"


@dataclass(slots=True)
class LegMeasurement:
    distance_text: str
    distance_value: int
    duration_text: str
    duration_value: int


@dataclass(slots=True)
class RouteLeg:
    origin: str
    destination: str
    distance_text: str
    distance_value: int
    duration_text: str
    duration_value: int
    sequence_index: int
    kind: LegKind = LegKind.DELIVERY
    stop: Optional[Destination] = None
    return_store: Optional[Store] = None
    fallback: bool = False

    @property
    def is_return(self) -> bool:
        return self.kind is LegKind.RETURN


@dataclass(slots=True)
class RoutePlan:
    store: Store
    return_option: ReturnOption
    legs: List[RouteLeg] = field(default_factory=list)

    @property
    def delivery_legs(self) -> list[RouteLeg]:
        return [leg for leg in self.legs if not leg.is_return]

    @property
    def return_leg(self) -> RouteLeg | None:
        if self.legs and self.legs[-1].is_return:
            return self.legs[-1]
        return None


@dataclass(slots=True)
class ScheduleEstimate:
    sequence_index: int
    started_at: datetime
    estimated_arrival: datetime
    source: ScheduleSource
