"""Start-time selection and per-stop timestamp propagation for route plans."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ...config import settings
from ...models.domain import PriorOrder
from .models import RoutePlan, ScheduleEstimate, ScheduleSource
from .units import parse_time_to_minutes

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BaseTime:
    timestamp: datetime
    source: ScheduleSource


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _candidates(prior_order: PriorOrder) -> list[tuple[datetime | None, timedelta, ScheduleSource]]:
    return [
        (prior_order.completiontime, timedelta(0), ScheduleSource.COMPLETION),
        (prior_order.estimated_delivery_time, timedelta(0), ScheduleSource.ESTIMATED_DELIVERY),
        (
            prior_order.reached_customer_at,
            timedelta(minutes=settings.reached_handoff_minutes),
            ScheduleSource.REACHED_CUSTOMER,
        ),
        (
            prior_order.on_the_way_at,
            timedelta(minutes=settings.on_the_way_handoff_minutes),
            ScheduleSource.ON_THE_WAY,
        ),
        (
            prior_order.accepted_at,
            timedelta(minutes=settings.accepted_handoff_minutes),
            ScheduleSource.ACCEPTED,
        ),
    ]


def select_base_time(prior_order: PriorOrder | None, *, now: datetime | None = None) -> BaseTime:
    """Pick the timestamp the first stop of a new plan starts from.

    The driver's latest order is consulted field by field; the first populated
    field wins. Results more than a few minutes old fall back to ``now`` and
    results too far ahead are clamped. Anything taken from a prior order gets a
    short buffer so consecutive orders never share a timestamp.
    """
    now = _aware(now or utcnow())
    if prior_order is None:
        return BaseTime(now, ScheduleSource.NOW)

    chosen: BaseTime | None = None
    for value, offset, source in _candidates(prior_order):
        if value is not None:
            chosen = BaseTime(_aware(value) + offset, source)
            break
    if chosen is None:
        return BaseTime(now, ScheduleSource.NOW)

    stale_limit = now - timedelta(minutes=settings.stale_base_time_minutes)
    future_limit = now + timedelta(days=settings.max_future_base_time_days)
    if chosen.timestamp < stale_limit:
        logger.info(f"Base time from {chosen.source.value} is stale ({chosen.timestamp.isoformat()}), using now")
        return BaseTime(now, ScheduleSource.NOW)
    if chosen.timestamp > future_limit:
        logger.info(
            f"Base time from {chosen.source.value} is too far ahead ({chosen.timestamp.isoformat()}), clamping"
        )
        chosen.timestamp = future_limit

    chosen.timestamp += timedelta(seconds=settings.prior_order_buffer_seconds)
    return chosen


def estimate_schedule(
    plan: RoutePlan, prior_order: PriorOrder | None = None, *, now: datetime | None = None
) -> list[ScheduleEstimate]:
    """Walk the plan and give every leg a start and an estimated arrival."""
    base = select_base_time(prior_order, now=now)
    inter_stop = timedelta(seconds=settings.inter_stop_buffer_seconds)

    estimates: list[ScheduleEstimate] = []
    started_at = base.timestamp
    for leg in plan.legs:
        minutes = min(parse_time_to_minutes(leg.duration_text), settings.max_leg_minutes)
        arrival = started_at + timedelta(minutes=minutes)
        estimates.append(
            ScheduleEstimate(
                sequence_index=leg.sequence_index,
                started_at=started_at,
                estimated_arrival=arrival,
                source=base.source,
            )
        )
        started_at = arrival + inter_stop
    return estimates
