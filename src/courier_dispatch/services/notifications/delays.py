"""Detect active orders that are past their estimated delivery time."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Sequence

from ...persistence.database import ACTIVE_ORDER_STATUSES, parse_timestamp

logger = logging.getLogger(__name__)

_MINUTES = re.compile(r"(\d+)\s*min", re.IGNORECASE)
_HOURS = re.compile(r"(\d+)\s*hour", re.IGNORECASE)


def estimated_minutes(time_text: str | None) -> int | None:
    """Minutes promised for an order, or None when the text is not understood.

    Hours and minutes are added ("1 hour 5 mins" is 65). Unlike route
    planning, no default is substituted here: an order without a readable
    estimate can never be considered late.
    """
    if not time_text:
        return None
    minutes = _MINUTES.search(time_text)
    hours = _HOURS.search(time_text)
    if not (minutes or hours):
        return None
    total = int(hours.group(1)) * 60 if hours else 0
    if minutes:
        total += int(minutes.group(1))
    return total


def find_delayed_orders(orders: Sequence[dict], *, now: datetime | None = None) -> list[dict]:
    now = now or datetime.now(timezone.utc)
    delayed: list[dict] = []
    for order in orders:
        if order.get("status") not in ACTIVE_ORDER_STATUSES:
            continue
        minutes = estimated_minutes(order.get("time"))
        created_at = parse_timestamp(order.get("created_at"))
        if minutes is None or created_at is None:
            continue
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if now > created_at + timedelta(minutes=minutes):
            delayed.append(order)
    return delayed


def build_delay_notifications(orders: Sequence[dict]) -> list[dict]:
    notifications = []
    for order in orders:
        if not order.get("driverid"):
            logger.warning(f"Delayed order {order.get('id')} has no driver, skipping notification")
            continue
        notifications.append(
            {
                "recipient_id": order["driverid"],
                "recipient_type": "driver",
                "title": "Delivery Delay Alert",
                "message": (
                    f"You have a delayed delivery for {order.get('customername') or 'a customer'}. "
                    "Please update your status."
                ),
                "type": "delay_warning",
                "order_id": order.get("id"),
                "delivery_attempted": False,
            }
        )
    return notifications
