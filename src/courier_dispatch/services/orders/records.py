"""Rows written to the ``orders`` and ``notifications`` tables for a confirmed plan."""

from __future__ import annotations

import secrets
import time
from typing import Sequence

from ...config import settings
from ...models.domain import Driver, Store
from ..routing.models import RoutePlan, ScheduleEstimate

RETURN_CUSTOMER_NAME = "Return to Store"


def generate_batch_id() -> str:
    return f"batch_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def build_order_records(
    plan: RoutePlan,
    schedule: Sequence[ScheduleEstimate],
    *,
    driver: Driver,
    batch_id: str,
) -> list[dict]:
    """One order row per leg, the return leg included."""
    if len(schedule) != len(plan.legs):
        raise ValueError("Schedule does not match the route plan; recompute it before confirming.")

    store: Store = plan.store
    records: list[dict] = []
    for leg, estimate in zip(plan.legs, schedule):
        records.append(
            {
                "driverid": driver.driver_id,
                "drivername": driver.full_name,
                "driveremail": driver.email,
                "customerid": None if leg.is_return else leg.stop.customer_id,
                "customername": RETURN_CUSTOMER_NAME if leg.is_return else leg.stop.name,
                "status": "confirmed",
                "payment_status": "completed",
                "payment_method": "monthly subscription",
                "start": leg.origin,
                "destination": leg.destination,
                "distance": leg.distance_text,
                "time": leg.duration_text,
                "delivery_sequence": leg.sequence_index,
                "total_amount": 0 if leg.is_return else settings.default_order_amount,
                "batch_id": batch_id,
                "storeid": store.store_id,
                "store_name": store.name,
                "return_option": plan.return_option.value,
                "created_at": estimate.started_at.isoformat(),
                "estimated_delivery_time": estimate.estimated_arrival.isoformat(),
            }
        )
    return records


def build_assignment_notifications(
    plan: RoutePlan,
    *,
    driver: Driver,
    batch_id: str,
    inserted_orders: Sequence[dict] = (),
) -> list[dict]:
    """One notification per delivery leg, addressed to the assigned driver."""
    order_ids = {
        row.get("delivery_sequence"): row.get("id")
        for row in inserted_orders
        if row.get("batch_id", batch_id) == batch_id
    }
    deliveries = plan.delivery_legs
    notifications: list[dict] = []
    for leg in deliveries:
        notification = {
            "recipient_id": driver.driver_id,
            "recipient_type": "driver",
            "title": "New Delivery Assignment",
            "message": (
                f"Delivery {leg.sequence_index} of {len(deliveries)} from {plan.store.name}: "
                f"{leg.stop.name} at {leg.destination}."
            ),
            "type": "order_assignment",
            "delivery_attempted": False,
        }
        order_id = order_ids.get(leg.sequence_index)
        if order_id is not None:
            notification["order_id"] = order_id
        notifications.append(notification)
    return notifications
