"""Aggregate the orders of one batch into a status and a directions link."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence
from urllib.parse import quote

from ...models.domain import BatchStatus

COMPLETED_STATUSES = frozenset({"delivered", "reached"})
IN_PROGRESS_STATUSES = frozenset({"accepted", "picked_up", "on_way"})

DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1"


@dataclass(slots=True)
class BatchSummary:
    batch_id: str
    created_at: str | None
    orders_count: int
    status: BatchStatus
    completion_percentage: int
    driver_id: str | None
    driver_name: str | None
    store_name: str | None
    map_url: str | None


def batch_status(statuses: Sequence[str | None]) -> BatchStatus:
    completed = sum(1 for status in statuses if status in COMPLETED_STATUSES)
    in_progress = sum(1 for status in statuses if status in IN_PROGRESS_STATUSES)
    if statuses and completed == len(statuses):
        return BatchStatus.COMPLETED
    if in_progress or completed:
        return BatchStatus.IN_PROGRESS
    if statuses and all(status == "confirmed" for status in statuses):
        return BatchStatus.CONFIRMED
    return BatchStatus.PENDING


def build_route_map_url(start: str | None, destinations: Sequence[str]) -> str | None:
    """Directions link visiting every destination in order, or None without a route."""
    stops = [destination for destination in destinations if destination]
    if not start or not stops:
        return None
    url = f"{DIRECTIONS_URL}&origin={quote(start)}&destination={quote(stops[-1])}"
    if len(stops) > 1:
        url += "&waypoints=" + "|".join(quote(stop) for stop in stops[:-1])
    return url


def summarize_batch(batch_id: str, orders: Sequence[dict]) -> BatchSummary | None:
    if not orders:
        return None
    ordered = sorted(orders, key=lambda order: order.get("delivery_sequence") or 0)
    statuses = [order.get("status") for order in ordered]
    completed = sum(1 for status in statuses if status in COMPLETED_STATUSES)
    first = ordered[0]
    return BatchSummary(
        batch_id=batch_id,
        created_at=first.get("created_at"),
        orders_count=len(ordered),
        status=batch_status(statuses),
        completion_percentage=round(completed / len(ordered) * 100),
        driver_id=first.get("driverid"),
        driver_name=first.get("drivername"),
        store_name=first.get("store_name"),
        map_url=build_route_map_url(first.get("start"), [order.get("destination") or "" for order in ordered]),
    )
