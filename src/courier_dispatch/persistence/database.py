"""Database persistence for stores, customers, drivers, orders and notifications."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Sequence

from ..db.supabase import get_supabase_client
from ..models.domain import (
    Customer,
    CustomerAddress,
    Driver,
    DriverStatus,
    PriorOrder,
    Store,
)

logger = logging.getLogger(__name__)

ACTIVE_ORDER_STATUSES = ("confirmed", "accepted", "picked_up")


class PersistenceError(RuntimeError):
    """A read or write against the hosted database failed."""


class DatabaseNotConfiguredError(PersistenceError):
    pass


def _require_client(client: Any = None) -> Any:
    supabase = client or get_supabase_client()
    if not supabase:
        raise DatabaseNotConfiguredError(
            "Supabase not configured. Set DISPATCH_SUPABASE_URL and DISPATCH_SUPABASE_KEY environment variables."
        )
    return supabase


def _execute(query: Any, action: str) -> Any:
    try:
        return query.execute()
    except Exception as e:
        logger.error(f"Failed to {action}: {e}")
        raise PersistenceError(f"Failed to {action}: {e}") from e


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unreadable timestamp {value!r}")
        return None


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------

def store_from_row(row: dict) -> Store:
    return Store(
        store_id=str(row["id"]),
        name=str(row.get("name") or ""),
        address=str(row.get("address") or ""),
        is_active=bool(row.get("is_active", True)),
    )


def customer_from_row(row: dict) -> Customer:
    addresses: list[CustomerAddress] = []
    for entry in row.get("addresses") or []:
        if isinstance(entry, dict) and entry.get("address"):
            addresses.append(
                CustomerAddress(label=str(entry.get("label") or "Address"), address=str(entry["address"]))
            )
    return Customer(
        customer_id=str(row["id"]),
        full_name=str(row.get("full_name") or ""),
        addresses=addresses,
        homeaddress=row.get("homeaddress") or None,
        workaddress=row.get("workaddress") or None,
    )


def driver_from_row(row: dict, active_order_count: int = 0) -> Driver:
    return Driver(
        driver_id=str(row["id"]),
        full_name=str(row.get("full_name") or ""),
        email=row.get("email"),
        status=DriverStatus.from_flag(row.get("is_active")),
        active_order_count=active_order_count,
    )


def prior_order_from_row(row: dict) -> PriorOrder:
    return PriorOrder(
        order_id=str(row["id"]) if row.get("id") is not None else None,
        completiontime=parse_timestamp(row.get("completiontime")),
        estimated_delivery_time=parse_timestamp(row.get("estimated_delivery_time")),
        reached_customer_at=parse_timestamp(row.get("reached_customer_at")),
        on_the_way_at=parse_timestamp(row.get("on_the_way_at")),
        accepted_at=parse_timestamp(row.get("accepted_at")),
    )


# ---------------------------------------------------------------------------
# Stores and customers
# ---------------------------------------------------------------------------

def get_active_stores(*, client: Any = None) -> list[Store]:
    supabase = _require_client(client)
    query = supabase.table("stores").select("*").eq("is_active", True).order("name")
    response = _execute(query, "load active stores")
    return [store_from_row(row) for row in response.data or []]


def get_store(store_id: str, *, client: Any = None) -> Store | None:
    supabase = _require_client(client)
    response = _execute(supabase.table("stores").select("*").eq("id", store_id).limit(1), "load store")
    rows = response.data or []
    return store_from_row(rows[0]) if rows else None


def get_customers(customer_ids: Sequence[str], *, client: Any = None) -> list[Customer]:
    """Load customers, preserving the order of ``customer_ids``."""
    if not customer_ids:
        return []
    supabase = _require_client(client)
    query = supabase.table("customers").select("*").in_("id", list(customer_ids))
    response = _execute(query, "load customers")
    by_id = {str(row["id"]): customer_from_row(row) for row in response.data or []}
    return [by_id[cid] for cid in customer_ids if cid in by_id]


# ---------------------------------------------------------------------------
# Drivers
# ---------------------------------------------------------------------------

def get_driver(driver_id: str, *, client: Any = None) -> Driver | None:
    supabase = _require_client(client)
    response = _execute(supabase.table("users").select("*").eq("id", driver_id).limit(1), "load driver")
    rows = response.data or []
    return driver_from_row(rows[0]) if rows else None


def count_confirmed_orders(driver_id: str, *, client: Any = None) -> int:
    supabase = _require_client(client)
    query = (
        supabase.table("orders")
        .select("id", count="exact")
        .eq("driverid", driver_id)
        .eq("status", "confirmed")
    )
    response = _execute(query, "count driver orders")
    count = getattr(response, "count", None)
    return int(count) if count is not None else len(response.data or [])


def get_available_drivers(*, client: Any = None) -> list[Driver]:
    """Active drivers, least loaded first (ties by name)."""
    supabase = _require_client(client)
    query = supabase.table("users").select("*").eq("is_active", True).order("full_name")
    response = _execute(query, "load drivers")

    drivers: list[Driver] = []
    for row in response.data or []:
        try:
            count = count_confirmed_orders(str(row["id"]), client=supabase)
        except PersistenceError as e:
            logger.warning(f"Counting orders for driver {row.get('id')} failed, assuming 0: {e}")
            count = 0
        drivers.append(driver_from_row(row, active_order_count=count))

    drivers.sort(key=lambda driver: (driver.active_order_count, driver.full_name.lower()))
    return drivers


def get_latest_driver_order(driver_id: str, *, client: Any = None) -> PriorOrder | None:
    supabase = _require_client(client)
    query = (
        supabase.table("orders")
        .select("*")
        .eq("driverid", driver_id)
        .order("created_at", desc=True)
        .limit(1)
    )
    response = _execute(query, "load latest driver order")
    rows = response.data or []
    return prior_order_from_row(rows[0]) if rows else None


# ---------------------------------------------------------------------------
# Orders, batches and notifications
# ---------------------------------------------------------------------------

def insert_orders(records: Sequence[dict], *, client: Any = None) -> list[dict]:
    if not records:
        return []
    supabase = _require_client(client)
    response = _execute(supabase.table("orders").insert(list(records)), "create orders")
    return list(response.data or [])


def insert_notifications(records: Sequence[dict], *, client: Any = None) -> list[dict]:
    if not records:
        return []
    supabase = _require_client(client)
    response = _execute(supabase.table("notifications").insert(list(records)), "create notifications")
    return list(response.data or [])


def get_batch_ids(*, client: Any = None) -> list[str]:
    """Distinct batch ids, newest first."""
    supabase = _require_client(client)
    query = (
        supabase.table("orders")
        .select("batch_id, created_at")
        .not_.is_("batch_id", "null")
        .order("created_at", desc=True)
    )
    response = _execute(query, "load batch ids")
    return list(_unique(row["batch_id"] for row in response.data or [] if row.get("batch_id")))


def get_batch_orders(batch_id: str, *, client: Any = None) -> list[dict]:
    supabase = _require_client(client)
    query = supabase.table("orders").select("*").eq("batch_id", batch_id).order("delivery_sequence")
    response = _execute(query, "load batch orders")
    return list(response.data or [])


def get_active_orders(*, client: Any = None) -> list[dict]:
    supabase = _require_client(client)
    query = supabase.table("orders").select("*").in_("status", list(ACTIVE_ORDER_STATUSES))
    response = _execute(query, "load active orders")
    return list(response.data or [])


def _unique(values: Iterable[str]) -> Iterable[str]:
    seen: set[str] = set()
    for value in values:
        if value not in seen:
            seen.add(value)
            yield value
