from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from courier_dispatch.models.domain import Customer, Destination, Store
from courier_dispatch.services.routing.distance_client import DistanceLookupError
from courier_dispatch.services.routing.models import LegMeasurement


@dataclass
class FakeResponse:
    data: list[dict]
    count: int | None = None


class _Negation:
    def __init__(self, query: "FakeQuery") -> None:
        self.query = query

    def is_(self, column: str, value: str) -> "FakeQuery":
        expected = None if value == "null" else value
        self.query.filters.append(lambda row: row.get(column) is not expected)
        return self.query


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table = table
        self.filters: list = []
        self.ordering: list[tuple[str, bool]] = []
        self.limit_value: int | None = None
        self.count_mode: str | None = None
        self.pending_insert: list[dict] | None = None

    def select(self, *_columns: str, count: str | None = None) -> "FakeQuery":
        self.count_mode = count
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: list) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) in values)
        return self

    @property
    def not_(self) -> _Negation:
        return _Negation(self)

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.ordering.append((column, desc))
        return self

    def limit(self, value: int) -> "FakeQuery":
        self.limit_value = value
        return self

    def insert(self, rows: list[dict]) -> "FakeQuery":
        self.pending_insert = rows
        return self

    def execute(self) -> FakeResponse:
        if self.table in self.db.failing_tables:
            raise RuntimeError(f"{self.table} unavailable")
        rows = self.db.tables.setdefault(self.table, [])
        if self.pending_insert is not None:
            inserted = []
            for row in self.pending_insert:
                stored = {"id": f"{self.table}-{len(rows) + 1}", **row}
                rows.append(stored)
                inserted.append(stored)
            return FakeResponse(data=inserted)

        result = [row for row in rows if all(check(row) for check in self.filters)]
        for column, desc in reversed(self.ordering):
            result.sort(key=lambda row: (row.get(column) is None, row.get(column)), reverse=desc)
        if self.limit_value is not None:
            result = result[: self.limit_value]
        count = len(result) if self.count_mode == "exact" else None
        return FakeResponse(data=[dict(row) for row in result], count=count)


class FakeSupabase:
    """Just enough of the Supabase query builder for the persistence layer."""

    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.failing_tables: set[str] = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


class StubOracle:
    """Distance oracle answering from a fixed ``(origin, destination) -> km`` table."""

    def __init__(self, distances: dict[tuple[str, str], float], failing: set[tuple[str, str]] | None = None) -> None:
        self.distances = distances
        self.failing = failing or set()
        self.calls: list[tuple[str, str]] = []

    def get_leg(self, origin: str, destination: str) -> LegMeasurement:
        self.calls.append((origin, destination))
        if (origin, destination) in self.failing or (origin, destination) not in self.distances:
            raise DistanceLookupError(f"Could not resolve route from '{origin}' to '{destination}'.")
        km = self.distances[(origin, destination)]
        minutes = max(1, round(km * 3))
        return LegMeasurement(
            distance_text=f"{km:.1f} km",
            distance_value=round(km * 1000),
            duration_text=f"{minutes} mins",
            duration_value=minutes * 60,
        )


def make_store(store_id: str = "S1", name: str = "Depot", address: str = "D", is_active: bool = True) -> Store:
    return Store(store_id=store_id, name=name, address=address, is_active=is_active)


def make_destination(customer_id: str, address: str | None = None) -> Destination:
    address = address or customer_id
    customer = Customer(customer_id=customer_id, full_name=f"Customer {customer_id}", homeaddress=address)
    return Destination(customer=customer, address=address, label="Home")


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()
