from pathlib import Path

import pytest

from conftest import FakeSupabase
from courier_dispatch.models.domain import DriverStatus
from courier_dispatch.persistence import database
from courier_dispatch.persistence.database import DatabaseNotConfiguredError, PersistenceError
from courier_dispatch.persistence.filesystem import FileStorage
from courier_dispatch.persistence.preferences import LAST_STORE_KEY, FilePreferences


def test_file_storage_writes_json(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    path = storage.path_for("nested/state.json")

    storage.write_json(path, {"hello": "world"})

    assert path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert storage.read_json(path) == {"hello": "world"}
    assert storage.read_json(tmp_path / "missing.json", default={}) == {}


def test_file_preferences_survive_a_new_instance(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    FilePreferences(path=path).set(LAST_STORE_KEY, "S3")

    assert FilePreferences(path=path).get(LAST_STORE_KEY) == "S3"
    assert FilePreferences(path=path).get("unknown", "fallback") == "fallback"


def test_corrupt_preferences_file_reads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    path.write_text("{not json", encoding="utf-8")
    preferences = FilePreferences(path=path)

    assert preferences.get(LAST_STORE_KEY) is None
    preferences.set(LAST_STORE_KEY, "S1")
    assert preferences.get(LAST_STORE_KEY) == "S1"


def test_missing_client_is_reported(monkeypatch) -> None:
    monkeypatch.setattr(database, "get_supabase_client", lambda: None)
    with pytest.raises(DatabaseNotConfiguredError):
        database.get_active_stores()


def test_active_stores_are_sorted_by_name() -> None:
    client = FakeSupabase(
        {
            "stores": [
                {"id": 2, "name": "Zeta", "address": "Z road", "is_active": True},
                {"id": 1, "name": "Alpha", "address": "A road", "is_active": True},
                {"id": 3, "name": "Closed", "address": "C road", "is_active": False},
            ]
        }
    )
    stores = database.get_active_stores(client=client)
    assert [store.store_id for store in stores] == ["1", "2"]


def test_customers_keep_requested_order() -> None:
    client = FakeSupabase(
        {
            "customers": [
                {"id": "c1", "full_name": "Asha", "homeaddress": "1 Main"},
                {
                    "id": "c2",
                    "full_name": "Bilal",
                    "addresses": [{"label": "Office", "address": "9 Tower"}, {"label": "Empty"}],
                },
            ]
        }
    )
    customers = database.get_customers(["c2", "c1", "c9"], client=client)

    assert [customer.customer_id for customer in customers] == ["c2", "c1"]
    assert [entry.label for entry in customers[0].addresses] == ["Office"]
    assert customers[1].homeaddress == "1 Main"


def test_available_drivers_are_ranked_by_load() -> None:
    client = FakeSupabase(
        {
            "users": [
                {"id": "d1", "full_name": "Busy", "is_active": True},
                {"id": "d2", "full_name": "Free", "is_active": True},
                {"id": "d3", "full_name": "Away", "is_active": False},
            ],
            "orders": [
                {"id": 1, "driverid": "d1", "status": "confirmed"},
                {"id": 2, "driverid": "d1", "status": "confirmed"},
                {"id": 3, "driverid": "d2", "status": "delivered"},
            ],
        }
    )
    drivers = database.get_available_drivers(client=client)

    assert [(driver.driver_id, driver.active_order_count) for driver in drivers] == [("d2", 0), ("d1", 2)]
    assert all(driver.status is DriverStatus.ACTIVE for driver in drivers)


def test_latest_driver_order_parses_timestamps() -> None:
    client = FakeSupabase(
        {
            "orders": [
                {"id": 1, "driverid": "d1", "created_at": "2025-03-01T09:00:00Z"},
                {
                    "id": 2,
                    "driverid": "d1",
                    "created_at": "2025-03-01T11:00:00Z",
                    "completiontime": "2025-03-01T11:40:00Z",
                    "accepted_at": "garbage",
                },
            ]
        }
    )
    prior = database.get_latest_driver_order("d1", client=client)

    assert prior.order_id == "2"
    assert prior.completiontime.isoformat() == "2025-03-01T11:40:00+00:00"
    assert prior.accepted_at is None
    assert database.get_latest_driver_order("nobody", client=client) is None


def test_insert_failure_raises_persistence_error() -> None:
    client = FakeSupabase()
    client.failing_tables.add("orders")

    with pytest.raises(PersistenceError, match="create orders"):
        database.insert_orders([{"driverid": "d1"}], client=client)
    assert database.insert_orders([], client=client) == []


def test_batch_ids_are_distinct_and_newest_first() -> None:
    client = FakeSupabase(
        {
            "orders": [
                {"id": 1, "batch_id": "batch_a", "created_at": "2025-03-01T09:00:00Z", "delivery_sequence": 1},
                {"id": 2, "batch_id": "batch_a", "created_at": "2025-03-01T09:05:00Z", "delivery_sequence": 2},
                {"id": 3, "batch_id": "batch_b", "created_at": "2025-03-01T10:00:00Z", "delivery_sequence": 1},
                {"id": 4, "batch_id": None, "created_at": "2025-03-01T11:00:00Z"},
            ]
        }
    )
    assert database.get_batch_ids(client=client) == ["batch_b", "batch_a"]
    assert [row["id"] for row in database.get_batch_orders("batch_a", client=client)] == [1, 2]
