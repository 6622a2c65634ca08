import pytest
from fastapi.testclient import TestClient

from conftest import StubOracle, make_store
from courier_dispatch.main import create_app
from courier_dispatch.models.domain import Customer, Driver
from courier_dispatch.persistence import database
from courier_dispatch.persistence.preferences import InMemoryPreferences
from courier_dispatch.services.routing import service as routing_service

DISTANCES = {
    ("D", "A"): 5.0,
    ("D", "B"): 2.0,
    ("D", "C"): 8.0,
    ("B", "A"): 3.5,
    ("A", "C"): 4.0,
    ("A", "B"): 3.5,
    ("B", "C"): 6.0,
    ("C", "D"): 8.0,
}


@pytest.fixture
def written(monkeypatch):
    tables = {"orders": [], "notifications": []}

    def writer(table):
        def insert(records):
            rows = [{"id": f"{table}-{len(tables[table]) + n}", **record} for n, record in enumerate(records, 1)]
            tables[table].extend(rows)
            return rows

        return insert

    preferences = InMemoryPreferences()
    monkeypatch.setattr(routing_service, "DistanceMatrixClient", lambda: StubOracle(DISTANCES))
    monkeypatch.setattr(routing_service, "get_preferences", lambda: preferences)
    monkeypatch.setattr(database, "get_store", lambda store_id: make_store() if store_id == "S1" else None)
    monkeypatch.setattr(
        database,
        "get_driver",
        lambda driver_id: Driver(driver_id=driver_id, full_name="Ravi", email=None) if driver_id == "d1" else None,
    )
    monkeypatch.setattr(database, "get_latest_driver_order", lambda driver_id: None)
    monkeypatch.setattr(
        database,
        "get_customers",
        lambda ids: [Customer(customer_id=cid, full_name=f"Customer {cid}", homeaddress=cid) for cid in ids],
    )
    monkeypatch.setattr(database, "get_active_stores", lambda: [make_store()])
    monkeypatch.setattr(database, "insert_orders", writer("orders"))
    monkeypatch.setattr(database, "insert_notifications", writer("notifications"))
    return tables


@pytest.fixture
def client(written) -> TestClient:
    return TestClient(create_app())


def _start(client: TestClient) -> str:
    response = client.post("/api/multi-orders/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_planning_flow_creates_batch(client, written):
    session_id = _start(client)
    base = f"/api/multi-orders/sessions/{session_id}"

    assert client.post(f"{base}/store", json={"store_id": "S1"}).json()["state"] == "store_selected"
    assert client.post(f"{base}/driver", json={"driver_id": "d1"}).status_code == 200
    customers = [{"customer_id": cid} for cid in ("A", "B", "C")]
    assert client.post(f"{base}/customers", json={"customers": customers}).json()["state"] == "destinations_selected"

    body = client.post(f"{base}/routes", json={"return_option": "original"}).json()
    assert body["state"] == "routes_computed"
    assert [leg["destination"] for leg in body["legs"]] == ["B", "A", "C", "D"]
    assert body["legs"][-1]["kind"] == "return"
    assert body["schedule_source"] == "now"

    body = client.post(f"{base}/legs/1/up").json()
    assert [leg["destination"] for leg in body["legs"]] == ["A", "B", "C", "D"]
    assert body["legs"][1]["origin"] == "A"

    assert client.post(f"{base}/review").json()["state"] == "awaiting_confirmation"
    confirmation = client.post(f"{base}/confirm").json()

    assert confirmation["orders_created"] == 4
    assert confirmation["notifications_created"] == 3
    assert len(written["orders"]) == 4
    assert written["notifications"][0]["order_id"] == "orders-1"
    assert client.get(base).status_code == 404


def test_last_store_is_offered_to_new_sessions(client):
    session_id = _start(client)
    client.post(f"/api/multi-orders/sessions/{session_id}/store", json={"store_id": "S1"})

    response = client.post("/api/multi-orders/sessions")
    assert response.json()["last_store_id"] == "S1"


def test_out_of_order_requests_conflict(client):
    session_id = _start(client)
    response = client.post(f"/api/multi-orders/sessions/{session_id}/review")
    assert response.status_code == 409


def test_unknown_store_and_session(client):
    session_id = _start(client)
    assert client.post(f"/api/multi-orders/sessions/{session_id}/store", json={"store_id": "nope"}).status_code == 404
    assert client.get("/api/multi-orders/sessions/missing").status_code == 404


def test_cancel_session(client):
    session_id = _start(client)
    response = client.delete(f"/api/multi-orders/sessions/{session_id}")
    assert response.json()["state"] == "cancelled"
    assert client.get(f"/api/multi-orders/sessions/{session_id}").status_code == 404


def test_calculate_routes(client):
    response = client.post("/api/calculate-routes", json={"origins": ["D"], "destinations": ["A", "B"]})
    body = response.json()
    assert body["success"] is True
    assert [(leg["origin"], leg["destination"]) for leg in body["legs"]] == [("D", "B"), ("B", "A")]
    assert body["legs"][0]["distanceValue"] == 2000


def test_calculate_routes_reports_failures(client):
    body = client.post("/api/calculate-routes", json={"origins": ["D"], "destinations": ["Z"]}).json()
    assert body["success"] is False
    assert "Z" in body["error"]

    body = client.post("/api/calculate-routes", json={"origins": [], "destinations": ["A"]}).json()
    assert body == {"success": False, "legs": [], "error": "Invalid origins or destinations"}


def test_delay_notifications_endpoint(client, monkeypatch, written):
    monkeypatch.setattr(
        database,
        "get_active_orders",
        lambda: [{"id": 9, "status": "confirmed", "time": "5 mins", "created_at": "2020-01-01T00:00:00Z", "driverid": "d1"}],
    )
    body = client.post("/api/notifications/delivery-delays").json()
    assert body == {"checked": 1, "delayed": 1, "notifications_created": 1}
    assert written["notifications"][0]["order_id"] == 9


def test_unknown_batch(client, monkeypatch):
    monkeypatch.setattr(database, "get_batch_orders", lambda batch_id: [])
    assert client.get("/api/batches/batch_x").status_code == 404


def test_database_not_configured(client, monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: None)
    response = client.get("/api/drivers/available")
    assert response.status_code == 503


def test_dependency_health_without_configuration(client, monkeypatch):
    from courier_dispatch.api.routes import health
    from courier_dispatch.config import settings

    monkeypatch.setattr(settings, "google_maps_api_key", None)
    monkeypatch.setattr(health, "get_supabase_client", lambda: None)

    assert client.get("/api/health/distance").json() == {
        "service": "distance-matrix",
        "configured": False,
        "healthy": False,
    }
    assert client.get("/api/health/database").json()["configured"] is False


def test_database_health_counts_active_stores(client, monkeypatch):
    from conftest import FakeSupabase
    from courier_dispatch.api.routes import health

    fake = FakeSupabase({"stores": [{"id": 1, "name": "Depot", "address": "D", "is_active": True}]})
    monkeypatch.setattr(health, "get_supabase_client", lambda: fake)

    body = client.get("/api/health/database").json()
    assert body["connected"] is True
    assert body["active_stores"] == 1


def test_idle_session_expires(client, monkeypatch):
    from datetime import timedelta

    from courier_dispatch.services.routing.session import SessionRegistry

    now = [0.0]
    monkeypatch.setattr(
        routing_service, "registry", SessionRegistry(idle_ttl=timedelta(minutes=60), clock=lambda: now[0])
    )
    session_id = _start(client)
    assert client.get(f"/api/multi-orders/sessions/{session_id}").status_code == 200

    now[0] += 61 * 60
    assert client.get(f"/api/multi-orders/sessions/{session_id}").status_code == 404
