from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from starlette.testclient import TestClient

import smartlocker.presentation.routers as routers
from smartlocker.core.errors import StorageUnavailable
from smartlocker.infrastructure.config import Settings
from smartlocker.main import create_app
from smartlocker.services.lifecycle_service import LifecycleService

ALICE = {"X-User-Id": "1"}
BOB = {"X-User-Id": "2"}


@pytest.fixture()
def event_log(tmp_path: Path) -> Path:
    return tmp_path / "events.jsonl"


@pytest.fixture()
def client(clock, event_log: Path) -> TestClient:
    """
    Full application over an in-memory database seeded with the default
    catalogue (locker 1 at 3.50/h, locker 2 at 5.00/h). The sweeper thread is
    off; sweeps are triggered through the admin route.
    """
    settings = Settings(
        database_url="sqlite+pysqlite:///:memory:",
        event_log_path=event_log,
        sweeper_enabled=False,
    )
    app = create_app(settings=settings, service=LifecycleService(settings=settings, clock=clock))
    with TestClient(app) as c:
        yield c


def test_app_bootstraps_only_when_the_lifespan_starts(clock, event_log: Path) -> None:
    settings = Settings(
        database_url="sqlite+pysqlite:///:memory:",
        event_log_path=event_log,
        sweeper_enabled=False,
    )
    service = LifecycleService(settings=settings, clock=clock)
    app = create_app(settings=settings, service=service)

    assert service.list_lockers.execute() == []
    with TestClient(app) as c:
        assert app.state.lifecycle is service
        assert [l.locker_id for l in service.list_lockers.execute()] == [1, 2]
        assert c.get("/lockers").status_code == 200


def test_module_level_app_is_importable_without_a_database() -> None:
    from smartlocker.main import app

    assert "/sessions" in app.openapi()["paths"]
    assert not hasattr(app.state, "lifecycle")


def _start(client: TestClient, headers: dict[str, str], **overrides: Any):
    body = {"locker_id": 1, "planned_duration_hours": 2}
    body.update(overrides)
    return client.post("/sessions", json=body, headers=headers)


def test_get_lockers_lists_seeded_catalogue(client: TestClient) -> None:
    r = client.get("/lockers")
    assert r.status_code == 200
    lockers = r.json()
    assert [l["id"] for l in lockers] == [1, 2]
    assert lockers[0]["name"] == "Entrée principale"
    assert Decimal(lockers[0]["price_per_hour"]) == Decimal("3.50")
    assert {l["status"] for l in lockers} == {"available"}


def test_get_unknown_locker_returns_404(client: TestClient) -> None:
    assert client.get("/lockers/99").status_code == 404


def test_post_sessions_returns_201_and_occupies_locker(client: TestClient) -> None:
    r = _start(client, ALICE)
    assert r.status_code == 201
    session = r.json()
    assert session["status"] == "active"
    assert session["user_id"] == 1
    assert session["currency"] == "EUR"
    assert session["payment_status"] == "none"
    assert Decimal(session["amount_due"]) == Decimal("7.00")

    locker = client.get("/lockers/1").json()
    assert locker["status"] == "occupied"
    assert locker["current_session_id"] == session["id"]
    assert [l["id"] for l in client.get("/lockers/available").json()] == [2]


def test_post_sessions_without_user_header_returns_401(client: TestClient) -> None:
    r = client.post("/sessions", json={"locker_id": 1, "planned_duration_hours": 1})
    assert r.status_code == 401


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"locker_id": 99, "planned_duration_hours": 1}, 404),
        ({"locker_id": 1, "planned_duration_hours": 0}, 422),
        ({"locker_id": 1, "planned_duration_hours": 24.5}, 422),
        ({"locker_id": 1}, 422),
    ],
)
def test_post_sessions_rejections(client: TestClient, body: dict[str, Any], expected: int) -> None:
    assert client.post("/sessions", json=body, headers=ALICE).status_code == expected


def test_post_sessions_conflicts_return_409(client: TestClient) -> None:
    assert _start(client, ALICE).status_code == 201

    assert _start(client, ALICE, locker_id=2).status_code == 409
    assert _start(client, BOB, locker_id=1).status_code == 409


def test_end_session_early_through_put(client: TestClient, clock) -> None:
    session_id = _start(client, ALICE).json()["id"]
    clock.advance(minutes=30)

    r = client.put(f"/sessions/{session_id}", json={"status": "finished"}, headers=ALICE)

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "finished"
    assert body["payment_status"] == "paid"
    assert Decimal(body["amount_due"]) == Decimal("1.75")
    assert client.get("/lockers/1").json()["status"] == "available"

    again = client.put(f"/sessions/{session_id}", json={"status": "finished"}, headers=ALICE)
    assert again.status_code == 412


def test_put_session_rejects_other_transitions(client: TestClient) -> None:
    session_id = _start(client, ALICE).json()["id"]

    assert client.put(f"/sessions/{session_id}", json={"status": "expired"}, headers=ALICE).status_code == 422
    assert client.put(f"/sessions/{session_id}", json={}, headers=ALICE).status_code == 422
    assert client.put(f"/sessions/{session_id}", json={"payment_status": "paid"}, headers=ALICE).status_code == 412


def test_sessions_of_other_users_are_not_visible(client: TestClient) -> None:
    session_id = _start(client, ALICE).json()["id"]

    assert client.get(f"/sessions/{session_id}", headers=BOB).status_code == 404
    assert client.put(f"/sessions/{session_id}", json={"status": "finished"}, headers=BOB).status_code == 404
    assert client.get(f"/sessions/{session_id}", headers=ALICE).status_code == 200


def test_remaining_time(client: TestClient, clock) -> None:
    session_id = _start(client, ALICE).json()["id"]
    clock.advance(minutes=90)

    r = client.get(f"/sessions/{session_id}/remaining", headers=ALICE)
    assert r.status_code == 200
    assert r.json()["remaining_seconds"] == 30 * 60
    assert r.json()["status"] == "active"

    clock.advance(hours=1)
    assert client.get(f"/sessions/{session_id}/remaining", headers=ALICE).json()["remaining_seconds"] == 0
    assert client.get(f"/sessions/{session_id}/remaining", headers=BOB).status_code == 404
    assert client.get(f"/sessions/{session_id}/remaining").status_code == 401


def test_admin_sweep_expires_and_payment_can_be_recorded_afterwards(client: TestClient, clock) -> None:
    session_id = _start(client, ALICE).json()["id"]
    clock.advance(hours=3)

    r = client.post("/admin/sweeps")
    assert r.status_code == 200
    assert r.json() == {"expired": [session_id], "reclaimed": []}

    expired = client.get(f"/sessions/{session_id}", headers=ALICE).json()
    assert expired["status"] == "expired"
    assert Decimal(expired["amount_due"]) == Decimal("7.00")
    assert client.get("/lockers/1").json()["status"] == "available"

    paid = client.put(f"/sessions/{session_id}", json={"payment_status": "paid"}, headers=ALICE)
    assert paid.status_code == 200
    assert paid.json()["payment_status"] == "paid"
    assert paid.json()["status"] == "expired"

    assert client.post("/admin/sweeps").json() == {"expired": [], "reclaimed": []}


def test_lock_items_and_open(client: TestClient, clock) -> None:
    session_id = _start(client, ALICE, items=["backpack"]).json()["id"]

    items = client.put(f"/sessions/{session_id}/items", json={"items": ["backpack", "laptop"]}, headers=ALICE)
    assert items.status_code == 200
    assert items.json()["items"] == ["backpack", "laptop"]

    clock.advance(minutes=5)
    locked = client.post(f"/sessions/{session_id}/lock", headers=ALICE)
    assert locked.status_code == 200
    assert locked.json()["is_locked"] is True
    assert locked.json()["locked_at"] is not None

    opened = client.post("/lockers/1/open", headers=ALICE)
    assert opened.status_code == 200
    assert opened.json()["last_opened_at"] is not None
    assert client.post("/lockers/1/open", headers=BOB).status_code == 409
    assert client.post("/lockers/2/open", headers=ALICE).status_code == 409


def test_locker_status_administration(client: TestClient) -> None:
    r = client.put("/lockers/2", json={"status": "maintenance"})
    assert r.status_code == 200
    assert r.json()["status"] == "maintenance"
    assert _start(client, ALICE, locker_id=2).status_code == 409

    _start(client, ALICE, locker_id=1)
    assert client.put("/lockers/1", json={"status": "maintenance"}).status_code == 409
    assert client.put("/lockers/2", json={"status": "occupied"}).status_code == 409

    stats = client.get("/lockers/statistics").json()["by_status"]
    assert stats == {"available": 0, "occupied": 1, "maintenance": 1, "out_of_order": 0}


def test_me_sessions_and_stats(client: TestClient, clock) -> None:
    first = _start(client, ALICE, planned_duration_hours=1).json()["id"]
    clock.advance(minutes=30)
    client.put(f"/sessions/{first}", json={"status": "finished"}, headers=ALICE)
    _start(client, ALICE, locker_id=2, planned_duration_hours=1)

    sessions = client.get("/me/sessions", headers=ALICE).json()
    assert len(sessions) == 2
    finished = client.get("/me/sessions", params={"status": "finished"}, headers=ALICE).json()
    assert [s["id"] for s in finished] == [first]

    stats = client.get("/me/stats", headers=ALICE).json()
    assert stats["user_id"] == 1
    assert stats["total_sessions"] == 1
    assert Decimal(stats["total_spent"]) == Decimal("1.75")
    assert Decimal(stats["total_hours"]) == Decimal("0.50")
    assert stats["has_active_session"] is True

    assert client.get("/me/sessions", headers=BOB).json() == []


def test_delete_session_only_once_ended(client: TestClient) -> None:
    session_id = _start(client, ALICE).json()["id"]
    assert client.delete(f"/sessions/{session_id}").status_code == 412

    client.put(f"/sessions/{session_id}", json={"status": "finished"}, headers=ALICE)
    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert client.get(f"/sessions/{session_id}", headers=ALICE).status_code == 404
    assert client.delete(f"/sessions/{session_id}").status_code == 404


def test_lifecycle_events_are_written_to_the_audit_log(client: TestClient, clock, event_log: Path) -> None:
    session_id = _start(client, ALICE).json()["id"]
    clock.advance(minutes=10)
    client.put(f"/sessions/{session_id}", json={"status": "finished"}, headers=ALICE)

    records = [json.loads(line) for line in event_log.read_text(encoding="utf-8").splitlines() if line]
    assert [r["type"] for r in records] == ["SessionStarted", "SessionEnded"]
    assert {r["session_id"] for r in records} == {session_id}


# -----------------------------
# Router-only tests with the service replaced
# -----------------------------
class _Raising:
    def __init__(self, error: Exception) -> None:
        self._error = error

    def execute(self, **kwargs: Any):
        raise self._error


class _FakeService:
    def __init__(self, error: Exception) -> None:
        self.start_session = _Raising(error)
        self.list_lockers = _Raising(error)


@pytest.fixture()
def bare_app() -> FastAPI:
    """A tiny app with ONLY the router; the lifecycle service is overridden per test."""
    test_app = FastAPI()
    test_app.include_router(routers.router)
    return test_app


def test_storage_failure_maps_to_503(bare_app: FastAPI) -> None:
    bare_app.dependency_overrides[routers.get_service] = lambda: _FakeService(StorageUnavailable("db down"))
    client = TestClient(bare_app)

    assert client.get("/lockers").status_code == 503
    r = client.post("/sessions", json={"locker_id": 1, "planned_duration_hours": 1}, headers=ALICE)
    assert r.status_code == 503
    assert r.json()["detail"] == "db down"


def test_driver_failure_on_commit_returns_503_and_leaves_locker_free(client: TestClient) -> None:
    service = client.app.state.lifecycle

    def disk_error(*args, **kwargs) -> None:
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    event.listen(service.session_factory, "before_commit", disk_error)
    try:
        r = _start(client, ALICE)
    finally:
        event.remove(service.session_factory, "before_commit", disk_error)

    assert r.status_code == 503
    assert r.json()["detail"] == "Storage unavailable: OperationalError"
    assert client.get("/lockers/1").json()["status"] == "available"
    assert client.get("/me/sessions", headers=ALICE).json() == []


def test_unexpected_errors_are_not_mapped(bare_app: FastAPI) -> None:
    bare_app.dependency_overrides[routers.get_service] = lambda: _FakeService(RuntimeError("boom"))
    client = TestClient(bare_app, raise_server_exceptions=False)

    assert client.get("/lockers").status_code == 500
