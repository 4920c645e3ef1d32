"""
Tests for the HTTP API.
"""

import sys
import os

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.main import app
from studio_scheduler.api import routes
from studio_scheduler.services.session import ScheduleSession

from sample_data import week_rows, perf_row, priority_row, KWALITY, SUPREME


@pytest.fixture
def client():
    routes.session = ScheduleSession()
    routes._loaded_payload = {}
    return TestClient(app)


def _load(client, priorities=None):
    response = client.post("/api/data", json={
        "performance": week_rows() + [perf_row("Studio FIT", "Monday", "08:00", SUPREME, "Anisha Shah")],
        "priorities": priorities or [
            priority_row("Studio FIT", "Monday", "08:00", SUPREME, "Anisha Shah", rank=1)
        ]
    })
    assert response.status_code == 200
    return response.json()


def _class(class_id, day, time, location, teacher, class_format="Studio Barre 57"):
    return {
        "id": class_id,
        "day": day,
        "time": time,
        "location": location,
        "classFormat": class_format,
        "teacherName": teacher
    }


def test_health_and_root(client):
    assert client.get("/api/health").json()["status"] == "healthy"
    assert client.get("/").json()["message"] == "Studio Class Scheduling API"


def test_load_data_reports_counts(client):
    body = _load(client)
    assert body["success"] is True
    assert body["performance_records"] == len(week_rows()) + 1
    assert body["priority_entries"] == 1
    assert KWALITY in body["locations"]


def test_seed_then_schedule_shows_ledger(client):
    _load(client)
    response = client.post("/api/schedule/seed", json={})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["schedule"]) == 1

    schedule = client.get("/api/schedule").json()
    assert schedule["teacher_hours"] == {"Anisha Shah": 1.0}
    assert schedule["can_undo"] is False
    assert schedule["limits"]["max_hours"] == 15.0


def test_add_class_override_flow(client):
    _load(client)
    days = ["Monday", "Tuesday", "Wednesday", "Thursday"]
    times = ["07:00", "08:00", "09:00", "10:00"]
    classes = [
        _class(f"c{i}", days[i // 4], times[i % 4], KWALITY, "Anisha Shah")
        for i in range(14)
    ]
    response = client.post("/api/schedule/apply", json={"instances": classes})
    assert response.json()["success"] is True

    extra = _class("extra", "Friday", "18:00", KWALITY, "Anisha Shah")
    refused = client.post("/api/schedule/classes", json={"candidate": extra}).json()
    assert refused["success"] is False
    assert refused["outcome"]["requires_override"] is True
    assert len(refused["schedule"]) == 14

    accepted = client.post("/api/schedule/classes", json={"candidate": extra, "override": True}).json()
    assert accepted["success"] is True
    assert accepted["outcome"]["teacher_hours"]["Anisha Shah"] == 15.0


def test_edit_remove_undo(client):
    _load(client)
    client.post("/api/schedule/classes", json={"candidate": _class("a", "Monday", "09:00", KWALITY, "Rohan Dahima")})

    updated = client.put("/api/schedule/classes/a", json={"changes": {"time": "18:00"}}).json()
    assert updated["success"] is True
    assert updated["schedule"][0]["time"] == "18:00"

    removed = client.delete("/api/schedule/classes/a").json()
    assert removed["schedule"] == []

    restored = client.post("/api/schedule/undo").json()
    assert restored["schedule"][0]["time"] == "18:00"


def test_lock_classes_endpoint(client):
    _load(client)
    client.post("/api/schedule/classes", json={"candidate": _class("a", "Monday", "09:00", KWALITY, "Rohan Dahima")})
    body = client.post("/api/schedule/lock-classes", json={"names": ["a"]}).json()
    assert body["success"] is True
    assert client.get("/api/schedule").json()["locks"]["classIds"] == ["a"]


def test_invalid_class_is_rejected(client):
    _load(client)
    response = client.post("/api/schedule/classes", json={"candidate": {
        "day": "Funday", "time": "09:00", "location": KWALITY,
        "classFormat": "Studio FIT", "teacherName": "Rohan Dahima"
    }})
    assert response.status_code == 422


def test_busy_session_returns_conflict(client):
    routes.session._running = "optimize"
    try:
        response = client.post("/api/schedule/clear")
        assert response.status_code == 409
    finally:
        routes.session._running = None


def test_async_operation_validation(client):
    assert client.post("/api/schedule/async/teleport", json={}).status_code == 404
    assert client.post("/api/schedule/async/optimize", json={}).status_code == 400


def test_invalid_roster_is_rejected(client):
    response = client.post("/api/data", json={
        "performance": week_rows(),
        "roster": {"teachers": [{"firstName": "Anisha", "lastName": "Shah", "priorityTier": "urgent"}]}
    })
    assert response.status_code == 422

    response = client.post("/api/data", json={"performance": week_rows(), "roster": {"maxHours": "lots"}})
    assert response.status_code == 422
