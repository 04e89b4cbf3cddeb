"""
HTTP glue tests: the FastAPI app wired to a store in a temporary directory.
"""
from __future__ import annotations

import json
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Make the eventease package importable during local test runs
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from eventease.app import create_app  # noqa: E402
from eventease.core.config import Settings  # noqa: E402
from eventease.domain.errors import CorruptDataError  # noqa: E402


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        app_env="test",
        data_file=tmp_path / "data" / "events.json",
        backup_dir=tmp_path / "backups",
        backup_retention=5,
        backup_interval_seconds=0,
        capacity_policy="reject",
        autoflush=True,
        log_level="WARNING",
        log_file=None,
        cors_origins=(),
    )


@pytest.fixture()
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _new_event(**overrides) -> dict:
    data = {
        "title": "AI Summit",
        "description": "Talks about applied AI",
        "date": "2030-05-01",
        "time": "10:00",
        "location": "Hall A",
        "category": "Tech",
        "capacity": 1,
        "price": 25,
    }
    data.update(overrides)
    return data


def test_startup_seeds_missing_file(client, settings):
    res = client.get("/api/events")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["total"] == 3
    assert [item["id"] for item in body["data"]] == ["1", "2", "3"]
    assert settings.data_file.exists()


def test_requests_before_startup_get_503(settings):
    test_client = TestClient(create_app(settings))
    res = test_client.get("/api/events")
    assert res.status_code == 503
    assert res.json()["error"] == "not_ready"


def test_startup_with_corrupt_file_aborts(settings):
    settings.data_file.parent.mkdir(parents=True)
    settings.data_file.write_text("{broken", encoding="utf-8")
    with pytest.raises(CorruptDataError):
        with TestClient(create_app(settings)):
            pass
    assert settings.data_file.read_text(encoding="utf-8") == "{broken"


def test_create_update_register_delete_flow(client, settings):
    res = client.post("/api/events", json=_new_event())
    assert res.status_code == 201
    event = res.json()["data"]
    assert event["attendees"] == 0
    assert event["status"] == "upcoming"

    res = client.put(f"/api/events/{event['id']}", json={"price": 30})
    assert res.status_code == 200
    assert res.json()["data"]["price"] == 30

    res = client.post(f"/api/events/{event['id']}/register")
    assert res.status_code == 200
    assert res.json()["data"]["attendees"] == 1

    res = client.post(f"/api/events/{event['id']}/register")
    assert res.status_code == 400
    assert res.json() == {"ok": False, "error": "capacity_exceeded", "message": "Event is at full capacity"}

    res = client.delete(f"/api/events/{event['id']}")
    assert res.status_code == 200
    assert client.get(f"/api/events/{event['id']}").status_code == 404

    on_disk = json.loads(settings.data_file.read_text(encoding="utf-8"))
    assert event["id"] not in [item["id"] for item in on_disk]


def test_create_missing_fields_is_400(client):
    res = client.post("/api/events", json={"title": "Only title"})
    assert res.status_code == 400
    assert res.json()["error"] == "invalid"


def test_update_violating_capacity_is_400(client):
    event = client.post("/api/events", json=_new_event(capacity=5)).json()["data"]
    client.post(f"/api/events/{event['id']}/register")
    res = client.put(f"/api/events/{event['id']}", json={"capacity": 0})
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_state"


def test_unknown_event_is_404(client):
    assert client.get("/api/events/nope").status_code == 404
    assert client.put("/api/events/nope", json={"title": "x"}).status_code == 404
    assert client.delete("/api/events/nope").status_code == 404
    assert client.post("/api/events/nope/register").status_code == 404


def test_filter_categories_and_stats(client):
    client.post("/api/events", json=_new_event(title="Old Meetup", status="completed", capacity=10))
    client.post("/api/events", json=_new_event(title="New Meetup", status="upcoming", capacity=10))

    res = client.get("/api/events", params={"category": "tech", "status": "upcoming"})
    titles = [item["title"] for item in res.json()["data"]]
    assert titles == ["New Meetup"]

    res = client.get("/api/events", params={"search": "festival"})
    assert [item["id"] for item in res.json()["data"]] == ["2"]

    categories = client.get("/api/categories").json()["data"]
    assert categories == ["Technology", "Entertainment", "Business", "Tech"]

    stats = client.get("/api/stats").json()["data"]
    assert stats["totalEvents"] == 5
    assert stats["upcomingCount"] == 1
    assert stats["completedCount"] == 4
    assert stats["totalAttendees"] == 120 + 850 + 180
    assert stats["totalRevenue"] == 120 * 299 + 850 * 150 + 180 * 75


def test_backup_endpoints(client, settings):
    res = client.post("/api/backups")
    assert res.status_code == 201
    backup_id = res.json()["data"]["id"]
    assert res.json()["data"]["events"] == 3

    listing = client.get("/api/backups").json()
    assert listing["total"] == 1
    assert listing["data"][0]["id"] == backup_id
    assert (settings.backup_dir / f"{backup_id}.json").exists()


def test_deferred_flush_is_written_on_shutdown(settings):
    deferred = replace(settings, autoflush=False)
    with TestClient(create_app(deferred)) as test_client:
        created = test_client.post("/api/events", json=_new_event()).json()["data"]
    on_disk = json.loads(deferred.data_file.read_text(encoding="utf-8"))
    assert created["id"] in [item["id"] for item in on_disk]
