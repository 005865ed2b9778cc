"""
Tests for history persistence through the API and the /api/history endpoints.
Uses a disposable SQLite DB for isolation.
"""
import pytest
from fastapi.testclient import TestClient

from backend.app import app
from backend.db import HistoryStore
from backend import app as app_module

client = TestClient(app)

SCHEMA = "type Query { user(id: ID!): User }"
STORY = "As a user, I want to fetch my profile by id."


class CountingGateway:
    def __init__(self):
        self.n = 0

    def generate(self, prompt):
        self.n += 1
        return f"query q{self.n} {{ user(id: \"1\") {{ id }} }}"


@pytest.fixture(autouse=True)
def patch_store_and_gateway(monkeypatch, tmp_path):
    store = HistoryStore(f"sqlite:///{tmp_path / 'test_history.db'}")
    store.init_schema()
    monkeypatch.setattr(app_module, "history_store", store)
    monkeypatch.setattr(app_module.orchestrator, "store", store)
    monkeypatch.setattr(app_module.orchestrator, "gateway", CountingGateway())
    yield store


def test_generation_is_recorded_and_listed():
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    assert r.status_code == 200
    query = r.json()["data"]

    r2 = client.get("/api/history")
    assert r2.status_code == 200
    records = r2.json()["data"]
    assert len(records) == 1
    rec = records[0]
    assert rec["schema"] == SCHEMA
    assert rec["userStory"] == STORY
    assert rec["generatedQuery"] == query

    r3 = client.get(f"/api/history/{rec['id']}")
    assert r3.status_code == 200
    assert r3.json()["data"] == rec


def test_history_limit_and_order():
    for _ in range(4):
        client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    records = client.get("/api/history", params={"limit": 3}).json()["data"]
    assert len(records) == 3
    assert [r["generatedQuery"].split()[1] for r in records] == ["q4", "q3", "q2"]


def test_failed_validation_records_nothing():
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": ""})
    assert r.status_code == 400
    assert client.get("/api/history").json()["data"] == []


def test_history_limit_out_of_range():
    assert client.get("/api/history", params={"limit": 0}).status_code == 422
    assert client.get("/api/history", params={"limit": 101}).status_code == 422


def test_history_not_found():
    r = client.get("/api/history/999")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "History record not found"}


def test_unavailable_store_keeps_generation_successful(monkeypatch, tmp_path):
    broken = HistoryStore(f"sqlite:///{tmp_path / 'no-such-dir' / 'history.db'}")
    monkeypatch.setattr(app_module, "history_store", broken)
    monkeypatch.setattr(app_module.orchestrator, "store", broken)

    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert client.get("/api/history").json() == {"success": True, "data": []}
