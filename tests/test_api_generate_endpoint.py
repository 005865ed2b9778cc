import pytest
from fastapi.testclient import TestClient

from backend.app import app
from backend.errors import UpstreamError, E_UPSTREAM
from backend.schemas import GenerationResult

# import the orchestrator instance to monkeypatch it
from backend import app as app_module
orchestrator = app_module.orchestrator  # the single instance created in backend.app

SCHEMA = "type Query { user(id: ID!): User }"
STORY = "As a user, I want to fetch my profile by id."
QUERY = 'query { user(id: "1") { id name } }'


class FakeGateway:
    def __init__(self, result=QUERY, error=None):
        self.result = result
        self.error = error
        self.calls = 0

    def generate(self, prompt):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


class NullStore:
    def append(self, schema, user_story, generated_query):
        raise RuntimeError("not wired in this test")

    def list_recent(self, limit):
        return []


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def isolate_store(monkeypatch):
    monkeypatch.setattr(orchestrator, "store", NullStore())


def test_generate_success(monkeypatch, client):
    monkeypatch.setattr(orchestrator, "handle_request", lambda schema, story: GenerationResult.ok(QUERY))
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": QUERY}


def test_generate_upstream_error_is_502(monkeypatch, client):
    monkeypatch.setattr(
        orchestrator, "handle_request",
        lambda schema, story: GenerationResult.fail("Failed to generate query: rate limited",
                                                    details='{"error":"rate limited"}',
                                                    error_code=E_UPSTREAM),
    )
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    assert r.status_code == 502
    j = r.json()
    assert j["success"] is False
    assert "rate limited" in j["error"]
    assert j["details"] == '{"error":"rate limited"}'
    assert "error_code" not in j


@pytest.mark.parametrize("payload,message", [
    ({"userStory": STORY}, "Please upload a GraphQL schema file"),
    ({"schema": SCHEMA, "userStory": ""}, "Please upload a user story file"),
    ({}, "Please upload a GraphQL schema file"),
])
def test_generate_validation_is_400_without_gateway_call(monkeypatch, client, payload, message):
    gw = FakeGateway()
    monkeypatch.setattr(orchestrator, "gateway", gw)
    r = client.post("/api/generate", json=payload)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": message}
    assert gw.calls == 0


def test_generate_through_real_orchestrator(monkeypatch, client):
    monkeypatch.setattr(orchestrator, "gateway", FakeGateway(error=UpstreamError("Failed to generate query: boom")))
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    assert r.status_code == 502
    assert r.json()["error"] == "Failed to generate query: boom"


def test_generate_unexpected_exception_is_500(monkeypatch, client):
    def explode(schema, story):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(orchestrator, "handle_request", explode)
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY})
    assert r.status_code == 500
    j = r.json()
    assert j["success"] is False
    assert j["error"] == "An unexpected error occurred"
    assert j["details"] == "kaboom"


def test_cors_preflight(client):
    r = client.options(
        "/api/generate",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type, apikey",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert "content-type" in r.headers["access-control-allow-headers"].lower()


def test_cors_header_on_simple_request(monkeypatch, client):
    monkeypatch.setattr(orchestrator, "handle_request", lambda schema, story: GenerationResult.ok(QUERY))
    r = client.post("/api/generate", json={"schema": SCHEMA, "userStory": STORY},
                    headers={"Origin": "http://localhost:5173"})
    assert r.headers["access-control-allow-origin"] == "*"


@pytest.mark.parametrize("payload,message", [
    ({"schema": None, "userStory": STORY}, "Please upload a GraphQL schema file"),
    ({"schema": SCHEMA, "userStory": None}, "Please upload a user story file"),
])
def test_generate_null_field_is_missing_input(monkeypatch, client, payload, message):
    gw = FakeGateway()
    monkeypatch.setattr(orchestrator, "gateway", gw)
    r = client.post("/api/generate", json=payload)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": message}
    assert gw.calls == 0


@pytest.mark.parametrize("kwargs", [
    {"json": {"schema": 5, "userStory": STORY}},
    {"json": {"schema": SCHEMA, "userStory": ["a", "list"]}},
    {"content": b"not json", "headers": {"content-type": "application/json"}},
])
def test_generate_bad_body_keeps_envelope(monkeypatch, client, kwargs):
    gw = FakeGateway()
    monkeypatch.setattr(orchestrator, "gateway", gw)
    r = client.post("/api/generate", **kwargs)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": app_module.INVALID_BODY_MESSAGE}
    assert gw.calls == 0


def test_other_endpoints_keep_default_validation_errors(client):
    r = client.get("/api/history", params={"limit": "many"})
    assert r.status_code == 422
    assert "detail" in r.json()
