"""Tests for server.py Flask endpoints: all orchestrator calls are mocked."""

import json
from unittest.mock import patch

import pytest

from core.errors import PipelineError, TransportError
from core.state import ProgressEvent, ProjectResult, RepoResult, Stage
from conftest import make_files, make_manifest


def _events(resp):
    """Parse a text/event-stream body into JSON payloads."""
    body = resp.get_data(as_text=True)
    return [json.loads(chunk[len("data: "):]) for chunk in body.split("\n\n") if chunk.startswith("data: ")]


@pytest.fixture
def client():
    import server
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


def test_health_reports_configuration(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "ok"
    assert set(data) == {"status", "anthropic", "github", "vercel"}


@pytest.mark.parametrize("body", [None, {}, {"brief": "   "}, {"brief": 42}])
def test_create_requires_brief(client, body):
    resp = client.post("/api/create", json=body) if body is not None else client.post("/api/create")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing brief"


def test_create_streams_events_and_result(client):
    result = ProjectResult(
        manifest=make_manifest(),
        files=make_files(),
        repo=RepoResult(repo_url="https://github.com/octo/habit-tracker",
                        repo_name="habit-tracker", owner="octo"),
    )

    def fake_stream(brief):
        yield ProgressEvent(Stage.GENERATING_PRD, "Analyzing", 10)
        yield ProgressEvent(Stage.COMPLETED, "Done", 100)
        yield result

    with patch("server.orchestrator") as orch:
        orch.stream_project.side_effect = fake_stream
        resp = client.post("/api/create", json={"brief": "  A habit tracker with streaks "})
        events = _events(resp)

    assert resp.mimetype == "text/event-stream"
    orch.stream_project.assert_called_once_with("A habit tracker with streaks")
    assert [e["status"] for e in events] == ["generating_prd", "completed", "completed"]
    assert events[-1]["result"]["repo_url"] == "https://github.com/octo/habit-tracker"
    assert events[-1]["result"]["project_name"] == "habit-tracker"


def test_create_streams_failure(client):
    def fake_stream(brief):
        yield ProgressEvent(Stage.CREATING_REPO, "Creating repository", 60)
        raise PipelineError(Stage.CREATING_REPO, TransportError("Bad credentials", "github", status=401))

    with patch("server.orchestrator") as orch:
        orch.stream_project.side_effect = fake_stream
        resp = client.post("/api/create", json={"brief": "A habit tracker with streaks"})
        events = _events(resp)

    last = events[-1]
    assert last["status"] == "error"
    assert last["stage"] == "creating_repo"
    assert last["kind"] == "TransportError"
    assert "Bad credentials" in last["error"]
