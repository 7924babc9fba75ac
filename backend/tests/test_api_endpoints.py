"""Integration tests for the FastAPI endpoints.

Runs execute in-process on the test's event loop with MockGenerator injected
through the get_generator dependency.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from superarchitect.engine.status import AGENT_ROSTER, PROJECT_LEAD


async def _wait_settled(client, run_id: str) -> dict:
    for _ in range(500):
        body = (await client.get(f"/api/v1/runs/{run_id}")).json()
        if body["phase"] in ("completed", "failed"):
            return body
        await asyncio.sleep(0.01)
    raise AssertionError(f"run {run_id} did not settle")


def _parse_sse(text: str) -> list[tuple[str, dict]]:
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["generator"] in ("mock", "gemini")

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        resp = await client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 36


class TestAgents:
    @pytest.mark.asyncio
    async def test_lists_roster(self, client):
        resp = await client.get("/api/v1/agents")
        assert resp.status_code == 200
        assert [a["agent_id"] for a in resp.json()] == [a.agent_id for a in AGENT_ROSTER]


class TestCreateRun:
    """POST /api/v1/runs"""

    @pytest.mark.asyncio
    async def test_creates_run(self, client, brief_payload):
        resp = await client.post("/api/v1/runs", json=brief_payload)
        assert resp.status_code == 201
        run_id = resp.json()["run_id"]
        assert len(run_id) == 36
        body = await _wait_settled(client, run_id)
        assert body["phase"] == "completed"
        assert body["error"] is None
        assert len(body["designs"]) == 1
        design = body["designs"][0]
        assert len(design["exterior_views"]) == 2
        assert len(design["floor_plans"]) == 1
        assert design["cost_analysis"]["currency"] == "USD"
        assert all(s["state"] == "complete" for s in body["statuses"])

    @pytest.mark.asyncio
    async def test_invalid_brief(self, client, brief_payload):
        del brief_payload["dimensions"]
        resp = await client.post("/api/v1/runs", json=brief_payload)
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "invalid_brief"
        assert "dimensions" in body["message"]
        assert body["retryable"] is False

    @pytest.mark.asyncio
    async def test_brief_without_sub_spaces(self, client, brief_payload):
        brief_payload["sub_spaces"] = []
        resp = await client.post("/api/v1/runs", json=brief_payload)
        assert resp.status_code == 422
        assert resp.json()["error"] == "invalid_brief"

    @pytest.mark.asyncio
    async def test_failed_run_reports_error(self, client, brief_payload, mock_generator):
        mock_generator.concept_payload = []
        run_id = (await client.post("/api/v1/runs", json=brief_payload)).json()["run_id"]
        body = await _wait_settled(client, run_id)
        assert body["phase"] == "failed"
        assert body["designs"] is None
        assert body["error"]["agent_id"] == "Concept Architect"
        assert "no designs" in body["error"]["message"]


class TestGetRun:
    @pytest.mark.asyncio
    async def test_not_found(self, client):
        resp = await client.get("/api/v1/runs/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "run_not_found", "message": "Run not found", "retryable": False}

    @pytest.mark.asyncio
    async def test_events_not_found(self, client):
        resp = await client.get("/api/v1/runs/nope/events")
        assert resp.status_code == 404


class TestRunEvents:
    """GET /api/v1/runs/{id}/events"""

    @pytest.mark.asyncio
    async def test_stream_snapshot_events_and_end(self, client, brief_payload, mock_generator):
        mock_generator.latency = 0.005
        run_id = (await client.post("/api/v1/runs", json=brief_payload)).json()["run_id"]
        resp = await client.get(f"/api/v1/runs/{run_id}/events")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")

        events = _parse_sse(resp.text)
        assert events[0][0] == "snapshot"
        assert events[-1][0] == "end"
        assert events[-1][1]["phase"] == "completed"
        statuses = [data for name, data in events if name == "status"]
        sequences = [s["sequence"] for s in statuses]
        assert sequences == sorted(sequences)
        assert statuses[-1]["state"] == "complete"

    @pytest.mark.asyncio
    async def test_stream_after_settled(self, client, brief_payload):
        run_id = (await client.post("/api/v1/runs", json=brief_payload)).json()["run_id"]
        await _wait_settled(client, run_id)
        events = _parse_sse((await client.get(f"/api/v1/runs/{run_id}/events")).text)
        assert [name for name, _ in events] == ["snapshot", "end"]


class TestSessions:
    @pytest.fixture
    async def session_id(self, client):
        resp = await client.post("/api/v1/sessions")
        assert resp.status_code == 201
        return resp.json()["session_id"]

    @pytest.mark.asyncio
    async def test_conversation(self, client, session_id):
        first = await client.post(f"/api/v1/sessions/{session_id}/messages", json={"message": "Hi"})
        second = await client.post(f"/api/v1/sessions/{session_id}/messages", json={"message": "Roof?"})
        assert first.status_code == 200
        assert first.json()["turns"] == 1
        assert second.json()["turns"] == 2
        assert "Roof?" in second.json()["reply"]

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, client, session_id):
        resp = await client.post(f"/api/v1/sessions/{session_id}/messages", json={"message": ""})
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_assistant_unavailable(self, client, session_id, mock_generator):
        mock_generator.fail_tasks.add("assistant")
        resp = await client.post(f"/api/v1/sessions/{session_id}/messages", json={"message": "Hi"})
        assert resp.status_code == 503
        body = resp.json()
        assert body["error"] == "assistant_unavailable"
        assert body["retryable"] is True

    @pytest.mark.asyncio
    async def test_unknown_session(self, client):
        resp = await client.post("/api/v1/sessions/missing/messages", json={"message": "Hi"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "session_not_found"

    @pytest.mark.asyncio
    async def test_avatar(self, client, session_id, mock_generator):
        resp = await client.get(f"/api/v1/sessions/{session_id}/avatars/{PROJECT_LEAD}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["agent_id"] == PROJECT_LEAD
        assert body["image_uri"].startswith("data:image/png")
        await client.get(f"/api/v1/sessions/{session_id}/avatars/{PROJECT_LEAD}")
        assert mock_generator.tasks().count("avatar") == 1

    @pytest.mark.asyncio
    async def test_avatar_unknown_agent(self, client, session_id):
        resp = await client.get(f"/api/v1/sessions/{session_id}/avatars/Nobody")
        assert resp.status_code == 404
        assert resp.json()["error"] == "agent_not_found"


class TestShutdown:
    @pytest.mark.asyncio
    async def test_unfinished_runs_cancelled(self, client, brief_payload, mock_generator):
        from superarchitect.api.routes.runs import cancel_unfinished_runs

        mock_generator.latency = {"concept": 5.0}
        run_id = (await client.post("/api/v1/runs", json=brief_payload)).json()["run_id"]
        assert await cancel_unfinished_runs() == 1
        assert await cancel_unfinished_runs() == 0
        body = (await client.get(f"/api/v1/runs/{run_id}")).json()
        assert body["phase"] == "concept_in_progress"
        assert body["designs"] is None

    @pytest.mark.asyncio
    async def test_lifespan_cancels_on_exit(self, client, brief_payload, mock_generator):
        from superarchitect.api.main import app, lifespan

        mock_generator.latency = {"concept": 5.0}
        async with lifespan(app):
            run_id = (await client.post("/api/v1/runs", json=brief_payload)).json()["run_id"]
        events = _parse_sse((await client.get(f"/api/v1/runs/{run_id}/events")).text)
        assert [name for name, _ in events] == ["snapshot", "end"]
