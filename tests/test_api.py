"""Tests for the FastAPI moderation endpoints."""

import tempfile
import threading
import time
from pathlib import Path

from fastapi.testclient import TestClient

from filterwave.decisions.store import DecisionLog
from filterwave.moderation.pipeline import ModerationPipeline
from web.backend.app.main import app
from web.backend.app.routers import moderation as moderation_router
from web.backend.app.routers.moderation import get_pipeline


def _client(tmpdir) -> TestClient:
    pipeline = ModerationPipeline(DecisionLog(Path(tmpdir)))
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    return TestClient(app)


def teardown_function():
    app.dependency_overrides.clear()


def test_health():
    with tempfile.TemporaryDirectory() as tmpdir:
        resp = _client(tmpdir).get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


def test_moderate_flagged():
    with tempfile.TemporaryDirectory() as tmpdir:
        resp = _client(tmpdir).post("/api/moderate", json={"content": "you are stupid and worthless"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["flagged"] is True
        assert data["method"] == "rule_based"
        assert data["confidence"] == 0.8
        assert "hate_speech" in data["categories"]
        assert data["decision_id"]
        assert data["timestamp"]
        assert data["user_authenticated"] is False


def test_moderate_authenticated_caller():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(tmpdir)
        resp = client.post(
            "/api/moderate",
            json={"content": "The weather is nice today"},
            headers={"X-User-Id": "42"},
        )
        data = resp.json()
        assert data["flagged"] is False
        assert data["categories"] == []
        assert data["user_authenticated"] is True

        stats = client.get("/api/stats", headers={"X-User-Id": "42"}).json()
        assert stats["user_authenticated"] is True
        assert stats["stats"][0]["total_scans"] == 1


def test_moderate_rejects_empty_and_oversized():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(tmpdir)
        assert client.post("/api/moderate", json={"content": ""}).status_code == 400
        assert client.post("/api/moderate", json={"content": "a" * 5001}).status_code == 400
        assert client.get("/api/stats").json()["stats"] == []


def test_blank_user_header_is_anonymous():
    with tempfile.TemporaryDirectory() as tmpdir:
        resp = _client(tmpdir).post(
            "/api/moderate", json={"content": "hi"}, headers={"X-User-Id": "   "}
        )
        assert resp.json()["user_authenticated"] is False


def test_feedback_flow():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(tmpdir)
        decision_id = client.post("/api/moderate", json={"content": "nude beach"}).json()["decision_id"]

        resp = client.post(
            "/api/feedback",
            json={"moderationLogId": decision_id, "feedbackType": "disagree", "comment": "It's a place"},
        )
        assert resp.status_code == 200
        feedback_id = resp.json()["id"]

        detail = client.get(f"/api/decisions/{decision_id}").json()
        assert detail["result"]["categories"] == ["explicit"]
        assert detail["feedback"][0]["id"] == feedback_id
        assert detail["feedback"][0]["feedback_type"] == "disagree"


def test_feedback_unknown_decision():
    with tempfile.TemporaryDirectory() as tmpdir:
        resp = _client(tmpdir).post(
            "/api/feedback", json={"moderationLogId": "nope", "feedbackType": "agree"}
        )
        assert resp.status_code == 404


def test_feedback_missing_type():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(tmpdir)
        decision_id = client.post("/api/moderate", json={"content": "hi"}).json()["decision_id"]
        resp = client.post("/api/feedback", json={"moderationLogId": decision_id, "feedbackType": ""})
        assert resp.status_code == 400


def test_unknown_decision_404():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert _client(tmpdir).get("/api/decisions/missing").status_code == 404


def test_pipeline_singleton_is_built_once_under_concurrency(monkeypatch):
    built = []
    barrier = threading.Barrier(8)

    def slow_build(settings):
        time.sleep(0.05)
        pipeline = object()
        built.append(pipeline)
        return pipeline

    monkeypatch.setattr(moderation_router, "_pipeline", None)
    monkeypatch.setattr(moderation_router.ModerationPipeline, "from_settings", slow_build)

    seen = []

    def worker():
        barrier.wait()
        seen.append(get_pipeline())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(built) == 1
    assert len(seen) == 8
    assert all(p is built[0] for p in seen)
