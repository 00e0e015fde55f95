from __future__ import annotations

import random

import pytest
from fastapi.testclient import TestClient

from rehearsal import fallbacks
from rehearsal.main import app, get_services
from rehearsal.services import InterviewServices
from rehearsal.speech import GREETING


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    services = InterviewServices(rng=random.Random(21))
    app.dependency_overrides[get_services] = lambda: services
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def receive_until(ws, predicate, limit: int = 100):
    for _ in range(limit):
        message = ws.receive_json()
        if predicate(message):
            return message
    raise AssertionError("expected message never arrived")


class TestHttpRoutes:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_evaluate_without_key_returns_checklist(self, client):
        resp = client.post("/api/evaluate", json={"question": "Two Sum", "code": "def f(): pass"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["source"] == "fallback"
        assert "### Checklist" in body["evaluation"]
        assert body["evaluation"] == fallbacks.fallback_evaluation("Two Sum", "def f(): pass")

    def test_evaluate_blank_code_is_rejected(self, client):
        resp = client.post("/api/evaluate", json={"question": "Two Sum", "code": "   "})
        assert resp.status_code == 400
        assert resp.json() == {"error": "question and code required"}

    def test_generate_returns_bank_question(self, client):
        resp = client.post("/api/generate", json={"company": "Google"})
        assert resp.status_code == 200
        body = resp.json()
        expected = fallbacks.fallback_question(random.Random(21))
        assert body == {"question": expected.question, "starterCode": expected.starter_code, "source": "fallback"}

    def test_generate_requires_company(self, client):
        resp = client.post("/api/generate", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "company required"}

    def test_interview_feedback_uses_time_spent(self, client):
        resp = client.post(
            "/api/interview-feedback",
            json={"company": "Stripe", "question": "Two Sum", "code": "def f(): pass", "timeSpent": 125},
        )
        assert resp.status_code == 200
        assert "**Time Spent:** 2m 5s" in resp.json()["feedback"]

    def test_interview_feedback_requires_code(self, client):
        resp = client.post("/api/interview-feedback", json={"question": "Two Sum"})
        assert resp.status_code == 400

    def test_review_resume(self, client):
        resp = client.post("/api/review-resume", json={"resumeText": "Backend engineer, 5 years"})
        assert resp.status_code == 200
        assert resp.json()["review"].startswith("## Resume Review")

    def test_review_resume_requires_text(self, client):
        resp = client.post("/api/review-resume", json={"resumeText": ""})
        assert resp.status_code == 400
        assert resp.json() == {"error": "resumeText required"}


class TestSessionSocket:
    def test_question_and_evaluation_flow(self, client):
        with client.websocket_connect("/ws/session") as ws:
            ready = ws.receive_json()
            assert ready["type"] == "session_ready"
            assert ready["state"]["remainingSeconds"] == ready["state"]["durationMinutes"] * 60

            ws.send_json({"type": "set_company", "company": "Google"})
            state = receive_until(ws, lambda m: m["type"] == "state")
            assert state["state"]["company"] == "Google"

            ws.send_json({"type": "generate_question"})
            state = receive_until(ws, lambda m: m["type"] == "state" and m["state"]["question"])
            assert state["state"]["running"]
            assert state["state"]["sources"]["question"] == "fallback"

            ws.send_json({"type": "evaluate", "code": "def f(): pass"})
            state = receive_until(ws, lambda m: m["type"] == "state" and m["state"]["evaluation"])
            assert "### Checklist" in state["state"]["evaluation"]

            ws.send_json({"type": "end_interview"})
            feedback = receive_until(ws, lambda m: m["type"] == "feedback")
            assert feedback["source"] == "fallback"
            assert "End of Interview Feedback" in feedback["feedback"]

    def test_validation_errors_are_reported(self, client):
        with client.websocket_connect("/ws/session") as ws:
            ws.receive_json()
            ws.send_json({"type": "generate_question"})
            error = receive_until(ws, lambda m: m["type"] == "error")
            assert error["message"] == "company required"

            ws.send_json({"type": "end_interview"})
            error = receive_until(ws, lambda m: m["type"] == "error")
            assert error["message"] == "question and code required for feedback"

            ws.send_text("not json")
            error = receive_until(ws, lambda m: m["type"] == "error")
            assert error["message"] == "Payload must be JSON"

            ws.send_json({"type": "dance"})
            error = receive_until(ws, lambda m: m["type"] == "error")
            assert "dance" in error["message"]

    def test_unsupported_speech_runtime(self, client):
        with client.websocket_connect("/ws/session") as ws:
            ws.receive_json()
            ws.send_json({"type": "start_call", "supported": False})
            error = receive_until(ws, lambda m: m["type"] == "error")
            assert error["kind"] == "speech_unsupported"
            assert "Chrome or Edge" in error["message"]

    def test_voice_call_commands(self, client):
        with client.websocket_connect("/ws/session") as ws:
            ws.receive_json()
            ws.send_json({"type": "start_call"})
            assert receive_until(ws, lambda m: m["type"] == "listen")
            greeting = receive_until(ws, lambda m: m["type"] == "speak")
            assert greeting["text"] == GREETING
            state = receive_until(ws, lambda m: m["type"] == "state")
            assert state["state"]["voiceConnected"]

            ws.send_json({"type": "transcript", "text": "interview for Netflix", "final": True})
            command = receive_until(ws, lambda m: m["type"] == "voice_command")
            assert command["command"] == "set_company"
            assert command["company"] == "Netflix"
            assert command["applied"]

            ws.send_json({"type": "recognition_end"})
            assert receive_until(ws, lambda m: m["type"] == "listen")

            ws.send_json({"type": "end_call"})
            assert receive_until(ws, lambda m: m["type"] == "cancel_speech")
            state = receive_until(ws, lambda m: m["type"] == "state")
            assert not state["state"]["voiceConnected"]
