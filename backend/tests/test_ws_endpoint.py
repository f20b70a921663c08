import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCatalog, FakeCompletion, FakeSynthesizer, FakeTranscriber, MemoryRecordStore, PassthroughTranscoder
from interviewiq.api import ws_interview
from interviewiq.main import app
from interviewiq.services.coaching_service import CoachingService
from interviewiq.services.question_audio import QuestionAudioRenderer
from interviewiq.services.question_service import QuestionGenerator
from interviewiq.session.artifact_store import ArtifactStore
from interviewiq.session.orchestrator import InterviewSession
from interviewiq.vocal.pipeline import VocalResponsePipeline

QUESTIONS = ["Describe a Python project.", "Tell me about a team conflict."]


class _FakeProvider:
    def __init__(self, artifact_root: str):
        self.artifact_root = artifact_root
        self.store = MemoryRecordStore()

    def create_session(self, session_id: str, send_fn) -> InterviewSession:
        return InterviewSession(
            session_id=session_id,
            send_fn=send_fn,
            question_generator=QuestionGenerator(
                completion=FakeCompletion(replies=[json.dumps({"questions": QUESTIONS})])
            ),
            audio_renderer=QuestionAudioRenderer(catalog=FakeCatalog(), synthesizer=FakeSynthesizer()),
            pipeline=VocalResponsePipeline(
                transcoder=PassthroughTranscoder(),
                transcriber=FakeTranscriber(),
                coaching=CoachingService(completion=FakeCompletion()),
            ),
            record_store=self.store,
            artifact_store=ArtifactStore(root=self.artifact_root),
        )


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setattr(ws_interview, "dependency_provider", _FakeProvider(str(tmp_path / "artifacts")))
    return TestClient(app)


def test_websocket_session_round_trip(client):
    with client.websocket_connect("/ws/interview") as ws:
        ack = ws.receive_json()
        assert ack["type"] == "connection_ack"
        assert ack["sessionId"]

        ws.send_text(json.dumps({"type": "PING"}))
        assert ws.receive_json()["type"] == "PONG"

        ws.send_text(json.dumps({"type": "SETUP", "role": "Platform Engineer"}))
        ready = ws.receive_json()
        assert ready["type"] == "QUESTIONS_READY"
        assert ready["totalQuestions"] == 2
        assert ready["audioFiles"] == ["question_1.wav", "question_2.wav"]

        ws.send_text(json.dumps({"type": "REQUEST_QUESTION", "questionIndex": 0}))
        question = ws.receive_json()
        assert question["type"] == "QUESTION_AUDIO"
        assert question["questionText"] == QUESTIONS[0]

        ws.send_text(json.dumps({"type": "INTERVIEW_COMPLETE"}))
        assert ws.receive_json() == {"type": "SUMMARY", "feedback": {"result": []}}


def test_websocket_protocol_errors_keep_connection_open(client):
    with client.websocket_connect("/ws/interview") as ws:
        ws.receive_json()

        ws.send_text("not json at all")
        assert ws.receive_json()["type"] == "ERROR"

        ws.send_bytes(b"\x00\x01")
        assert ws.receive_json() == {"type": "ERROR", "message": "Binary frames are not supported"}

        ws.send_text(json.dumps({"type": "REQUEST_QUESTION", "questionIndex": 0}))
        assert "IDLE" in ws.receive_json()["message"]

        ws.send_text(json.dumps({"type": "PING"}))
        assert ws.receive_json()["type"] == "PONG"


def test_health_and_metrics_routes(client):
    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"

    metrics = client.get("/api/system/metrics").json()
    assert "ws_connections_active" in metrics
    assert "avg_synthesis_duration" in metrics
