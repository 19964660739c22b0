"""Integration tests for the questionnaire and dictation WebSocket endpoints."""

from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

from legacy_letters.core.models import ModelStatus, TranscriptionResult
from legacy_letters.services.audio.recorder import PERMISSION_DENIED_MESSAGE
from legacy_letters.services.transcription.base import BaseSTT

HEADERS = {"X-User-Id": "user-1"}


class FakeEngine(BaseSTT):
    def __init__(self, text="hello there"):
        self.text = text
        self.status = ModelStatus.ready
        self.progress = 100
        self.error = None

    async def load_model(self):
        self.status = ModelStatus.ready

    async def transcribe(self, clip, **kwargs):
        return TranscriptionResult(text=self.text)


@pytest.fixture
def fake_engine():
    engine = FakeEngine()
    with patch("legacy_letters.api.websocket.create_stt", return_value=engine):
        yield engine


def _receive_until(ws, message_type):
    """Skip timer ticks and status updates until *message_type* arrives."""
    while True:
        msg = ws.receive_json()
        if msg["type"] == message_type:
            return msg


# ---------------------------------------------------------------------------
# Questionnaire channel
# ---------------------------------------------------------------------------


def test_questionnaire_channel_connects(test_client: TestClient):
    with test_client.websocket_connect("/ws/questionnaire", headers=HEADERS) as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["data"]["phase"] == "active"
        assert connected["data"]["current_section_index"] == 1
        assert connected["data"]["total_sections"] == 8

        timer = ws.receive_json()
        assert timer["type"] == "timer"
        assert timer["data"]["display"] == "02:00:00"

        tick = ws.receive_json()
        assert tick["type"] == "timer"
        assert tick["data"]["time_remaining"] == 7199


def test_questionnaire_channel_requires_identity(test_client: TestClient):
    with test_client.websocket_connect("/ws/questionnaire") as ws:
        msg = ws.receive_json()
        assert msg["type"] == "error"
        assert msg["data"]["code"] == "AUTH_REQUIRED"
        assert msg["data"]["login_url"] == "/login"


def test_disconnect_persists_timer(test_client: TestClient):
    with test_client.websocket_connect("/ws/questionnaire", headers=HEADERS) as ws:
        ws.receive_json()
        ws.receive_json()
        ws.receive_json()
        ws.send_json({"action": "visibility", "hidden": True})
        ws.receive_json()

    resp = test_client.get("/api/v1/questionnaire", headers=HEADERS)
    assert resp.json()["time_remaining"] < 7200


def test_unknown_action(test_client: TestClient):
    with test_client.websocket_connect("/ws/questionnaire", headers=HEADERS) as ws:
        ws.send_json({"action": "dance"})
        msg = _receive_until(ws, "error")
        assert msg["data"]["code"] == "UNKNOWN_ACTION"


# ---------------------------------------------------------------------------
# Dictation
# ---------------------------------------------------------------------------


def test_dictation_appends_with_space(test_client: TestClient, fake_engine, sample_pcm_bytes):
    with test_client.websocket_connect("/ws/dictate?question_id=q7_4", headers=HEADERS) as ws:
        status = ws.receive_json()
        assert status["type"] == "status"
        assert status["data"]["recording_status"] == "idle"

        for expected in ("hello there", "hello there hello there"):
            ws.send_json({"action": "start", "permission": "granted", "format": "pcm16"})
            assert ws.receive_json()["data"]["recording_status"] == "recording"
            ws.send_bytes(sample_pcm_bytes)
            ws.send_json({"action": "stop"})

            transcript = ws.receive_json()
            assert transcript["type"] == "transcript"
            assert transcript["data"]["question_id"] == "q7_4"
            assert transcript["data"]["text"] == "hello there"
            assert transcript["data"]["answer"] == expected
            assert ws.receive_json()["data"]["recording_status"] == "idle"

    resp = test_client.get("/api/v1/questionnaire", headers=HEADERS)
    assert resp.json()["answers"]["q7_4"] == "hello there hello there"


def test_dictation_permission_denied(test_client: TestClient, fake_engine):
    with test_client.websocket_connect("/ws/dictate?question_id=q2_4", headers=HEADERS) as ws:
        ws.receive_json()
        ws.send_json({"action": "start", "permission": "denied", "format": "webm"})

        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["data"]["detail"] == PERMISSION_DENIED_MESSAGE

        status = ws.receive_json()
        assert status["data"]["recording_status"] == "idle"
        assert status["data"]["error"] == PERMISSION_DENIED_MESSAGE


def test_dictation_rejected_for_choice_question(test_client: TestClient, fake_engine):
    with test_client.websocket_connect("/ws/dictate?question_id=q1_1", headers=HEADERS) as ws:
        msg = ws.receive_json()
        assert msg["type"] == "error"
        assert msg["data"]["code"] == "DICTATION_NOT_SUPPORTED"


def test_dictation_stop_without_start(test_client: TestClient, fake_engine):
    with test_client.websocket_connect("/ws/dictate?question_id=q7_4", headers=HEADERS) as ws:
        ws.receive_json()
        ws.send_json({"action": "stop"})

        status = ws.receive_json()
        assert status["type"] == "status"
        assert status["data"]["recording_status"] == "idle"


def test_two_users_dictate_at_once(test_client: TestClient, fake_engine, sample_pcm_bytes):
    other = {"X-User-Id": "user-2"}
    with test_client.websocket_connect("/ws/dictate?question_id=q7_4", headers=HEADERS) as first:
        with test_client.websocket_connect("/ws/dictate?question_id=q7_4", headers=other) as second:
            first.receive_json()
            second.receive_json()

            first.send_json({"action": "start", "permission": "granted", "format": "pcm16"})
            assert first.receive_json()["data"]["recording_status"] == "recording"
            second.send_json({"action": "start", "permission": "granted", "format": "pcm16"})
            assert second.receive_json()["data"]["recording_status"] == "recording"

            for ws in (first, second):
                ws.send_bytes(sample_pcm_bytes)
                ws.send_json({"action": "stop"})
                assert _receive_until(ws, "transcript")["data"]["answer"] == "hello there"


def test_same_user_dictates_one_field_at_a_time(test_client: TestClient, fake_engine):
    with test_client.websocket_connect("/ws/dictate?question_id=q7_4", headers=HEADERS) as first:
        with test_client.websocket_connect("/ws/dictate?question_id=q2_4", headers=HEADERS) as second:
            first.receive_json()
            second.receive_json()

            first.send_json({"action": "start", "permission": "granted", "format": "pcm16"})
            assert first.receive_json()["data"]["recording_status"] == "recording"
            second.send_json({"action": "start", "permission": "granted", "format": "pcm16"})
            error = second.receive_json()
            assert error["type"] == "error"
            assert error["data"]["code"] == "RECORDING_ALREADY_ACTIVE"

            first.send_json({"action": "stop"})
            _receive_until(first, "transcript")
            assert first.receive_json()["data"]["recording_status"] == "idle"

            second.send_json({"action": "start", "permission": "granted", "format": "pcm16"})
            assert second.receive_json()["data"]["recording_status"] == "recording"
