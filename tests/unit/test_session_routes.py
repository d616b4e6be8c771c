"""HTTP and websocket tests against the FastAPI application."""

from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from main import create_app
from models.agent_models import Coordinates
from services.openai.prompts import WELCOME_MESSAGE


@pytest.fixture()
def client(gateway):
    app = create_app()
    app.state.gateway = gateway
    with TestClient(app) as test_client:
        yield test_client


def _new_session(client) -> str:
    response = client.post("/sessions")
    assert response.status_code == 200
    return response.json()["session_id"]


def _deployed_session(client, score: int = 80) -> str:
    session_id = _new_session(client)
    response = client.post(f"/sessions/{session_id}/deploy", json={"name": "OMEGA-7", "personality_score": score})
    assert response.status_code == 200
    return session_id


def _receive_until(ws, predicate, limit: int = 50):
    """Read frames until `predicate` matches; return every frame read."""
    frames = []
    for _ in range(limit):
        frame = ws.receive_json()
        frames.append(frame)
        if predicate(frame):
            return frames
    raise AssertionError(f"expected frame never arrived: {frames}")


def _settled(frame) -> bool:
    return frame["type"] == "agent.status" and frame["busy"] is False and frame["mode"] != "building"


# ---------------------------------------------------------------------------
# REST
# ---------------------------------------------------------------------------


class TestSessionRoutes:
    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True, "session_store": True, "gateway_available": True}

    def test_create_and_read_session(self, client):
        session_id = _new_session(client)
        body = client.get(f"/sessions/{session_id}").json()
        assert body["profile"] is None
        assert body["mode"] == "idle"
        assert body["busy"] is False

    def test_unknown_session(self, client):
        assert client.get("/sessions/nope").status_code == 404
        assert client.post("/sessions/nope/messages", json={"text": "hi"}).status_code == 404

    def test_deploy(self, client):
        session_id = _deployed_session(client)
        body = client.get(f"/sessions/{session_id}").json()
        assert body["profile"]["name"] == "OMEGA-7"
        assert body["profile"]["deployed"] is True
        assert body["mode"] == "social"
        messages = client.get(f"/sessions/{session_id}/messages").json()["messages"]
        assert [msg["body"] for msg in messages] == [WELCOME_MESSAGE]

    def test_redeploy_conflicts(self, client):
        session_id = _deployed_session(client)
        response = client.post(f"/sessions/{session_id}/deploy", json={"name": "X", "personality_score": 1})
        assert response.status_code == 409

    def test_deploy_validates_score(self, client):
        session_id = _new_session(client)
        response = client.post(f"/sessions/{session_id}/deploy", json={"name": "X", "personality_score": 150})
        assert response.status_code == 422

    def test_message_before_deploy_conflicts(self, client):
        session_id = _new_session(client)
        assert client.post(f"/sessions/{session_id}/messages", json={"text": "hi"}).status_code == 409

    def test_chat_round_trip(self, client, gateway):
        session_id = _deployed_session(client, score=80)
        body = client.post(f"/sessions/{session_id}/messages", json={"text": "hello"}).json()

        assert [(m["role"], m["body"]) for m in body["messages"]] == [("user", "hello"), ("agent", gateway.text)]
        assert body["mode"] == "trading"
        assert body["busy"] is False

    def test_location_from_request(self, client, gateway):
        session_id = _deployed_session(client)
        client.post(f"/sessions/{session_id}/messages", json={"text": "where is the beach", "lat": 6.4, "lng": 3.4})
        assert gateway.called("generate_with_location")[0][2] == Coordinates(lat=6.4, lng=3.4)

    def test_upload_then_edit(self, client, gateway, png_bytes):
        session_id = _deployed_session(client)
        response = client.post(
            f"/sessions/{session_id}/upload",
            files={"image": ("cat.png", png_bytes, "image/png")},
        )
        assert response.status_code == 200
        assert response.json()["has_pending_upload"] is True

        body = client.post(f"/sessions/{session_id}/messages", json={"text": "remove the cat"}).json()
        reply = body["messages"][-1]
        assert reply["kind"] == "image"
        assert reply["attachments"] == {"image_url": gateway.edited_url}
        assert client.get(f"/sessions/{session_id}").json()["has_pending_upload"] is False

    def test_upload_rejects_bad_image(self, client):
        session_id = _deployed_session(client)
        response = client.post(
            f"/sessions/{session_id}/upload",
            files={"image": ("cat.png", b"garbage", "image/png")},
        )
        assert response.status_code == 400

    def test_upload_rejects_wrong_type(self, client):
        session_id = _deployed_session(client)
        response = client.post(
            f"/sessions/{session_id}/upload",
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 415

    def test_upload_before_deploy_conflicts(self, client, png_bytes):
        session_id = _new_session(client)
        response = client.post(
            f"/sessions/{session_id}/upload",
            files={"image": ("cat.png", png_bytes, "image/png")},
        )
        assert response.status_code == 409


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class TestRealtimeSocket:
    def test_unknown_session(self, client):
        with client.websocket_connect("/ws/nope") as ws:
            assert ws.receive_json() == {"type": "error", "detail": "Session not found"}

    def test_snapshot_then_chat(self, client, gateway):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            snapshot = ws.receive_json()
            assert snapshot["type"] == "session.snapshot"
            assert snapshot["messages"][0]["body"] == WELCOME_MESSAGE

            ws.send_json({"type": "agent.submit", "request_id": "r1", "text": "hello"})
            frames = _receive_until(ws, _settled)

        messages = [f["message"] for f in frames if f["type"] == "conversation.message"]
        assert [(m["role"], m["body"]) for m in messages] == [("user", "hello"), ("agent", gateway.text)]

    def test_location_round_trip(self, client, gateway):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "agent.submit", "request_id": "r2", "text": "where is the best suya"})
            _receive_until(ws, lambda f: f["type"] == "location.request")
            ws.send_json({"type": "location.response", "lat": 6.5, "lng": 3.3})
            _receive_until(ws, _settled)

        assert gateway.called("generate_with_location")[0][2] == Coordinates(lat=6.5, lng=3.3)

    def test_denied_location_falls_back(self, client, gateway):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "agent.submit", "text": "show me the map"})
            _receive_until(ws, lambda f: f["type"] == "location.request")
            ws.send_json({"type": "location.response", "error": "PERMISSION_DENIED"})
            _receive_until(ws, _settled)

        assert gateway.called("generate_with_location")[0][2] is None

    def test_search_streams_speech(self, client, gateway):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "agent.submit", "text": "latest news"})
            frames = _receive_until(ws, lambda f: f["type"] == "agent.speech")

        settled_at = next(i for i, f in enumerate(frames) if _settled(f))
        assert settled_at < len(frames) - 1
        speech = frames[-1]
        assert speech["format"] == "mp3"
        assert base64.b64decode(speech["audio_b64"]) == gateway.speech

    def test_upload_over_socket(self, client, png_bytes):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json(
                {
                    "type": "image.upload",
                    "filename": "cat.png",
                    "image_b64": base64.b64encode(png_bytes).decode(),
                }
            )
            frames = _receive_until(ws, lambda f: f["type"] == "agent.status" and f["has_pending_upload"])

        notice = [f for f in frames if f["type"] == "conversation.message"][0]
        assert "Image loaded into buffer: cat.png" in notice["message"]["body"]

    def test_errors_are_reported(self, client):
        session_id = _new_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "bogus", "request_id": "r9"})
            assert ws.receive_json() == {"type": "error", "request_id": "r9", "detail": "Unsupported message type."}

            ws.send_json({"type": "agent.submit", "request_id": "r10", "text": "hello"})
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["request_id"] == "r10"
            assert "not deployed" in error["detail"]

            ws.send_json({"type": "location.response", "lat": 1, "lng": 1})
            assert ws.receive_json()["detail"] == "No location request is pending."

    def test_empty_utterance_is_submitted(self, client, gateway):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "agent.submit", "request_id": "r11", "text": "   "})
            frames = _receive_until(ws, _settled)

        assert not [f for f in frames if f["type"] == "error"]
        messages = [f["message"] for f in frames if f["type"] == "conversation.message"]
        assert [(m["role"], m["body"]) for m in messages] == [("user", "   "), ("agent", gateway.text)]

    def test_non_string_utterance_is_rejected(self, client):
        session_id = _deployed_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_json({"type": "agent.submit", "request_id": "r12", "text": 42})
            assert ws.receive_json() == {
                "type": "error",
                "request_id": "r12",
                "detail": "Utterance text must be a string.",
            }

    def test_malformed_frames_are_reported(self, client):
        session_id = _new_session(client)
        with client.websocket_connect(f"/ws/{session_id}") as ws:
            ws.receive_json()
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "request_id": None, "detail": "Payload must be JSON"}
            ws.send_json(["agent.submit"])
            assert ws.receive_json() == {
                "type": "error",
                "request_id": None,
                "detail": "Payload must be a JSON object",
            }
