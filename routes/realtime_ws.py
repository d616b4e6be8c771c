"""WebSocket endpoint for the agent terminal."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.session_store import SessionStore
from services.realtime.ws_session import RealtimeSessionHandler

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


@router.websocket("/ws/{session_id}")
async def realtime_socket(websocket: WebSocket, session_id: str, store: SessionStore = Depends(_require_session_store)):
	"""Stream the agent conversation and accept terminal input over one websocket."""
	await websocket.accept()
	try:
		store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = RealtimeSessionHandler(store, websocket.app.state.gateway, websocket, session_id)
	await handler.send_snapshot()
	while True:
		try:
			raw = await websocket.receive_text()
		except (WebSocketDisconnect, RuntimeError):
			break
		except Exception:
			await handler.send_error(None, "Invalid websocket frame")
			continue
		try:
			payload = json.loads(raw)
		except Exception:
			await handler.send_error(None, "Payload must be JSON")
			continue
		if not isinstance(payload, dict):
			await handler.send_error(None, "Payload must be a JSON object")
			continue
		await handler.handle(payload)
	await handler.shutdown()
	try:
		await websocket.close()
	except Exception:
		pass
