"""Dispatch realtime websocket events to the agent session."""
from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Awaitable, Dict, Set

from fastapi import WebSocket

from services.openai.capability_gateway import CapabilityGateway
from services.realtime.agent_session import AgentSession
from services.realtime.location import WebSocketLocationProvider
from services.realtime.session_store import SessionStore
from utils.media_validation import decode_upload_b64

LOGGER = logging.getLogger(__name__)


class RealtimeSessionHandler:
	"""Route websocket messages for a single agent session.

	Submits and uploads run as tasks so the socket keeps being read while
	the agent waits on the backend; a `location.response` frame must be able
	to arrive in the middle of a submit.
	"""

	def __init__(self, store: SessionStore, gateway: CapabilityGateway, websocket: WebSocket, session_id: str) -> None:
		self.store = store
		self.websocket = websocket
		self.session_id = session_id
		self.location = WebSocketLocationProvider(self._send)
		self.session = AgentSession(
			store,
			session_id,
			gateway,
			location_provider=self.location,
			publish=self._send,
			speech_sink=self._send_speech,
		)
		self._tasks: Set[asyncio.Task] = set()
		self._send_lock = asyncio.Lock()

	async def send_snapshot(self) -> None:
		"""Send the current state and log to a freshly connected client."""
		state = self.store.get(self.session_id)
		await self._send(
			{
				"type": "session.snapshot",
				"session": state.to_dict(),
				"messages": [msg.to_dict() for msg in state.messages],
			}
		)

	async def handle(self, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "agent.submit":
				self._spawn(request_id, self._submit(payload))
			elif message_type == "image.upload":
				self._spawn(request_id, self._upload(payload))
			elif message_type == "location.response":
				if not self.location.resolve(payload):
					raise ValueError("No location request is pending.")
			else:
				raise ValueError("Unsupported message type.")
		except Exception as exc:
			await self.send_error(request_id, str(exc))

	async def shutdown(self) -> None:
		"""Let in-flight work settle after the client disconnects."""
		self.location.resolve({"error": "disconnected"})
		if self._tasks:
			await asyncio.gather(*self._tasks, return_exceptions=True)
		await self.session.drain()

	async def _submit(self, payload: Dict[str, Any]) -> None:
		text = payload.get("text")
		if not isinstance(text, str):
			raise ValueError("Utterance text must be a string.")
		if not self.store.get(self.session_id).deployed:
			raise RuntimeError("Agent is not deployed; complete onboarding first.")
		await self.session.submit(text)

	async def _upload(self, payload: Dict[str, Any]) -> None:
		image_bytes = decode_upload_b64(payload.get("image_b64") or "")
		await self.session.upload_image(image_bytes, payload.get("filename"))

	def _spawn(self, request_id: Any, work: Awaitable[None]) -> None:
		task = asyncio.create_task(self._run(request_id, work))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)

	async def _run(self, request_id: Any, work: Awaitable[None]) -> None:
		try:
			await work
		except Exception as exc:
			LOGGER.info("Websocket request %s on session %s failed: %s", request_id, self.session_id, exc)
			await self.send_error(request_id, str(exc))

	async def _send_speech(self, audio: bytes) -> None:
		await self._send(
			{
				"type": "agent.speech",
				"format": "mp3",
				"audio_b64": base64.b64encode(audio).decode("utf-8"),
			}
		)

	async def send_error(self, request_id: Any, detail: str) -> None:
		try:
			await self._send({"type": "error", "request_id": request_id, "detail": detail})
		except Exception as exc:
			LOGGER.warning("Could not report error to session %s: %s", self.session_id, exc)

	async def _send(self, payload: Dict[str, Any]) -> None:
		async with self._send_lock:
			await self.websocket.send_text(json.dumps(payload))
