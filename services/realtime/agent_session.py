"""Sequence one agent session: onboarding, uploads, and utterance dispatch."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from models.agent_models import AgentMode, AgentProfile, Coordinates
from models.route_models import EditImage, GenerateImage, GenerateLocation, GenerateSearch, GenerateText, RouteDecision
from models.session_models import PendingUpload, SessionMessage, SessionState
from services.image_normalizer import ImageNormalizer
from services.intent_router import classify
from services.openai.capability_gateway import CapabilityGateway
from services.openai.prompts import WARMUP_PROMPT, WELCOME_MESSAGE
from services.realtime.location import NoLocationProvider
from services.realtime.session_store import SessionStore
from utils import config

LOGGER = logging.getLogger(__name__)

CHAT_FAILURE_NOTICE = "NEURAL LINK FAILURE. RETRYING..."
SYSTEM_FAILURE_NOTICE = "SYSTEM ERROR: NEURAL LINK SEVERED."
IMAGE_FAILED_NOTICE = "Failed to generate image."
EDIT_FAILED_NOTICE = "Could not edit image."

Publisher = Callable[[Dict[str, Any]], Awaitable[None]]
SpeechSink = Callable[[bytes], Awaitable[None]]


class AgentSession:
	"""Apply user actions to one session held by the `SessionStore`.

	All mutating actions take the session lock, so a second `submit` waits
	for the first to settle and appends never interleave. Every event that
	changes what the UI shows goes through `publish` when one is attached.
	"""

	def __init__(
		self,
		store: SessionStore,
		session_id: str,
		gateway: CapabilityGateway,
		*,
		location_provider=None,
		publish: Optional[Publisher] = None,
		speech_sink: Optional[SpeechSink] = None,
		timeout: Optional[float] = None,
	) -> None:
		self.store = store
		self.session_id = session_id
		self.gateway = gateway
		self.location_provider = location_provider or NoLocationProvider()
		self.publish = publish
		self.speech_sink = speech_sink
		self.timeout = config.GATEWAY_TIMEOUT if timeout is None else timeout
		self.normalizer = ImageNormalizer()
		self._background: Set[asyncio.Task] = set()
		self._deferred: List[Callable[[], Awaitable[None]]] = []
		self._handlers = {
			GenerateText: self._chat,
			GenerateSearch: self._search,
			GenerateLocation: self._locate_and_answer,
			GenerateImage: self._generate_image,
			EditImage: self._edit_image,
		}

	@property
	def state(self) -> SessionState:
		return self.store.get(self.session_id)

	async def deploy(self, name: str, personality_score: int, avatar_color: str = "cyan") -> SessionState:
		"""Complete onboarding: create the profile, greet, and warm the backend."""
		state = self.state
		async with state.lock:
			if state.profile is not None and state.profile.deployed:
				raise RuntimeError(f"Agent {state.profile.name} is already deployed.")
			profile = AgentProfile(name=(name or "").strip(), personality_score=personality_score, avatar_color=avatar_color)
			state.profile = profile.as_deployed()
			await self._set_mode(AgentMode.SOCIAL)
			await self._append("system", WELCOME_MESSAGE)
		self._spawn(self._warm_up())
		LOGGER.info("Agent %s deployed on session %s", state.profile.name, self.session_id)
		return state

	async def upload_image(self, data: bytes, filename: Optional[str] = None) -> SessionState:
		"""Buffer an image for the next edit instruction, replacing any previous one."""
		state = self.state
		if not state.deployed:
			raise RuntimeError("Agent is not deployed; complete onboarding first.")
		png_bytes = await asyncio.to_thread(self.normalizer.to_png, data)
		name = (filename or "").strip() or "upload.png"
		async with state.lock:
			self.store.set_upload(self.session_id, PendingUpload(data=png_bytes, filename=name))
			await self._append("system", f"[SYSTEM] Image loaded into buffer: {name}. Type instruction to edit.")
			await self._publish_status()
		return state

	async def submit(self, utterance: str) -> List[SessionMessage]:
		"""Process one utterance and return the messages it appended.

		Nothing happens before the agent is deployed. The busy flag is
		cleared exactly once whatever the outcome of the backend call.
		"""
		state = self.state
		if not state.deployed:
			LOGGER.debug("Ignoring utterance on undeployed session %s", self.session_id)
			return []

		async with state.lock:
			start_index = len(state.messages)
			await self._append("user", utterance or "")
			await self._set_busy(True)
			try:
				decision = classify(utterance, state.pending_upload is not None, state.profile)
				LOGGER.info("Session %s routed utterance to %s", self.session_id, type(decision).__name__)
				await self._dispatch(decision)
			finally:
				await self._set_busy(False)
			appended = self.store.messages_since(self.session_id, start_index)
		self._run_deferred()
		return appended

	async def drain(self) -> None:
		"""Wait for warm-up and speech tasks started by earlier actions."""
		while self._background:
			await asyncio.gather(*list(self._background), return_exceptions=True)

	def _spawn(self, work: Awaitable[None]) -> None:
		task = asyncio.create_task(work)
		self._background.add(task)
		task.add_done_callback(self._background.discard)

	def _run_deferred(self) -> None:
		# Side effects queued by a handler start once the lock and busy flag are released.
		deferred, self._deferred = self._deferred, []
		for make_work in deferred:
			self._spawn(make_work())

	async def _dispatch(self, decision: RouteDecision) -> None:
		handler = self._handlers[type(decision)]
		try:
			await handler(decision)
		except Exception:
			LOGGER.exception("Capability %s failed on session %s", type(decision).__name__, self.session_id)
			notice = CHAT_FAILURE_NOTICE if isinstance(decision, GenerateText) else SYSTEM_FAILURE_NOTICE
			await self._append("system", notice)

	async def _chat(self, decision: GenerateText) -> None:
		await self._set_mode(AgentMode.TRADING if decision.mode_label == "analytic" else AgentMode.SOCIAL)
		text = await self._call(self.gateway.generate_text(decision.prompt, decision.system_context))
		await self._append("agent", text)

	async def _search(self, decision: GenerateSearch) -> None:
		await self._set_mode(AgentMode.TRADING)
		answer = await self._call(self.gateway.generate_with_search(decision.query))
		await self._append("agent", answer.text, attachments=_sources_attachment(answer.sources))
		self._deferred.append(lambda: self._speak(answer.text))

	async def _locate_and_answer(self, decision: GenerateLocation) -> None:
		await self._set_mode(AgentMode.SOCIAL)
		location = await self._request_position()
		answer = await self._call(self.gateway.generate_with_location(decision.query, location))
		await self._append("agent", answer.text, attachments=_sources_attachment(answer.sources))

	async def _generate_image(self, decision: GenerateImage) -> None:
		await self._set_mode(AgentMode.BUILDING)
		try:
			image_url = await self._call(self.gateway.generate_image(decision.prompt, decision.size))
			if image_url:
				await self._append(
					"agent",
					f"Generated image for: {decision.prompt}",
					kind="image",
					attachments={"image_url": image_url},
				)
			else:
				await self._append("system", IMAGE_FAILED_NOTICE)
		finally:
			await self._set_mode(AgentMode.IDLE)

	async def _edit_image(self, decision: EditImage) -> None:
		upload = self.state.pending_upload
		await self._set_mode(AgentMode.BUILDING)
		try:
			image_b64 = base64.b64encode(upload.data).decode("utf-8")
			image_url = await self._call(self.gateway.edit_image(image_b64, decision.instruction))
			if image_url:
				await self._append("agent", "Image edited.", kind="image", attachments={"image_url": image_url})
				self.store.clear_upload(self.session_id)
			else:
				await self._append("system", EDIT_FAILED_NOTICE)
		finally:
			await self._set_mode(AgentMode.IDLE)

	async def _request_position(self) -> Optional[Coordinates]:
		try:
			return await self.location_provider.request_position()
		except Exception as exc:
			LOGGER.info("Location unavailable for session %s: %s", self.session_id, exc)
			return None

	async def _speak(self, text: str) -> None:
		if self.speech_sink is None:
			LOGGER.debug("No speech sink attached to session %s", self.session_id)
			return
		try:
			audio = await self._call(self.gateway.synthesize_speech((text or "")[: config.SPEECH_CHARS]))
			if audio:
				await self.speech_sink(audio)
		except Exception as exc:
			LOGGER.warning("Speech synthesis skipped for session %s: %s", self.session_id, exc)

	async def _warm_up(self) -> None:
		try:
			await self._call(self.gateway.generate_fast(WARMUP_PROMPT))
		except Exception as exc:
			LOGGER.warning("Backend warm-up failed for session %s: %s", self.session_id, exc)

	async def _call(self, coro):
		return await asyncio.wait_for(coro, timeout=self.timeout)

	async def _append(self, role: str, body: str, *, kind: str = "text", attachments=None) -> SessionMessage:
		message = self.store.add_message(self.session_id, role, body, kind=kind, attachments=attachments)
		await self._emit({"type": "conversation.message", "message": message.to_dict()})
		return message

	async def _set_busy(self, busy: bool) -> None:
		self.state.busy = busy
		await self._publish_status()

	async def _set_mode(self, mode: AgentMode) -> None:
		self.state.mode = mode
		await self._publish_status()

	async def _publish_status(self) -> None:
		state = self.state
		await self._emit(
			{
				"type": "agent.status",
				"busy": state.busy,
				"mode": state.mode.value,
				"has_pending_upload": state.pending_upload is not None,
			}
		)

	async def _emit(self, event: Dict[str, Any]) -> None:
		if self.publish is None:
			return
		try:
			await self.publish(event)
		except Exception as exc:
			# A closed socket must not break the session state machine.
			LOGGER.warning("Dropping %s event for session %s: %s", event.get("type"), self.session_id, exc)


def _sources_attachment(sources) -> Dict[str, Any]:
	return {"sources": [source.to_dict() for source in sources]}
