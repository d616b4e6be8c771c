"""Session lifecycle helpers for the agent terminal."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, UploadFile

from models.agent_models import Coordinates
from services.realtime.agent_session import AgentSession
from services.realtime.location import StaticLocationProvider
from services.realtime.session_store import SessionStore
from utils.media_validation import read_image_bytes


def _store(request: Request) -> SessionStore:
	store = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


def _agent_session(request: Request, session_id: str, **kwargs) -> AgentSession:
	"""Build an AgentSession for an existing session id, or raise 404."""
	store = _store(request)
	gateway = getattr(request.app.state, "gateway", None)
	if gateway is None:
		raise HTTPException(status_code=500, detail="Capability gateway unavailable")
	try:
		store.get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return AgentSession(store, session_id, gateway, **kwargs)


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new session and return its id."""
	state = _store(request).create()
	return {"session_id": state.session_id}


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the observable state of a session."""
	try:
		state = _store(request).get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return state.to_dict()


async def list_messages(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the full conversation log."""
	try:
		messages = _store(request).messages(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return {"session_id": session_id, "messages": [msg.to_dict() for msg in messages]}


async def deploy_agent(request: Request, session_id: str, name: str, personality_score: int) -> Dict[str, Any]:
	"""Complete onboarding for the session."""
	session = _agent_session(request, session_id)
	try:
		state = await session.deploy(name, personality_score)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except RuntimeError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return state.to_dict()


async def submit_message(
	request: Request,
	session_id: str,
	text: str,
	location: Optional[Coordinates] = None,
) -> Dict[str, Any]:
	"""Run one utterance through the agent and return the messages it produced.

	HTTP clients cannot answer a geolocation prompt mid-request, so a
	position, when known, travels with the utterance.
	"""
	session = _agent_session(request, session_id, location_provider=StaticLocationProvider(location))
	if not session.state.deployed:
		raise HTTPException(status_code=409, detail="Agent is not deployed; complete onboarding first.")
	messages = await session.submit(text)
	state = session.state
	return {
		"session_id": session_id,
		"mode": state.mode.value,
		"busy": state.busy,
		"messages": [msg.to_dict() for msg in messages],
	}


async def upload_image(request: Request, session_id: str, image: UploadFile) -> Dict[str, Any]:
	"""Buffer an uploaded image for the next edit instruction."""
	session = _agent_session(request, session_id)
	image_bytes = await read_image_bytes(image)
	try:
		state = await session.upload_image(image_bytes, image.filename)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except RuntimeError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return state.to_dict()
