"""FastAPI routes for agent sessions."""

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from controllers.session_controller import (
	deploy_agent,
	get_session,
	list_messages,
	start_session,
	submit_message,
	upload_image,
)
from models.agent_models import Coordinates

router = APIRouter(prefix="/sessions")


class DeployPayload(BaseModel):
	name: str = Field(..., min_length=1, max_length=64)
	personality_score: int = Field(50, ge=0, le=100)


class MessagePayload(BaseModel):
	text: str
	lat: Optional[float] = Field(None, ge=-90, le=90)
	lng: Optional[float] = Field(None, ge=-180, le=180)


@router.post("")
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	try:
		return await get_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/deploy")
async def deploy_route(request: Request, session_id: str, payload: DeployPayload):
	try:
		return await deploy_agent(request, session_id, payload.name, payload.personality_score)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}/messages")
async def list_messages_route(request: Request, session_id: str):
	try:
		return await list_messages(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/messages")
async def post_message_route(request: Request, session_id: str, payload: MessagePayload):
	location = None
	if payload.lat is not None and payload.lng is not None:
		location = Coordinates(lat=payload.lat, lng=payload.lng)
	try:
		return await submit_message(request, session_id, payload.text, location)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/upload")
async def upload_route(request: Request, session_id: str, image: UploadFile = File(...)):
	"""Load an image into the edit buffer."""
	try:
		return await upload_image(request, session_id, image)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
