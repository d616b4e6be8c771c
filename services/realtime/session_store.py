"""Simple in-memory store for agent sessions."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import uuid4

from models.session_models import PendingUpload, SessionMessage, SessionState


class SessionStore:
	"""Manage sessions and their append-only conversation logs."""

	def __init__(self) -> None:
		self._sessions: Dict[str, SessionState] = {}

	def create(self) -> SessionState:
		"""Create a new, not yet deployed, session."""
		session_id = uuid4().hex
		state = SessionState(session_id=session_id)
		self._sessions[session_id] = state
		return state

	def get(self, session_id: str) -> SessionState:
		"""Return a session or raise KeyError if missing."""
		state = self._sessions.get(session_id)
		if state is None:
			raise KeyError(f"Session {session_id} not found")
		return state

	def add_message(
		self,
		session_id: str,
		role: str,
		body: str,
		kind: str = "text",
		attachments: Optional[Mapping[str, Any]] = None,
	) -> SessionMessage:
		"""Append a message to the session conversation and return it."""
		state = self.get(session_id)
		message = SessionMessage(role=role, body=body or "", kind=kind, attachments=attachments)
		state.messages.append(message)
		return message

	def messages(self, session_id: str) -> Tuple[SessionMessage, ...]:
		"""Return a read-only snapshot of the conversation log."""
		return tuple(self.get(session_id).messages)

	def messages_since(self, session_id: str, index: int) -> List[SessionMessage]:
		"""Return the messages appended after the first `index` entries."""
		return list(self.get(session_id).messages[index:])

	def set_upload(self, session_id: str, upload: PendingUpload) -> SessionState:
		"""Buffer an image for editing, replacing any previous one."""
		state = self.get(session_id)
		state.pending_upload = upload
		return state

	def clear_upload(self, session_id: str) -> SessionState:
		state = self.get(session_id)
		state.pending_upload = None
		return state

