"""Session domain models for the agent terminal."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from models.agent_models import AgentMode, AgentProfile

MESSAGE_ROLES = ("user", "agent", "system")
MESSAGE_KINDS = ("text", "image")


@dataclass(frozen=True)
class SessionMessage:
	"""One immutable entry of the conversation log."""

	role: str
	body: str
	kind: str = "text"
	attachments: Optional[Mapping[str, Any]] = None
	id: str = field(default_factory=lambda: uuid4().hex)
	created_at: float = field(default_factory=lambda: time.time())

	def __post_init__(self) -> None:
		if self.role not in MESSAGE_ROLES:
			raise ValueError(f"Unsupported message role '{self.role}'.")
		if self.kind not in MESSAGE_KINDS:
			raise ValueError(f"Unsupported message kind '{self.kind}'.")

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"role": self.role,
			"body": self.body,
			"kind": self.kind,
			"attachments": dict(self.attachments) if self.attachments else None,
			"created_at": self.created_at,
		}


@dataclass(frozen=True)
class PendingUpload:
	"""Image buffered for the next edit instruction (PNG bytes)."""

	data: bytes
	filename: str
	mime_type: str = "image/png"


@dataclass
class SessionState:
	"""In-memory state owned by one session controller."""

	session_id: str
	profile: Optional[AgentProfile] = None
	mode: AgentMode = AgentMode.IDLE
	busy: bool = False
	pending_upload: Optional[PendingUpload] = None
	messages: List[SessionMessage] = field(default_factory=list)
	lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

	@property
	def deployed(self) -> bool:
		return self.profile is not None and self.profile.deployed

	def to_dict(self) -> Dict[str, Any]:
		profile = self.profile
		return {
			"session_id": self.session_id,
			"profile": (
				{
					"name": profile.name,
					"personality_score": profile.personality_score,
					"deployed": profile.deployed,
					"avatar_color": profile.avatar_color,
				}
				if profile
				else None
			),
			"mode": self.mode.value,
			"busy": self.busy,
			"has_pending_upload": self.pending_upload is not None,
			"message_count": len(self.messages),
		}
