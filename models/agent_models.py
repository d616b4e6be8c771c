"""Agent identity and capability value types."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class AgentMode(str, Enum):
	"""Observational mode shown by the UI; never used for routing."""

	IDLE = "idle"
	TRADING = "trading"
	SOCIAL = "social"
	BUILDING = "building"


class ImageSize(str, Enum):
	SIZE_1K = "1K"
	SIZE_2K = "2K"
	SIZE_4K = "4K"


@dataclass(frozen=True)
class AgentProfile:
	"""Persona configured at onboarding.

	Attributes:
		name: Display name of the agent.
		personality_score: 0 (chaotic/social) to 100 (analytic/trader).
		deployed: Flips to True once, when onboarding completes.
		avatar_color: Accent color used by the front-end avatar.
	"""

	name: str
	personality_score: int
	deployed: bool = False
	avatar_color: str = "cyan"

	def __post_init__(self) -> None:
		if not self.name or not self.name.strip():
			raise ValueError("Agent name is required.")
		if isinstance(self.personality_score, bool) or not isinstance(self.personality_score, int):
			raise ValueError("Personality score must be an integer.")
		if not 0 <= self.personality_score <= 100:
			raise ValueError("Personality score must be between 0 and 100.")

	def as_deployed(self) -> "AgentProfile":
		"""Return a copy with `deployed` set; deploying twice is an error."""
		if self.deployed:
			raise RuntimeError(f"Agent {self.name} is already deployed.")
		return replace(self, deployed=True)


@dataclass(frozen=True)
class Coordinates:
	lat: float
	lng: float


@dataclass(frozen=True)
class GroundingSource:
	"""A cited source attached to a grounded answer.

	`kind` is "web" or "maps" for typed citations and None when the backend
	returned a citation it did not classify.
	"""

	kind: Optional[str]
	uri: Optional[str] = None
	title: Optional[str] = None

	def to_dict(self) -> dict:
		return {"kind": self.kind, "uri": self.uri, "title": self.title}


@dataclass(frozen=True)
class GroundedAnswer:
	text: str
	sources: tuple = ()
