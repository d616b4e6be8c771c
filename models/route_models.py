"""Route decisions produced by the intent router.

Each decision is a frozen value naming exactly one backend capability
together with the arguments extracted from the utterance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from models.agent_models import ImageSize


@dataclass(frozen=True)
class GenerateText:
	prompt: str
	system_context: str
	mode_label: str


@dataclass(frozen=True)
class GenerateSearch:
	query: str


@dataclass(frozen=True)
class GenerateLocation:
	query: str


@dataclass(frozen=True)
class GenerateImage:
	prompt: str
	size: ImageSize = ImageSize.SIZE_1K


@dataclass(frozen=True)
class EditImage:
	instruction: str


RouteDecision = Union[GenerateText, GenerateSearch, GenerateLocation, GenerateImage, EditImage]
