"""Classify raw utterances into a single backend capability.

Rules are evaluated top to bottom and the first match wins. Overlapping
keyword sets are resolved by this order only: an utterance mentioning both
"price" and "map" is a search, never a location query.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from models.agent_models import AgentProfile
from models.route_models import (
	EditImage,
	GenerateImage,
	GenerateLocation,
	GenerateSearch,
	GenerateText,
	RouteDecision,
)
from services.openai.prompts import build_persona_context, mode_label

IMAGINE_TOKEN = "/imagine"
GENERATE_IMAGE_PHRASE = "generate image"
EDIT_KEYWORDS = ("edit", "filter", "remove")
SEARCH_KEYWORDS = ("news", "price", "search")
LOCATION_KEYWORDS = ("where is", "location", "map")

_IMAGE_TRIGGER = re.compile(r"^/imagine|generate image", re.IGNORECASE)

Matcher = Callable[[str, bool], bool]
Builder = Callable[[str, Optional[AgentProfile]], RouteDecision]


def _contains_any(text: str, keywords) -> bool:
	return any(keyword in text for keyword in keywords)


def extract_image_prompt(utterance: str) -> str:
	"""Strip the image trigger from the utterance and trim whitespace."""
	return _IMAGE_TRIGGER.sub("", utterance, count=1).strip()


def _is_image_generation(lowered: str, has_pending_upload: bool) -> bool:
	return lowered.startswith(IMAGINE_TOKEN) or GENERATE_IMAGE_PHRASE in lowered


def _is_image_edit(lowered: str, has_pending_upload: bool) -> bool:
	return has_pending_upload and _contains_any(lowered, EDIT_KEYWORDS)


def _is_search(lowered: str, has_pending_upload: bool) -> bool:
	return _contains_any(lowered, SEARCH_KEYWORDS)


def _is_location(lowered: str, has_pending_upload: bool) -> bool:
	return _contains_any(lowered, LOCATION_KEYWORDS)


def _chat(utterance: str, profile: Optional[AgentProfile]) -> GenerateText:
	label = mode_label(profile.personality_score) if profile else "social"
	return GenerateText(prompt=utterance, system_context=build_persona_context(profile), mode_label=label)


RULES: List[Tuple[Matcher, Builder]] = [
	(_is_image_generation, lambda text, _: GenerateImage(prompt=extract_image_prompt(text))),
	(_is_image_edit, lambda text, _: EditImage(instruction=text)),
	(_is_search, lambda text, _: GenerateSearch(query=text)),
	(_is_location, lambda text, _: GenerateLocation(query=text)),
]


def classify(
	utterance: Optional[str],
	has_pending_upload: bool,
	profile: Optional[AgentProfile] = None,
) -> RouteDecision:
	"""Return the route decision for one utterance.

	Args:
		utterance: Raw text typed by the user. None is treated as empty.
		has_pending_upload: Whether an image is buffered for editing.
		profile: Agent profile used to build the default chat context.

	Returns:
		Exactly one decision; open-ended chat when no other rule matches.
	"""
	text = utterance or ""
	lowered = text.lower()
	for matches, build in RULES:
		if matches(lowered, has_pending_upload):
			return build(text, profile)
	return _chat(text, profile)
