"""OpenAI-backed gateway exposing one coroutine per agent capability.

Every operation wraps the client call, logs latency, and re-raises client
failures as `GatewayError` so callers only need to handle one exception type.
Image operations return a PNG data URL, or None when the backend produced no
image.
"""

import logging
import time
from typing import Optional

from openai import AsyncOpenAI

from models.agent_models import Coordinates, GroundedAnswer, ImageSize
from services.openai.media_inputs import build_inputs, decode_image_b64, image_upload_file, to_image_data_url
from services.openai.prompts import build_location_prompt
from services.openai.response_parser import extract_image_b64, extract_sources, extract_text, extract_usage
from utils import config

LOGGER = logging.getLogger(__name__)

# The image model renders square output only; size selects the render quality.
IMAGE_QUALITY = {
    ImageSize.SIZE_1K: "low",
    ImageSize.SIZE_2K: "medium",
    ImageSize.SIZE_4K: "high",
}
IMAGE_DIMENSIONS = "1024x1024"


class GatewayError(RuntimeError):
    """Raised when a backend capability call fails."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class CapabilityGateway:
    """Issue generative-AI calls for text, grounding, images, and speech."""

    def __init__(self, client: AsyncOpenAI) -> None:
        """Initialize the gateway with a shared OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client

    async def generate_text(self, prompt: str, system_context: str) -> str:
        """Answer an open-ended chat prompt in the persona's voice."""
        response = await self._responses(
            "generate_text",
            model=config.CHAT_MODEL,
            input=build_inputs(system_context, prompt),
            reasoning={"effort": "high"},
        )
        return extract_text(response)

    async def generate_fast(self, prompt: str) -> str:
        """Return a short low-latency reply, used to warm the backend."""
        response = await self._responses(
            "generate_fast",
            model=config.FAST_MODEL,
            input=build_inputs("", prompt),
            max_output_tokens=100,
        )
        return extract_text(response)

    async def generate_with_search(self, query: str) -> GroundedAnswer:
        """Answer a query grounded in web search results."""
        response = await self._responses(
            "generate_with_search",
            model=config.SEARCH_MODEL,
            input=build_inputs("", query),
            tools=[{"type": "web_search"}],
        )
        return GroundedAnswer(text=extract_text(response), sources=tuple(extract_sources(response)))

    async def generate_with_location(self, query: str, location: Optional[Coordinates] = None) -> GroundedAnswer:
        """Answer a place query, biased to the device position when one is known."""
        if location is not None:
            prompt = build_location_prompt(query, location.lat, location.lng)
        else:
            prompt = build_location_prompt(query)
        response = await self._responses(
            "generate_with_location",
            model=config.LOCATION_MODEL,
            input=build_inputs("", prompt),
            tools=[{"type": "web_search"}],
        )
        return GroundedAnswer(text=extract_text(response), sources=tuple(extract_sources(response)))

    async def generate_image(self, prompt: str, size: ImageSize = ImageSize.SIZE_1K) -> Optional[str]:
        """Render an image for the prompt; an empty prompt yields None without a call."""
        if not prompt or not prompt.strip():
            LOGGER.info("Skipping image generation for an empty prompt.")
            return None
        start = time.time()
        try:
            response = await self.client.images.generate(
                model=config.IMAGE_MODEL,
                prompt=prompt,
                size=IMAGE_DIMENSIONS,
                quality=IMAGE_QUALITY[ImageSize(size)],
                n=1,
            )
        except Exception as exc:
            logging.error("OpenAI image generation failed: %s", exc)
            raise GatewayError("generate_image", exc) from exc
        LOGGER.info("generate_image latency: %.3fs", time.time() - start)

        image_b64 = extract_image_b64(response)
        return to_image_data_url(image_b64) if image_b64 else None

    async def edit_image(self, image_b64: str, instruction: str) -> Optional[str]:
        """Apply a natural-language edit to a base64 PNG image."""
        start = time.time()
        try:
            image_bytes = decode_image_b64(image_b64)
            response = await self.client.images.edit(
                model=config.IMAGE_MODEL,
                image=image_upload_file(image_bytes),
                prompt=instruction,
            )
        except Exception as exc:
            logging.error("OpenAI image edit failed: %s", exc)
            raise GatewayError("edit_image", exc) from exc
        LOGGER.info("edit_image latency: %.3fs", time.time() - start)

        image_b64_out = extract_image_b64(response)
        return to_image_data_url(image_b64_out) if image_b64_out else None

    async def synthesize_speech(self, text: str) -> Optional[bytes]:
        """Return MP3 audio for the text, or None when there is nothing to say."""
        if not text or not text.strip():
            return None
        try:
            response = await self.client.audio.speech.create(
                model=config.TTS_MODEL,
                voice=config.TTS_VOICE,
                input=text,
                response_format="mp3",
            )
        except Exception as exc:
            logging.error("OpenAI speech synthesis failed: %s", exc)
            raise GatewayError("synthesize_speech", exc) from exc
        return getattr(response, "content", None) or None

    async def _responses(self, operation: str, **kwargs):
        """Send one Responses API request, timing it and normalizing failures."""
        start = time.time()
        try:
            response = await self.client.responses.create(**kwargs)
        except Exception as exc:
            logging.error("Error during OpenAI Responses API call (%s): %s", operation, exc)
            raise GatewayError(operation, exc) from exc
        usage = extract_usage(response)
        LOGGER.info(
            "%s latency: %.3fs (input_tokens=%s, output_tokens=%s)",
            operation,
            time.time() - start,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return response
