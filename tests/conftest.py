"""Shared fixtures: a scriptable capability gateway and session helpers."""

from __future__ import annotations

import asyncio
import io

import pytest
from PIL import Image

from models.agent_models import GroundedAnswer, GroundingSource, ImageSize
from services.openai.capability_gateway import GatewayError
from services.realtime.session_store import SessionStore


class FakeGateway:
    """In-process stand-in for `CapabilityGateway`.

    `fail` names operations that raise `GatewayError` ("*" fails all),
    `hang` names operations that never answer in time.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.hang: set[str] = set()
        self.delay = 0.0
        self.text = "ACK. SIGNAL RECEIVED."
        self.fast_text = "ONLINE."
        self.answer = GroundedAnswer(
            text="BTC trades at 100k.",
            sources=(GroundingSource(kind="web", uri="https://example.com/btc", title="BTC price"),),
        )
        self.image_url: str | None = "data:image/png;base64,R0VO"
        self.edited_url: str | None = "data:image/png;base64,RURJVA=="
        self.speech: bytes | None = b"ID3-audio"

    async def _enter(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if self.delay:
            await asyncio.sleep(self.delay)
        if operation in self.hang:
            await asyncio.sleep(3600)
        if operation in self.fail or "*" in self.fail:
            raise GatewayError(operation, RuntimeError("backend unavailable"))

    def called(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    async def generate_text(self, prompt: str, system_context: str) -> str:
        await self._enter("generate_text", prompt, system_context)
        return self.text

    async def generate_fast(self, prompt: str) -> str:
        await self._enter("generate_fast", prompt)
        return self.fast_text

    async def generate_with_search(self, query: str) -> GroundedAnswer:
        await self._enter("generate_with_search", query)
        return self.answer

    async def generate_with_location(self, query: str, location=None) -> GroundedAnswer:
        await self._enter("generate_with_location", query, location)
        return self.answer

    async def generate_image(self, prompt: str, size: ImageSize = ImageSize.SIZE_1K):
        await self._enter("generate_image", prompt, size)
        return self.image_url

    async def edit_image(self, image_b64: str, instruction: str):
        await self._enter("edit_image", image_b64, instruction)
        return self.edited_url

    async def synthesize_speech(self, text: str):
        await self._enter("synthesize_speech", text)
        return self.speech


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def png_bytes() -> bytes:
    """A tiny valid PNG image."""
    out = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 30, 30)).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture()
def jpeg_bytes() -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (16, 12), (10, 120, 240)).save(out, format="JPEG")
    return out.getvalue()


@pytest.fixture()
def events() -> list:
    """Collect events published by an AgentSession."""
    return []


@pytest.fixture()
def publish(events):
    async def _publish(event):
        events.append(event)

    return _publish
