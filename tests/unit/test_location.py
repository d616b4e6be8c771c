"""Unit tests for geolocation providers."""

from __future__ import annotations

import asyncio

import pytest

from models.agent_models import Coordinates
from services.realtime.location import (
    NoLocationProvider,
    StaticLocationProvider,
    WebSocketLocationProvider,
    parse_coordinates,
)


class TestParseCoordinates:
    def test_valid(self):
        assert parse_coordinates({"lat": "6.5", "lng": 3.4}) == Coordinates(lat=6.5, lng=3.4)

    @pytest.mark.parametrize(
        "payload",
        [
            {"error": "PERMISSION_DENIED"},
            {"lat": 1.0},
            {"lat": "north", "lng": 2.0},
            {"lat": 91.0, "lng": 0.0},
            {"lat": 0.0, "lng": -181.0},
        ],
    )
    def test_invalid_payloads_are_unavailable(self, payload):
        assert parse_coordinates(payload) is None


class TestSimpleProviders:
    async def test_no_location(self):
        assert await NoLocationProvider().request_position() is None

    async def test_static(self):
        coords = Coordinates(lat=1.0, lng=2.0)
        assert await StaticLocationProvider(coords).request_position() == coords


class TestWebSocketLocationProvider:
    async def _start(self, provider):
        task = asyncio.create_task(provider.request_position())
        while not provider.waiting:
            await asyncio.sleep(0)
        return task

    async def test_request_and_resolve(self):
        sent = []

        async def send(frame):
            sent.append(frame)

        provider = WebSocketLocationProvider(send, timeout=1.0)
        task = await self._start(provider)

        assert provider.resolve({"type": "location.response", "lat": 6.5, "lng": 3.4}) is True
        assert await task == Coordinates(lat=6.5, lng=3.4)
        assert sent == [{"type": "location.request"}]
        assert provider.waiting is False

    async def test_denied(self):
        async def send(frame):
            return None

        provider = WebSocketLocationProvider(send, timeout=1.0)
        task = await self._start(provider)
        provider.resolve({"type": "location.response", "error": "denied"})
        assert await task is None

    async def test_timeout(self):
        async def send(frame):
            return None

        provider = WebSocketLocationProvider(send, timeout=0.01)
        assert await provider.request_position() is None
        assert provider.waiting is False

    async def test_resolve_without_request(self):
        async def send(frame):
            return None

        provider = WebSocketLocationProvider(send)
        assert provider.resolve({"lat": 1.0, "lng": 1.0}) is False

    async def test_one_outstanding_request(self):
        async def send(frame):
            return None

        provider = WebSocketLocationProvider(send, timeout=1.0)
        task = await self._start(provider)
        with pytest.raises(RuntimeError, match="already outstanding"):
            await provider.request_position()
        provider.resolve({"error": "done"})
        assert await task is None
