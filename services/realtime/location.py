"""Device geolocation providers.

A provider resolves to coordinates or None. Denied permission, malformed
replies, and timeouts all collapse to None so callers fall back to the
location-less query.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from models.agent_models import Coordinates
from utils import config

LOGGER = logging.getLogger(__name__)

Sender = Callable[[Dict[str, Any]], Awaitable[None]]


class NoLocationProvider:
	"""Provider for clients that cannot share a position (plain HTTP)."""

	async def request_position(self) -> Optional[Coordinates]:
		return None


class StaticLocationProvider:
	"""Provider returning a fixed position supplied with the request."""

	def __init__(self, coordinates: Optional[Coordinates]) -> None:
		self.coordinates = coordinates

	async def request_position(self) -> Optional[Coordinates]:
		return self.coordinates


def parse_coordinates(payload: Dict[str, Any]) -> Optional[Coordinates]:
	"""Return coordinates from a location.response payload, or None."""
	if payload.get("error"):
		return None
	try:
		lat = float(payload["lat"])
		lng = float(payload["lng"])
	except (KeyError, TypeError, ValueError):
		return None
	if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
		return None
	return Coordinates(lat=lat, lng=lng)


class WebSocketLocationProvider:
	"""Ask the connected browser for its position and wait for the answer."""

	def __init__(self, send: Sender, timeout: float | None = None) -> None:
		self.send = send
		self.timeout = config.LOCATION_TIMEOUT if timeout is None else timeout
		self._pending: Optional[asyncio.Future] = None

	@property
	def waiting(self) -> bool:
		return self._pending is not None and not self._pending.done()

	async def request_position(self) -> Optional[Coordinates]:
		if self.waiting:
			raise RuntimeError("A location request is already outstanding.")
		loop = asyncio.get_running_loop()
		self._pending = loop.create_future()
		try:
			await self.send({"type": "location.request"})
			return await asyncio.wait_for(self._pending, timeout=self.timeout)
		except asyncio.TimeoutError:
			LOGGER.info("Location request timed out after %.1fs", self.timeout)
			return None
		finally:
			self._pending = None

	def resolve(self, payload: Dict[str, Any]) -> bool:
		"""Complete the outstanding request; returns False when none is waiting."""
		if not self.waiting:
			return False
		coordinates = parse_coordinates(payload)
		if coordinates is None:
			LOGGER.info("Location unavailable: %s", payload.get("error") or "malformed response")
		self._pending.set_result(coordinates)
		return True
