"""Runtime configuration read from the environment.

Values are resolved at import time; `main.py` loads a `.env` file before
importing anything that reads them.
"""

from __future__ import annotations

import os


def _float_env(name: str, default: float) -> float:
	raw = os.getenv(name, "").strip()
	return float(raw) if raw else default


def _int_env(name: str, default: int) -> int:
	raw = os.getenv(name, "").strip()
	return int(raw) if raw else default


# Models per capability
CHAT_MODEL = os.getenv("AGENTFI_CHAT_MODEL", "gpt-5").strip()
FAST_MODEL = os.getenv("AGENTFI_FAST_MODEL", "gpt-5-nano").strip()
SEARCH_MODEL = os.getenv("AGENTFI_SEARCH_MODEL", "gpt-5-mini").strip()
LOCATION_MODEL = os.getenv("AGENTFI_LOCATION_MODEL", "gpt-5-mini").strip()
IMAGE_MODEL = os.getenv("AGENTFI_IMAGE_MODEL", "gpt-image-1").strip()
TTS_MODEL = os.getenv("AGENTFI_TTS_MODEL", "gpt-4o-mini-tts").strip()
TTS_VOICE = os.getenv("AGENTFI_TTS_VOICE", "coral").strip()

# Timeouts (seconds)
GATEWAY_TIMEOUT = _float_env("AGENTFI_GATEWAY_TIMEOUT", 30.0)
LOCATION_TIMEOUT = _float_env("AGENTFI_LOCATION_TIMEOUT", 10.0)

# Behaviour
SPEECH_CHARS = _int_env("AGENTFI_SPEECH_CHARS", 100)
ANALYTIC_THRESHOLD = _int_env("AGENTFI_ANALYTIC_THRESHOLD", 60)
MAX_UPLOAD_BYTES = _int_env("AGENTFI_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
