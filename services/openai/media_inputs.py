"""Utilities to build media payloads for the OpenAI APIs."""

import base64
import binascii
from typing import Any, Dict, List, Tuple


def to_image_data_url(image_b64: str, mime_type: str = "image/png") -> str:
    """Wrap a base64 image payload into a data URL the front-end can render."""
    return f"data:{mime_type};base64,{image_b64}"


def decode_image_b64(image_b64: str) -> bytes:
    """Decode a base64 image payload, accepting an optional data URL prefix."""
    payload = image_b64 or ""
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image payload is not valid base64.") from exc


def image_upload_file(image_bytes: bytes, filename: str = "upload.png") -> Tuple[str, bytes, str]:
    """Return the (filename, content, mime) tuple expected by `images.edit`."""
    return (filename, image_bytes, "image/png")


def build_inputs(system_prompt: str, user_prompt: str) -> List[Dict[str, Any]]:
    """Build the Responses API input array for a system + user exchange."""
    inputs: List[Dict[str, Any]] = []
    if system_prompt:
        inputs.append(
            {
                "type": "message",
                "role": "system",
                "content": [{"type": "input_text", "text": system_prompt}],
            }
        )
    inputs.append({"type": "message", "role": "user", "content": [{"type": "input_text", "text": user_prompt}]})
    return inputs
