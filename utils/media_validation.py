"""Validation helpers for uploaded images."""

from fastapi import HTTPException, UploadFile

from services.openai.media_inputs import decode_image_b64
from utils import config

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/gif",
    "image/bmp",
}


def validate_image_file(image_file: UploadFile) -> None:
    """Validate that the uploaded file looks like a supported image.

    The content type is checked when the browser sends one; otherwise the
    filename extension must be a known image extension.
    """
    if image_file.content_type:
        content_type = image_file.content_type.lower().split(";", 1)[0].strip()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {image_file.content_type}")
    else:
        filename = (image_file.filename or "").lower()
        if not filename.endswith((".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp")):
            raise HTTPException(status_code=415, detail="Unsupported or missing image content type.")


def ensure_size(image_bytes: bytes) -> bytes:
    """Reject empty or oversized image payloads."""
    if not image_bytes:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    if len(image_bytes) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded image is too large.")
    return image_bytes


async def read_image_bytes(image_file: UploadFile) -> bytes:
    """Read validated image bytes, ensuring the upload is neither empty nor too large."""
    validate_image_file(image_file)
    return ensure_size(await image_file.read())


def decode_upload_b64(image_b64: str) -> bytes:
    """Decode a base64 (or data URL) image sent over the websocket."""
    raw = decode_image_b64((image_b64 or "").strip())
    if not raw:
        raise ValueError("Image payload is required.")
    if len(raw) > config.MAX_UPLOAD_BYTES:
        raise ValueError("Image payload is too large.")
    return raw
