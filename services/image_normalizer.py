"""Image normalizer service.

Wraps Pillow to turn an uploaded image (raw bytes in any format Pillow can
open) into PNG bytes suitable for the image edit endpoint. Oversized images
are scaled down to fit `max_size` while preserving aspect ratio.

Example:
    normalizer = ImageNormalizer(max_size=(1024, 1024))
    png_bytes = normalizer.to_png(raw_upload)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError


class ImageNormalizer:
    """Normalize uploaded images to RGBA PNG.

    Args:
        max_size: Maximum width and height of the normalized image. Defaults to (1024, 1024).
    """

    def __init__(self, max_size: Tuple[int, int] = (1024, 1024)):
        self.max_size = max_size

    def to_png(self, data: bytes) -> bytes:
        """Return PNG bytes for the uploaded image.

        Raises:
            ValueError: If the bytes are empty or not a supported image format.
        """
        if not data:
            raise ValueError("Uploaded image is empty.")

        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Uploaded bytes are not a supported image format") from exc

        # The edit endpoint accepts transparency, so keep alpha
        src = src.convert("RGBA")
        if src.width > self.max_size[0] or src.height > self.max_size[1]:
            src.thumbnail(self.max_size, Image.LANCZOS)

        out_io = io.BytesIO()
        src.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()
