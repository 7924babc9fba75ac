"""Image payload helpers: verify generated bytes and wrap them as data URIs."""

from __future__ import annotations

import base64
import io

from PIL import Image

from superarchitect.errors import GenerationError

_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


def verify_image_bytes(data: bytes) -> str:
    """Decode ``data`` fully and return its MIME type.

    Raises GenerationError when the payload is empty, truncated or not an image.
    """
    if not data:
        raise GenerationError("Generator returned an empty image payload")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()  # Force full decode to catch truncation
    except Exception as exc:
        raise GenerationError(f"Generated image is corrupt: {type(exc).__name__}") from exc
    return _FORMAT_MIME.get(img.format or "", "image/png")


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def solid_color_png(color: str, size: tuple[int, int] = (64, 36)) -> bytes:
    """Render a flat PNG swatch, used by the offline generator."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()
