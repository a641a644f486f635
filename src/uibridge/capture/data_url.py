"""``data:`` URL encoding helpers."""

from __future__ import annotations

import base64
import binascii

MIME_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def encode_data_url(mime: str, payload: bytes) -> str:
    """Build a base64 ``data:`` URL."""
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URL into ``(mime, payload)``.

    Raises:
        ValueError: If *data_url* is not a base64 data URL.
    """
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a data URL")
    header, _, encoded = data_url.partition(",")
    mime = header[5:].split(";", 1)[0] or "application/octet-stream"
    if ";base64" not in header:
        raise ValueError("Only base64 data URLs are supported")
    try:
        return mime, base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


def approximate_size(data_url: str) -> int:
    """Approximate decoded size in bytes (three quarters of the URL length)."""
    return round(len(data_url) * 0.75)
