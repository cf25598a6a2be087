"""
Helpers for captured image payloads.

Captures arrive as self-describing base64 data URIs
(``data:image/jpeg;base64,...``).
"""

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError


class InvalidImagePayload(ValueError):
    """The payload is not a decodable base64 data URI."""


def decode_data_uri(payload: str) -> tuple[str, bytes]:
    """Split a data URI into its MIME type and raw bytes."""
    if not payload.startswith("data:") or ";base64," not in payload:
        raise InvalidImagePayload("Image payload is not a base64 data URI")

    header, encoded = payload.split(";base64,", 1)
    mime_type = header[len("data:"):]
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImagePayload(f"Invalid base64 image data: {e}") from e

    if not data:
        raise InvalidImagePayload("Image payload is empty")
    return mime_type, data


def is_blank_image(data: bytes) -> bool:
    """True when the image is a single uniform colour (e.g. a covered lens)."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            extrema = img.convert("RGB").getextrema()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImagePayload(f"Image could not be decoded: {e}") from e
    return all(low == high for low, high in extrema)


def payload_size_bytes(payload: str) -> int:
    """Approximate decoded size of a data URI without decoding it."""
    encoded = payload.split(";base64,", 1)[-1]
    return (len(encoded) * 3) // 4
