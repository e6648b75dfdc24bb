"""Image Payload Rules — validation, filename derivation, and data-URI decoding.

Invariants:
    - Pure functions: no IO, no async, no filesystem access
    - validate_image_payload evaluates every rule and collects all messages
    - Generated filenames are <ms-timestamp>_<16 hex chars><ext>
    - decode_image_data raises ValueError on malformed base64 (never returns partial bytes)

Design Decisions:
    - Payload accepted as a plain mapping: schema-level validation stays loose so
      per-item failures are reported here with their batch index
    - Strict base64 decoding (validate=True) after removing whitespace: MIME-style
      line-wrapped bodies decode, other garbage characters are rejected rather than
      silently dropped into a corrupt file
"""

import base64
import os
import re
import secrets
import time
from collections.abc import Mapping

from app.core.domain_types import (
    ALLOWED_IMAGE_TYPES, DEFAULT_IMAGE_EXTENSION, MIME_EXTENSIONS,
)

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_IMAGE_NAME_LENGTH = 255

_DATA_URI_PATTERN = re.compile(r"^data:image/(jpeg|jpg|png|webp);base64,")
_DATA_URI_PREFIX = re.compile(r"^data:image/[a-z]+;base64,")
_WHITESPACE = re.compile(r"\s+")
_MIB = 1024 * 1024


def _format_limit(max_bytes: int) -> str:
    if max_bytes % _MIB == 0:
        return f"{max_bytes // _MIB}MB"
    return f"{max_bytes} bytes"


def _is_byte_count(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def validate_image_payload(
    payload: Mapping, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> list[str]:
    """Return human-readable validation errors; empty list means valid."""
    errors: list[str] = []

    name = payload.get("name")
    if not name:
        errors.append("Image name is required")
    elif len(str(name)) > MAX_IMAGE_NAME_LENGTH:
        errors.append(f"Image name cannot exceed {MAX_IMAGE_NAME_LENGTH} characters")

    mime_type = payload.get("type")
    if not mime_type:
        errors.append("Image type is required")
    elif mime_type not in ALLOWED_IMAGE_TYPES:
        errors.append("Invalid image type. Only JPEG, PNG, and WebP are allowed")

    data = payload.get("data")
    if not data:
        errors.append("Image data is required")
    elif not isinstance(data, str) or not _DATA_URI_PATTERN.match(data):
        errors.append("Invalid base64 image data format")

    size = payload.get("size")
    if size is not None and not _is_byte_count(size):
        errors.append("Image size must be a non-negative number")
    elif size and size > max_bytes:
        errors.append(f"Image size cannot exceed {_format_limit(max_bytes)}")

    return errors


def extension_from_mime_type(mime_type: str | None) -> str:
    return MIME_EXTENSIONS.get(mime_type or "", DEFAULT_IMAGE_EXTENSION)


def generate_unique_filename(original_name: str | None, mime_type: str | None) -> str:
    """Timestamp + random token; extension from the original name, else the MIME type."""
    timestamp = int(time.time() * 1000)
    token = secrets.token_hex(8)
    extension = os.path.splitext(original_name or "")[1] or extension_from_mime_type(mime_type)
    return f"{timestamp}_{token}{extension}"


def decode_image_data(data: str) -> bytes:
    """Strip the data-URI prefix and decode the base64 body (line breaks allowed)."""
    body = _WHITESPACE.sub("", _DATA_URI_PREFIX.sub("", data, count=1))
    return base64.b64decode(body, validate=True)
