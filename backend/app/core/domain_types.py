"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - RecordId is the opaque string key of a listing (PROP_<ms>_<hex>)
    - ImageMimeType enumerates the only accepted image encodings
    - MIME → extension mapping is fixed; unmapped types fall back to .jpg

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

RecordId = NewType("RecordId", str)

RECORD_ID_PREFIX = "PROP"


# ─── Enums ───────────────────────────────────────────────────────

class ImageMimeType(str, Enum):
    """Accepted declared MIME types for embedded images."""
    JPEG = "image/jpeg"
    JPG = "image/jpg"
    PNG = "image/png"
    WEBP = "image/webp"


class PropertyType(str, Enum):
    """Listing categories accepted at the API boundary."""
    FLAT = "Flat"
    HOUSE = "House"
    APARTMENT = "Apartment"
    STUDIO = "Studio"
    PENTHOUSE = "Penthouse"
    VILLA = "Villa"
    TOWNHOUSE = "Townhouse"


class RentFrequency(str, Enum):
    PER_MONTH = "per month"
    PER_WEEK = "per week"
    PER_DAY = "per day"
    PER_YEAR = "per year"


class AreaUnit(str, Enum):
    SQUARE_FEET = "FT²"
    SQUARE_METERS = "M²"


class MediaRetention(str, Enum):
    """What happens to image files no longer referenced by any listing."""
    RETAIN = "retain"
    PURGE = "purge"


ALLOWED_IMAGE_TYPES = frozenset(t.value for t in ImageMimeType)

MIME_EXTENSIONS: dict[str, str] = {
    ImageMimeType.JPEG.value: ".jpg",
    ImageMimeType.JPG.value: ".jpg",
    ImageMimeType.PNG.value: ".png",
    ImageMimeType.WEBP.value: ".webp",
}

DEFAULT_IMAGE_EXTENSION = ".jpg"
