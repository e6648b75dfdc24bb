"""Listing Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - JSON field names are camelCase (propertyType, keyFeatures, ...); the persisted
      record uses the same keys
    - ListingCreate requires the full listing; ListingUpdate makes every field optional
    - String fields are stripped before length checks
    - ImagePayload is deliberately loose: per-image rules live in the ingestion unit
      so failures are reported with their batch index

Design Decisions:
    - Shared Annotated aliases keep create/update constraints in one place
    - Literal enums from core.domain_types for category-like fields
"""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.domain_types import AreaUnit, PropertyType, RentFrequency

MAX_IMAGES_PER_LISTING = 20

Title = Annotated[str, Field(min_length=2, max_length=200)]
Description = Annotated[str, Field(min_length=10, max_length=2000)]
Location = Annotated[str, Field(min_length=5, max_length=200)]
Address = Annotated[str, Field(min_length=5, max_length=300)]
Price = Annotated[float, Field(ge=0, le=10_000_000)]
RoomCount = Annotated[int, Field(ge=0, le=20)]
Area = Annotated[float, Field(ge=0, le=100_000)]
Availability = Annotated[str, Field(min_length=5, max_length=100)]
KeyFeature = Annotated[str, Field(max_length=100)]
ContactName = Annotated[str, Field(max_length=100)]
ContactEmail = Annotated[
    str, Field(max_length=254, pattern=r"^$|^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"),
]
ContactPhone = Annotated[str, Field(pattern=r"^$|^\d{10,15}$")]
ChargeText = Annotated[str, Field(max_length=50)]


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# Query-string numbers: an empty parameter (?minPrice=) means no filter
OptionalQueryFloat = Annotated[float | None, BeforeValidator(_blank_to_none)]
OptionalQueryInt = Annotated[int | None, BeforeValidator(_blank_to_none)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ImagePayload(CamelModel):
    """One embedded image: data URI plus declared name/type/size."""
    name: str | None = None
    type: str | None = None
    data: str | None = None
    size: int | None = None


class ListingCreate(CamelModel):
    """Full listing submission, optionally with embedded images."""
    title: Title
    description: Description
    location: Location
    address: Address
    property_type: PropertyType
    price: Price
    rent_frequency: RentFrequency
    beds: RoomCount
    baths: RoomCount
    sqft: Area
    sqft_unit: AreaUnit = AreaUnit.SQUARE_FEET
    availability: Availability
    key_features: list[KeyFeature] = Field(default_factory=list, max_length=20)
    images: list[ImagePayload] | None = Field(None, max_length=MAX_IMAGES_PER_LISTING)

    contact_name: ContactName | None = None
    contact_email: ContactEmail | None = None
    contact_phone: ContactPhone | None = None

    deposit: ChargeText | None = None
    service_charge: ChargeText | None = None
    utility_bills: ChargeText | None = None

    def attributes(self) -> dict:
        """Listing fields as persisted (camelCase, JSON-safe, no image payloads)."""
        return self.model_dump(
            mode="json", by_alias=True, exclude={"images"}, exclude_none=True,
        )

    def image_payloads(self) -> list[dict]:
        return [img.model_dump() for img in self.images or []]


class ListingUpdate(CamelModel):
    """Partial update: only supplied fields overwrite the stored listing."""
    title: Title | None = None
    description: Description | None = None
    location: Location | None = None
    address: Address | None = None
    property_type: PropertyType | None = None
    price: Price | None = None
    rent_frequency: RentFrequency | None = None
    beds: RoomCount | None = None
    baths: RoomCount | None = None
    sqft: Area | None = None
    sqft_unit: AreaUnit | None = None
    availability: Availability | None = None
    key_features: list[KeyFeature] | None = Field(None, max_length=20)
    images: list[ImagePayload] | None = Field(None, max_length=MAX_IMAGES_PER_LISTING)

    contact_name: ContactName | None = None
    contact_email: ContactEmail | None = None
    contact_phone: ContactPhone | None = None

    deposit: ChargeText | None = None
    service_charge: ChargeText | None = None
    utility_bills: ChargeText | None = None

    def changes(self) -> dict:
        """Supplied, non-null fields only (camelCase, no image payloads)."""
        return self.model_dump(
            mode="json", by_alias=True, exclude={"images"},
            exclude_unset=True, exclude_none=True,
        )

    def image_payloads(self) -> list[dict] | None:
        if self.images is None:
            return None
        return [img.model_dump() for img in self.images]
