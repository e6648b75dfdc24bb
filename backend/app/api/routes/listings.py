"""Listings — create, search, read, update and delete property listings.

Invariants:
    - Request bodies are validated by Pydantic before reaching the handler
    - Handlers are thin: all orchestration lives in ListingService
    - Domain errors (not found, rejected images, storage) propagate to the global
      ListingVaultError handler; no handler builds its own error envelope

Design Decisions:
    - PATCH for partial update: only supplied fields change (shallow merge)
    - Missing listing on DELETE is a 404 at the HTTP layer even though the service
      reports it as a plain False
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.core.errors import ResourceNotFoundError
from app.core.listing_filters import ListingFilters
from app.schemas.listing import (
    ListingCreate, ListingUpdate, OptionalQueryFloat, OptionalQueryInt,
)
from app.services.listing_service import ListingService, get_listing_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/listings", tags=["listings"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_listing(
    body: ListingCreate, service: ListingService = Depends(get_listing_service),
):
    """Create a listing; images are ingested first and must all succeed."""
    images = body.image_payloads()
    logger.info(
        f"Listing submission received: {body.title} ({len(images)} image(s))",
    )
    listing = await service.create_listing(body.attributes(), images)
    return {
        "message": "Listing has been added successfully",
        "listingId": listing["id"],
        "data": listing,
    }


@router.get("")
async def list_listings(
    property_type: str | None = Query(None, alias="propertyType"),
    location: str | None = Query(None),
    min_price: Annotated[OptionalQueryFloat, Query(alias="minPrice", ge=0)] = None,
    max_price: Annotated[OptionalQueryFloat, Query(alias="maxPrice", ge=0)] = None,
    min_beds: Annotated[OptionalQueryInt, Query(alias="minBeds", ge=0)] = None,
    min_baths: Annotated[OptionalQueryInt, Query(alias="minBaths", ge=0)] = None,
    service: ListingService = Depends(get_listing_service),
):
    """List listings, narrowed by optional filters (AND semantics)."""
    filters = ListingFilters(
        property_type=property_type or None,
        location=location or None,
        min_price=min_price,
        max_price=max_price,
        min_beds=min_beds,
        min_baths=min_baths,
    )
    listings = await service.list_listings(filters)
    return {"count": len(listings), "data": listings}


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str, service: ListingService = Depends(get_listing_service),
):
    return {"data": await service.get_listing(listing_id)}


@router.patch("/{listing_id}")
async def update_listing(
    listing_id: str,
    body: ListingUpdate,
    service: ListingService = Depends(get_listing_service),
):
    """Shallow-merge supplied fields; images replaced only if supplied."""
    listing = await service.update_listing(
        listing_id, body.changes(), body.image_payloads(),
    )
    return {"message": "Listing updated successfully", "data": listing}


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str, service: ListingService = Depends(get_listing_service),
):
    if not await service.delete_listing(listing_id):
        raise ResourceNotFoundError("Listing", listing_id)
    return {"message": "Listing deleted successfully"}
