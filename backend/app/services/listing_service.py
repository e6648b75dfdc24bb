"""Listing Service — orchestrates image ingestion and the record store.

Invariants:
    - A listing is persisted only after its whole image batch ingested (all-or-nothing)
    - A rejected batch raises ImageBatchRejectedError listing every failing index
    - Records embed image metadata, never image bytes or data URIs
    - images=None and images=[] behave identically on create
    - On update, images are replaced only when new payloads are supplied
    - Storage errors propagate unchanged; nothing is retried here

Design Decisions:
    - Media retention policy applied here, not in the store: the store only ever
      holds references, the ingestor owns the files (ADR: single owner per resource)
    - Displaced images come from the record as the store saw it inside its lock, so
      concurrent replacements each release exactly what they overwrote
    - Existence checked before ingesting update images: avoids writing files for a
      listing that is already gone
"""

import logging
from collections.abc import Mapping, Sequence

from fastapi import Depends

from app.config import Settings, get_settings
from app.core.domain_types import MediaRetention
from app.core.errors import ImageBatchRejectedError, ResourceNotFoundError, StorageError
from app.core.listing_filters import ListingFilters, filter_listings
from app.infrastructure.image_storage import (
    ImageBatchResult, ImageIngestor, get_image_ingestor,
)
from app.infrastructure.record_store import JsonRecordStore, get_record_store

logger = logging.getLogger(__name__)


def _without_images(attributes: Mapping) -> dict:
    return {k: v for k, v in attributes.items() if k != "images"}


class ListingService:
    """Create/read/list/update/delete operations over property listings."""

    def __init__(
        self,
        store: JsonRecordStore,
        ingestor: ImageIngestor,
        media_retention: MediaRetention = MediaRetention.RETAIN,
    ):
        self.store = store
        self.ingestor = ingestor
        self.media_retention = MediaRetention(media_retention)

    async def create_listing(
        self, attributes: Mapping, images: Sequence[Mapping] | None = None,
    ) -> dict:
        """Ingest images, then persist the listing with their metadata."""
        batch = await self._ingest(images)
        try:
            return await self.store.create(
                {**_without_images(attributes), "images": batch.assets()},
            )
        except StorageError:
            await self._release(batch.assets())
            raise

    async def get_listing(self, listing_id: str) -> dict:
        record = await self.store.get(listing_id)
        if record is None:
            raise ResourceNotFoundError("Listing", listing_id)
        return record

    async def list_listings(self, filters: ListingFilters | None = None) -> list[dict]:
        return filter_listings(await self.store.list_all(), filters)

    async def update_listing(
        self,
        listing_id: str,
        partial: Mapping,
        images: Sequence[Mapping] | None = None,
    ) -> dict:
        """Shallow-merge `partial`; replace images only if payloads are supplied."""
        changes = _without_images(partial)
        batch: ImageBatchResult | None = None

        if images is not None:
            await self.get_listing(listing_id)
            batch = await self._ingest(images)
            changes["images"] = batch.assets()

        try:
            previous, updated = await self.store.update_with_previous(listing_id, changes)
        except StorageError:
            if batch is not None:
                await self._release(batch.assets())
            raise

        if updated is None:
            if batch is not None:
                await self._release(batch.assets())
            raise ResourceNotFoundError("Listing", listing_id)

        if batch is not None:
            # the images this commit displaced, read under the store lock
            await self._release(previous.get("images") or [])
        return updated

    async def delete_listing(self, listing_id: str) -> bool:
        """Remove the listing; False if it did not exist."""
        removed = await self.store.delete(listing_id)
        if removed is None:
            return False
        await self._release(removed.get("images") or [])
        return True

    async def _ingest(self, images: Sequence[Mapping] | None) -> ImageBatchResult:
        batch = await self.ingestor.ingest_batch(images)
        if not batch.success:
            await self._release(batch.assets())
            raise ImageBatchRejectedError([r.to_dict() for r in batch.errors])
        if batch.processed_images:
            logger.info(f"Ingested {len(batch.processed_images)} image(s)")
        return batch

    async def _release(self, assets: Sequence[Mapping]) -> None:
        """Apply the media retention policy to files no longer referenced."""
        if self.media_retention is not MediaRetention.PURGE or not assets:
            return
        removed = await self.ingestor.discard(assets)
        logger.info(f"Purged {removed} unreferenced image file(s)")


def get_listing_service(
    store: JsonRecordStore = Depends(get_record_store),
    ingestor: ImageIngestor = Depends(get_image_ingestor),
    settings: Settings = Depends(get_settings),
) -> ListingService:
    """FastAPI dependency wiring the service to the startup singletons."""
    return ListingService(store, ingestor, MediaRetention(settings.media_retention))
