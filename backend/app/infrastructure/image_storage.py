"""Image Ingestion — decode embedded image payloads and write them to the content directory.

Invariants:
    - ingest() never raises for a bad payload: validation, decode and write failures
      all come back as a failed ImageIngestResult with human-readable errors
    - ingest_batch() is sequential and order-preserving; every item is attempted even
      after an earlier failure (complete picture, no fail-fast)
    - Each result keeps its input index so callers can correlate failures
    - The content directory is append-only: filenames are never reused

Design Decisions:
    - aiofiles for the byte write: keeps the event loop free for large payloads
    - No parallelism inside a batch: ordering and error attribution stay trivial;
      independent batches may still ingest concurrently (distinct filenames)
    - Singleton image_ingestor initialized on startup, like the record store
"""

import asyncio
import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles

from app.core.image_validation import (
    DEFAULT_MAX_IMAGE_BYTES, decode_image_data,
    generate_unique_filename, validate_image_payload,
)

logger = logging.getLogger(__name__)


@dataclass
class ImageIngestResult:
    """Outcome of ingesting one image payload."""
    index: int
    original_name: str | None
    success: bool
    filename: str | None = None
    filepath: str | None = None
    size: int | None = None
    errors: list[str] = field(default_factory=list)

    def asset(self) -> dict:
        """Image metadata as embedded in a record (no bytes)."""
        return {
            "filename": self.filename,
            "originalName": self.original_name,
            "size": self.size,
            "filepath": self.filepath,
        }

    def to_dict(self) -> dict:
        if self.success:
            return {"index": self.index, **self.asset()}
        return {
            "index": self.index,
            "originalName": self.original_name,
            "errors": list(self.errors),
        }


@dataclass
class ImageBatchResult:
    """Aggregate outcome of one ordered batch."""
    processed_images: list[ImageIngestResult] = field(default_factory=list)
    errors: list[ImageIngestResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def assets(self) -> list[dict]:
        return [r.asset() for r in self.processed_images]

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "processedImages": [r.to_dict() for r in self.processed_images],
            "errors": [r.to_dict() for r in self.errors],
        }


class ImageIngestor:
    """Validates, decodes and stores embedded images under one content directory."""

    def __init__(
        self, upload_dir: Path | str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    ):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    async def ingest(self, payload: Mapping, index: int = 0) -> ImageIngestResult:
        """Ingest one payload; failures are returned, not raised."""
        name = payload.get("name")
        errors = validate_image_payload(payload, self.max_bytes)
        if errors:
            return ImageIngestResult(index, name, False, errors=errors)

        try:
            content = decode_image_data(payload["data"])
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            filename = generate_unique_filename(name, payload.get("type"))
            filepath = self.upload_dir / filename
            async with aiofiles.open(filepath, "wb") as f:
                await f.write(content)
        except ValueError:
            logger.warning(
                f"Undecodable image payload '{name}'", extra={"image_index": index},
            )
            return ImageIngestResult(
                index, name, False, errors=["Invalid base64 image data format"],
            )
        except OSError as e:
            logger.error(
                f"Failed to write image '{name}': {e}", extra={"image_index": index},
            )
            return ImageIngestResult(
                index, name, False, errors=[f"Failed to store image: {e.strerror or e}"],
            )

        return ImageIngestResult(
            index, name, True,
            filename=filename, filepath=str(filepath), size=len(content),
        )

    async def ingest_batch(
        self, payloads: Sequence[Mapping] | None,
    ) -> ImageBatchResult:
        """Ingest payloads in order; every item is attempted."""
        batch = ImageBatchResult()
        for index, payload in enumerate(payloads or ()):
            result = await self.ingest(payload, index)
            if result.success:
                batch.processed_images.append(result)
            else:
                batch.errors.append(result)
        if batch.errors:
            logger.warning(
                f"Image batch rejected: {len(batch.errors)} of "
                f"{len(batch.processed_images) + len(batch.errors)} failed",
            )
        return batch

    async def discard(self, assets: Iterable[Mapping]) -> int:
        """Remove stored files for the given image metadata; returns files removed."""
        paths = [a.get("filepath") for a in assets if a.get("filepath")]
        return await asyncio.to_thread(self._remove_files, paths)

    def _remove_files(self, paths: list[str]) -> int:
        removed = 0
        root = self.upload_dir.resolve()
        for raw in paths:
            path = Path(raw).resolve()
            if root not in path.parents:
                logger.warning(f"Refusing to remove file outside content directory: {raw}")
                continue
            try:
                os.remove(path)
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Failed to remove image file {raw}: {e}")
        return removed


# Singleton (initialized on startup)
image_ingestor: ImageIngestor | None = None


def init_image_storage(upload_dir: Path | str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> ImageIngestor:
    global image_ingestor
    image_ingestor = ImageIngestor(upload_dir, max_bytes)
    return image_ingestor


def get_image_ingestor() -> ImageIngestor:
    """FastAPI dependency for the image ingestor."""
    if not image_ingestor:
        raise RuntimeError("Image storage not initialized")
    return image_ingestor
