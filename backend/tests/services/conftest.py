"""Service test fixtures — tmp_path-backed store, ingestor, service, and FastAPI test client.

Invariants:
    - Every test gets a fresh record file and content directory under tmp_path
    - Route dependencies overridden to use the test store/ingestor
    - Module singletons patched for code that reads them directly (readiness probe)

Design Decisions:
    - Real filesystem over fakes: the store's atomicity is part of what is exercised
    - httpx ASGITransport does not run the lifespan, so singletons are wired here
"""

import pytest
from httpx import ASGITransport, AsyncClient

import app.infrastructure.image_storage as images_module
import app.infrastructure.record_store as store_module
from app.core.domain_types import MediaRetention
from app.infrastructure.image_storage import ImageIngestor, get_image_ingestor
from app.infrastructure.record_store import JsonRecordStore, get_record_store
from app.main import app
from app.services.listing_service import ListingService, get_listing_service


@pytest.fixture
def store(records_path):
    return JsonRecordStore(records_path)


@pytest.fixture
def ingestor(images_dir):
    return ImageIngestor(images_dir)


@pytest.fixture
def service(store, ingestor):
    return ListingService(store, ingestor)


@pytest.fixture
def purging_service(store, ingestor):
    return ListingService(store, ingestor, MediaRetention.PURGE)


@pytest.fixture
async def client(store, ingestor, monkeypatch):
    """FastAPI test client with storage dependencies overridden."""
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_image_ingestor] = lambda: ingestor
    app.dependency_overrides[get_listing_service] = lambda: ListingService(store, ingestor)
    monkeypatch.setattr(store_module, "record_store", store)
    monkeypatch.setattr(images_module, "image_ingestor", ingestor)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
