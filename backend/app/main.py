"""Listing Vault API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ListingVaultError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Record store and image storage initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Three error handler layers: ListingVaultError (domain), RequestValidationError
      (Pydantic), Exception (catch-all) — never leaks internal details
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.request_context import register_request_context
from app.api.routes import health, listings
from app.config import get_settings
from app.infrastructure.image_storage import init_image_storage
from app.infrastructure.observability import setup_logging
from app.infrastructure.record_store import init_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_store(settings.records_path)
    init_image_storage(settings.images_dir, settings.max_image_bytes)
    logger.info(
        f"Listing Vault API started (records: {settings.records_path}, "
        f"images: {settings.images_dir}, media retention: {settings.media_retention})",
    )
    yield
    logger.info("Listing Vault API shutting down")


app = FastAPI(
    title="Listing Vault API", version="1.0.0", lifespan=lifespan,
)

# CORS origins come from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
register_request_context(app)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(listings.router)

register_error_handlers(app)
