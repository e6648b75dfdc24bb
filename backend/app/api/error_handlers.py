"""Error Handlers — global exception handlers for the Listing Vault API.

Invariants:
    - ListingVaultError → structured JSON with error code, message, severity
    - RequestValidationError → field-level error details
    - Exception (catch-all) → never leaks internal details
    - Every error body carries the request id when one was assigned

Design Decisions:
    - Three-layer handler: domain (ListingVaultError), validation (Pydantic), catch-all (Exception)
    - Extracted from main.py to keep app wiring readable
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.errors import ListingVaultError, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _register_domain_error_handler(app: FastAPI) -> None:
    """Register Listing Vault domain/infrastructure error handler."""

    @app.exception_handler(ListingVaultError)
    async def domain_error_handler(request: Request, exc: ListingVaultError):
        """Handle all Listing Vault domain/infrastructure errors."""
        exc.context.request_id = exc.context.request_id or _request_id(request)
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"ListingVaultError: {exc.message}",
            extra={
                "error_code": exc.code, "path": request.url.path,
                "request_id": exc.context.request_id,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {len(exc.errors())} field error(s)",
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc, _request_id(request)),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                    "request_id": _request_id(request),
                },
            },
        )


def _build_validation_error_response(
    exc: RequestValidationError, request_id: str | None,
) -> dict:
    """Build structured validation error response."""
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "request_id": request_id,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
