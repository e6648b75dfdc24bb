"""Error Hierarchy — typed, categorized exceptions for all Listing Vault failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; storage errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ListingVaultError base: FastAPI global handler catches all (ADR: uniform error shape)
    - Per-image validation failures are NOT raised by the ingestion unit; they are
      collected as data and only become ImageBatchRejectedError at the service boundary
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORAGE = "storage"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record_id: str | None = None
    request_id: str | None = None
    debug_info: dict[str, Any] | None = None


class ListingVaultError(Exception):
    """Base exception for all Listing Vault errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "record_id": self.context.record_id,
                    "request_id": self.context.request_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ImageBatchRejectedError(ListingVaultError):
    """One or more images of a submission failed ingestion; nothing was persisted."""
    def __init__(self, failures: list[dict], context: ErrorContext | None = None):
        super().__init__(
            f"Image processing failed for {len(failures)} image(s)",
            "IMAGE_VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.failures = failures

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = self.failures
        return response


class ResourceNotFoundError(ListingVaultError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.record_id = resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StorageError(ListingVaultError):
    """Durable read or write of the record collection failed."""
    def __init__(
        self,
        message: str,
        operation: str,
        code: str = "STORAGE_ERROR",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Storage {operation} failed: {message}",
            code, ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class StorageCorruptedError(StorageError):
    """Durable file exists but does not hold a readable record collection."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, "load", "STORAGE_CORRUPTED", context)
