"""Request Context — per-request id assignment and access logging.

Invariants:
    - Every response carries an X-Request-ID header
    - A client-supplied X-Request-ID is reused only if it is short and printable
    - request.state.request_id is set before any route or error handler runs

Design Decisions:
    - Plain HTTP middleware over a dependency: error handlers need the id even when
      dependency resolution never happened (e.g. validation errors)
"""

import logging
import secrets
import time

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_CLIENT_ID_LENGTH = 64


def _accept_client_id(value: str | None) -> str | None:
    if value and len(value) <= _MAX_CLIENT_ID_LENGTH and value.isprintable():
        return value
    return None


def register_request_context(app: FastAPI) -> None:
    """Attach the request-id / access-log middleware."""

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = (
            _accept_client_id(request.headers.get(REQUEST_ID_HEADER))
            or secrets.token_hex(16)
        )
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({(time.perf_counter() - started) * 1000:.1f} ms)",
            extra={
                "request_id": request_id, "method": request.method,
                "path": request.url.path, "status_code": response.status_code,
            },
        )
        return response
