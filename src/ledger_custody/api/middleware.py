"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware — injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware — catches domain exceptions -> structured JSON errors
    3. CORSMiddleware — handles browser-based clients
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ledger_custody.domain.enums import ErrorKind
from ledger_custody.domain.exceptions import CustodyError, InvalidArgumentError

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INSTANCE_NOT_FOUND: 404,
    ErrorKind.UNKNOWN_PROPOSAL: 404,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.ALREADY_INITIALIZED: 409,
    ErrorKind.ALREADY_VOTED: 409,
    ErrorKind.ALREADY_EXECUTED: 409,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.DUPLICATE_TRANSACTION: 409,
    ErrorKind.INVALID_ARGUMENT: 422,
    ErrorKind.INVALID_THRESHOLD: 422,
}


def error_body(exc: CustodyError) -> dict:
    body = {
        "ok": False,
        "error": exc.kind.value,
        "code": exc.code,
        "message": exc.message,
    }
    if isinstance(exc, InvalidArgumentError) and exc.details:
        body["details"] = exc.details
    return body


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Use client-provided ID or generate one
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        # Bind to structlog context for all log entries in this request
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return structured JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except CustodyError as exc:
            status_code = STATUS_BY_KIND.get(exc.kind, 400)
            logger.warning(
                "custody.rejected",
                path=request.url.path,
                error=exc.kind.value,
                code=exc.code,
                status_code=status_code,
            )
            return JSONResponse(status_code=status_code, content=error_body(exc))
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
            )


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI) -> None:
    """Register all middleware on the FastAPI application.

    Order matters — middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    # CORS (runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handling (runs second)
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID (runs last = outermost)
    app.add_middleware(RequestIDMiddleware)
