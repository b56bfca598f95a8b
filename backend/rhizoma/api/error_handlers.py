"""Error Handlers: global exception handlers for the Rhizoma API.

Invariants:
    - RhizomaError → structured JSON with error code, message, severity at its http_status
    - InstallationError keeps its NOT_INSTALLED code so clients can redirect to setup
    - Exception (catch-all) → never leaks internal details (no query text, no credentials)

Design Decisions:
    - Two-layer handler: domain (RhizomaError), catch-all (Exception)
    - Offending query logged from debug_info, never returned
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from rhizoma.core.errors import RhizomaError, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_rhizoma_error_handler(app)
    _register_generic_error_handler(app)


def _register_rhizoma_error_handler(app: FastAPI) -> None:
    """Register database/installation error handler."""

    @app.exception_handler(RhizomaError)
    async def rhizoma_error_handler(request: Request, exc: RhizomaError):
        """Handle all Rhizoma errors."""
        debug = exc.context.debug_info or {}
        logger.error(
            f"RhizomaError: {exc.message}",
            extra={"error_code": exc.code, "query": debug.get("query")},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )
