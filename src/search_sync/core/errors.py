"""
Global Error Handling

This module defines application-wide exception handlers for the search API.

Design Goals
------------
- Map the package's error taxonomy onto stable HTTP status codes
- Never leak internal exception details for unexpected failures
- Preserve backend detail for structural rejections (diagnostics)
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

from .exceptions import (
    SearchSyncError,
    ConfigurationError,
    EntityNotRegisteredError,
    NotFoundError,
    SearchConnectionError,
    BackendRejectionError,
)

logger = logging.getLogger("search_sync.errors")


# ---------------------------------------------------------------------
# Status Mapping
# ---------------------------------------------------------------------

def _classify(exc: SearchSyncError) -> tuple[int, str]:
    # Order matters: EntityNotRegisteredError is also a ConfigurationError
    if isinstance(exc, EntityNotRegisteredError):
        return 404, "entity_not_registered"
    if isinstance(exc, NotFoundError):
        return 404, "not_found"
    if isinstance(exc, ConfigurationError):
        return 500, "configuration_error"
    if isinstance(exc, SearchConnectionError):
        return 503, "search_backend_unavailable"
    if isinstance(exc, BackendRejectionError):
        return 502, "search_backend_rejected"
    return 500, "search_sync_error"


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def search_sync_exception_handler(
    request: Request,
    exc: SearchSyncError,
) -> JSONResponse:
    """
    Translate a SearchSyncError into a JSON error response.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : SearchSyncError
        The raised package error.

    Returns
    -------
    JSONResponse
        Response with a machine-readable ``error`` code and a ``detail``.
    """
    status_code, code = _classify(exc)

    if status_code >= 500:
        logger.error(
            "Search sync failure during request %s %s: %s",
            request.method,
            request.url.path,
            exc,
        )

    payload: Dict[str, Any] = {"error": code, "detail": str(exc)}

    if isinstance(exc, BackendRejectionError) and exc.detail is not None:
        payload["backend"] = exc.detail

    return JSONResponse(status_code=status_code, content=payload)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Logs the full traceback internally and returns a generic 500 with no
    internal details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
