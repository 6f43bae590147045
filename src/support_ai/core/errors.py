"""
Global Error Handling

This module defines the error types shared across components and the
application-wide exception handlers for the support AI service.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
- Keep configuration failures distinct from runtime failures
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("support.errors")


# ---------------------------------------------------------------------
# Shared Exceptions
# ---------------------------------------------------------------------

class ConfigurationError(RuntimeError):
    """Raised at call time when a required key or account id is missing."""


class DimensionMismatchError(ValueError):
    """Raised when a vector does not match the configured index dimension."""


class ResourceNotReady(TimeoutError):
    """Raised when an asynchronously provisioned resource misses its deadline."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def configuration_error_handler(
    request: Request,
    exc: ConfigurationError,
) -> JSONResponse:
    """
    Report a missing configuration value.

    The message only names the missing setting, never its value, so it is
    safe to return to the caller.
    """
    logger.error(
        "Configuration error during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )

    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc)},
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    - Ensures consistent error response format across the entire API.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "success": False,
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
