"""Standardized API error response helper.

All error responses carry:
- ``error``: Human-readable error message
- ``code``: Machine-readable error code string
- ``details`` (optional): Additional context for the error

Usage:
    from aether.server.errors import api_error, INVALID_REQUEST

    return api_error("paths must be a list", code=INVALID_REQUEST)
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

INVALID_REQUEST = "INVALID_REQUEST"
INVALID_JSON = "INVALID_JSON"
RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
SHUTTING_DOWN = "SHUTTING_DOWN"


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
) -> web.Response:
    """Create a standardized JSON error response.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code.
        status: HTTP status code (default 400).
        details: Optional additional context.

    Returns:
        aiohttp JSON response with ``{"error": ..., "code": ...}`` body.
    """
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


async def read_json(request: web.Request) -> tuple[Any, web.Response | None]:
    """Parse the request body as JSON.

    Returns:
        Tuple of (payload, error_response). Exactly one is meaningful.
    """
    try:
        return await request.json(), None
    except ValueError:
        return None, api_error("Request body must be valid JSON", code=INVALID_JSON)
