"""Server-Sent Events delivery of conversion events.

EventBroadcaster is the EventSink the orchestrator emits into when running
under ``aether serve``. Every connected SSE client gets its own bounded
queue; a client that falls behind loses events rather than slowing the
conversions down.

Endpoints:
    GET /api/events - SSE stream of conversion-progress / conversion-complete
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web

from .errors import SERVICE_UNAVAILABLE, api_error

logger = logging.getLogger(__name__)

SSE_HEARTBEAT_INTERVAL = 15  # seconds
SSE_WRITE_TIMEOUT = 5.0  # seconds - timeout for writing to slow clients
SSE_QUEUE_SIZE = 256
MAX_SSE_CONNECTIONS = 100

_CLOSE = ("close", {"reason": "server_shutdown"})


class EventBroadcaster:
    """Fans emitted events out to every SSE subscriber."""

    def __init__(self, queue_size: int = SSE_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[tuple[str, dict[str, Any]]]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[tuple[str, dict[str, Any]]]:
        queue: asyncio.Queue[tuple[str, dict[str, Any]]] = asyncio.Queue(
            maxsize=self._queue_size
        )
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[tuple[str, dict[str, Any]]]) -> None:
        self._subscribers.discard(queue)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait((event, payload))
            except asyncio.QueueFull:
                logger.debug("SSE subscriber queue full, dropping %s", event)

    def close(self) -> None:
        """Tell every subscriber the stream is ending."""
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(_CLOSE)
            except asyncio.QueueFull:
                # Make room so the close marker always gets through
                queue.get_nowait()
                queue.put_nowait(_CLOSE)


BROADCASTER_KEY = web.AppKey("broadcaster", EventBroadcaster)


async def _write_sse_event(
    response: web.StreamResponse,
    event_type: str,
    data: dict[str, Any],
    timeout: float = SSE_WRITE_TIMEOUT,
) -> bool:
    """Write an SSE event to the response stream.

    Returns:
        True if write succeeded, False if connection was closed or timed out.
    """
    try:
        payload = f"event: {event_type}\ndata: {json.dumps(data)}\n\n"
        await asyncio.wait_for(
            response.write(payload.encode("utf-8")),
            timeout=timeout,
        )
        return True
    except asyncio.TimeoutError:
        logger.warning("SSE write timeout - slow client")
        return False
    except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError):
        logger.debug("SSE client disconnected")
        return False


async def sse_events_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/events - SSE stream of conversion events."""
    broadcaster: EventBroadcaster = request.app[BROADCASTER_KEY]

    if broadcaster.subscriber_count >= MAX_SSE_CONNECTIONS:
        resp = api_error(
            "Service temporarily unavailable - too many connections",
            code=SERVICE_UNAVAILABLE,
            status=503,
        )
        resp.headers["Retry-After"] = "10"
        return resp

    response = web.StreamResponse(
        status=200,
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
    await response.prepare(request)

    queue = broadcaster.subscribe()
    logger.debug(
        "SSE connection established client=%s (total: %d)",
        request.remote or "unknown",
        broadcaster.subscriber_count,
    )
    try:
        while True:
            try:
                event, data = await asyncio.wait_for(
                    queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                )
            except asyncio.TimeoutError:
                if not await _write_sse_event(response, "heartbeat", {}):
                    break
                continue

            if not await _write_sse_event(response, event, data):
                break
            if (event, data) == _CLOSE:
                break
    finally:
        broadcaster.unsubscribe(queue)
        logger.debug("SSE connection closed client=%s", request.remote or "unknown")

    return response
