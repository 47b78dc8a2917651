"""Event delivery to the presentation layer.

The engine only knows ``emit(event, payload)``. Payloads are JSON-ready
dicts with camelCase keys.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

CONVERSION_PROGRESS = "conversion-progress"
CONVERSION_COMPLETE = "conversion-complete"


class EventSink(Protocol):
    """Receives fire-and-forget notifications."""

    def emit(self, event: str, payload: dict[str, Any]) -> None: ...


class NullEventSink:
    """Discards every event."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        return None


class RecordingEventSink:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def of(self, event: str, job_id: str | None = None) -> list[dict[str, Any]]:
        """Payloads of one event type, optionally for one job."""
        return [
            payload
            for name, payload in self.events
            if name == event and (job_id is None or payload.get("id") == job_id)
        ]


def safe_emit(sink: EventSink, event: str, payload: dict[str, Any]) -> None:
    """Emit without letting a sink failure reach the caller."""
    try:
        sink.emit(event, payload)
    except Exception as e:  # noqa: BLE001 - delivery must never fail a job
        logger.debug("Failed to deliver %s event: %s", event, e)
