"""HTTP command surface for the conversion engine."""

from aether.server.app import create_app
from aether.server.events import EventBroadcaster

__all__ = ["EventBroadcaster", "create_app"]
