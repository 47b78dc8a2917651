"""Signal handler setup for long-running commands.

``aether serve`` stops on SIGTERM (from a supervisor such as systemd) and
SIGINT (Ctrl+C). ``aether convert`` uses the same hook to cancel its job.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    on_signal: Callable[[signal.Signals], None],
    signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS,
) -> None:
    """Register ``on_signal`` for each of ``signals``.

    Registration failures (not in the main thread, or a loop without
    signal support) are logged and otherwise ignored.
    """
    for sig in signals:
        try:
            loop.add_signal_handler(sig, on_signal, sig)
            logger.debug("Registered handler for %s", sig.name)
        except (NotImplementedError, ValueError, RuntimeError) as e:
            logger.warning("Failed to register handler for %s: %s", sig.name, e)


def remove_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS,
) -> None:
    """Remove handlers installed by setup_signal_handlers()."""
    for sig in signals:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, ValueError, RuntimeError):
            logger.debug("No handler to remove for %s", sig.name)


def shutdown_on_signal(
    shutdown_event: asyncio.Event,
) -> Callable[[signal.Signals], None]:
    """Build a handler that sets ``shutdown_event``."""

    def handle_shutdown_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, initiating graceful shutdown", sig.name)
        shutdown_event.set()

    return handle_shutdown_signal
