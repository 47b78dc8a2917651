"""CLI serve command.

This module provides the `aether serve` command that exposes the
conversion engine over HTTP for a desktop front end or other local clients.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import sys
from pathlib import Path

import click

from aether.cli.context import load_cli_config
from aether.cli.exit_codes import ExitCode
from aether.config.models import AetherConfig

logger = logging.getLogger(__name__)


async def run_server(
    config: AetherConfig,
    bind: str,
    port: int,
    thumbnail_dir: Path | None = None,
) -> int:
    """Run the HTTP server until SIGTERM or SIGINT.

    Args:
        config: Effective configuration.
        bind: Address to bind to.
        port: Port to bind to.
        thumbnail_dir: Directory for temporary thumbnails.

    Returns:
        Exit code (0 for clean shutdown, non-zero for errors).
    """
    from aiohttp import web

    from aether.server.app import create_app
    from aether.server.signals import (
        remove_signal_handlers,
        setup_signal_handlers,
        shutdown_on_signal,
    )

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    setup_signal_handlers(loop, shutdown_on_signal(shutdown_event))

    app = create_app(config, thumbnail_dir=thumbnail_dir)

    runner = web.AppRunner(app, shutdown_timeout=config.server.shutdown_timeout)
    await runner.setup()

    try:
        site = web.TCPSite(runner, bind, port)
        await site.start()

        logger.info(
            "aether server started on http://%s:%d (PID %d)", bind, port, os.getpid()
        )
        logger.info("Health endpoint: http://%s:%d/health", bind, port)
        logger.info("Press Ctrl+C or send SIGTERM to stop")

        await shutdown_event.wait()

        logger.info(
            "Shutdown initiated, waiting up to %.1fs for cleanup",
            config.server.shutdown_timeout,
        )
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            logger.error("Port %d is already in use", port)
            return 1
        if e.errno == errno.EADDRNOTAVAIL:
            logger.error("Cannot bind to address %s", bind)
            return 1
        logger.error("Server error: %s", e)
        return 1
    finally:
        remove_signal_handlers(loop)
        # Runs the app's on_shutdown hooks: kill FFmpeg, sweep thumbnails
        await runner.cleanup()
        logger.info("aether server stopped")

    return 0


@click.command("serve")
@click.option(
    "--bind",
    type=str,
    default=None,
    help="Address to bind to (default: 127.0.0.1).",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (default: 8412).",
)
@click.option(
    "--thumbnail-dir",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=None,
    help="Directory for temporary thumbnails (default: system temp directory).",
)
@click.pass_context
def serve_command(
    ctx: click.Context,
    bind: str | None,
    port: int | None,
    thumbnail_dir: Path | None,
) -> None:
    """Run the conversion engine as a local HTTP service.

    Binds to localhost by default. Conversion events are streamed at
    /api/events as Server-Sent Events. On SIGTERM or SIGINT every running
    FFmpeg process is killed and its partial output removed.

    \b
    Examples:
        aether serve                    # Start with defaults
        aether serve --port 9000        # Custom port
        aether --log-json serve         # JSON logging
    """
    config = load_cli_config(ctx)

    server_bind = bind if bind is not None else config.server.bind
    server_port = port if port is not None else config.server.port

    if not 1 <= server_port <= 65535:
        logger.error("Port must be 1-65535, got %d", server_port)
        sys.exit(ExitCode.INVALID_ARGUMENTS)

    if server_port < 1024:
        logger.warning("Port %d is privileged and may require root", server_port)

    logger.info(
        "Starting aether server (bind=%s, port=%d, timeout=%.1fs)",
        server_bind,
        server_port,
        config.server.shutdown_timeout,
    )

    try:
        exit_code = asyncio.run(
            run_server(config, server_bind, server_port, thumbnail_dir)
        )
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted before server started")
        sys.exit(ExitCode.INTERRUPTED)
