"""HTTP command surface for ``aether serve``.

Exposes the conversion engine over a small JSON API plus an SSE stream of
conversion events. All state lives on the aiohttp Application:

- one ProcessSupervisor shared by every conversion
- one EventBroadcaster the orchestrator emits into
- the set of in-flight conversion tasks

Shutdown kills every tracked process, deletes partial outputs and sweeps
temporary thumbnails.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from aiohttp import web

from aether import __version__
from aether.config.models import AetherConfig
from aether.domain.requests import parse_conversion_request, parse_thumbnail_requests
from aether.errors import InvalidConfigError
from aether.executor.files import check_file_exists, get_files_info_batch
from aether.executor.orchestrator import ConversionOrchestrator
from aether.executor.supervisor import ProcessSupervisor
from aether.executor.thumbnail import (
    cleanup_all_temp_thumbnails,
    delete_thumbnails,
    generate_thumbnails_batch,
)
from aether.tools.detection import find_tool

from .errors import (
    INVALID_REQUEST,
    RESOURCE_CONFLICT,
    SHUTTING_DOWN,
    api_error,
    read_json,
)
from .events import BROADCASTER_KEY, EventBroadcaster, sse_events_handler

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", AetherConfig)
SUPERVISOR_KEY = web.AppKey("supervisor", ProcessSupervisor)
ORCHESTRATOR_KEY = web.AppKey("orchestrator", ConversionOrchestrator)
TASKS_KEY = web.AppKey("tasks", dict)
SHUTDOWN_KEY = web.AppKey("shutdown_event", asyncio.Event)
FFMPEG_PATH_KEY = web.AppKey("ffmpeg_path", object)
THUMBNAIL_DIR_KEY = web.AppKey("thumbnail_dir", object)


def _string_list(payload: Any, field: str) -> list[str] | None:
    if not isinstance(payload, dict):
        return None
    values = payload.get(field)
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        return None
    return values


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health."""
    supervisor = request.app[SUPERVISOR_KEY]
    shutting_down = request.app[SHUTDOWN_KEY].is_set()
    ffmpeg = request.app[FFMPEG_PATH_KEY] or find_tool("ffmpeg")
    return web.json_response(
        {
            "status": "shutting_down" if shutting_down else "healthy",
            "version": __version__,
            "activeJobs": len(await supervisor.active_jobs()),
            "ffmpeg": str(ffmpeg) if ffmpeg else None,
        },
        status=503 if shutting_down else 200,
    )


async def convert_handler(request: web.Request) -> web.Response:
    """Handle POST /api/convert.

    Starts the conversion in the background and answers 202. With
    ``?wait=true`` the response is the terminal ConversionResult instead.
    """
    if request.app[SHUTDOWN_KEY].is_set():
        return api_error("Server is shutting down", code=SHUTTING_DOWN, status=503)

    payload, error = await read_json(request)
    if error is not None:
        return error
    try:
        conversion = parse_conversion_request(payload)
    except InvalidConfigError as e:
        return api_error(str(e), code=INVALID_REQUEST)

    tasks: dict[str, asyncio.Task] = request.app[TASKS_KEY]
    if conversion.id in tasks:
        return api_error(
            f"Conversion {conversion.id} is already running",
            code=RESOURCE_CONFLICT,
            status=409,
        )

    orchestrator = request.app[ORCHESTRATOR_KEY]
    task = asyncio.create_task(orchestrator.convert(conversion))
    tasks[conversion.id] = task
    task.add_done_callback(lambda _: tasks.pop(conversion.id, None))

    if request.query.get("wait", "").lower() in ("1", "true", "yes"):
        result = await task
        return web.json_response(result.to_payload())

    return web.json_response({"id": conversion.id, "status": "pending"}, status=202)


async def cancel_handler(request: web.Request) -> web.Response:
    """Handle POST /api/convert/{id}/cancel. Unknown ids succeed."""
    job_id = request.match_info["id"]
    await request.app[ORCHESTRATOR_KEY].cancel(job_id)
    return web.json_response({"id": job_id, "cancelled": True})


async def thumbnails_handler(request: web.Request) -> web.Response:
    """Handle POST /api/thumbnails with a list of thumbnail requests."""
    payload, error = await read_json(request)
    if error is not None:
        return error
    try:
        requests = parse_thumbnail_requests(payload)
    except InvalidConfigError as e:
        return api_error(str(e), code=INVALID_REQUEST)

    config = request.app[CONFIG_KEY]
    results = await generate_thumbnails_batch(
        requests,
        max_workers=config.conversion.thumbnail_workers,
        ffmpeg_path=request.app[FFMPEG_PATH_KEY],
        directory=request.app[THUMBNAIL_DIR_KEY],
    )
    return web.json_response([r.to_payload() for r in results])


async def delete_thumbnails_handler(request: web.Request) -> web.Response:
    """Handle DELETE /api/thumbnails with ``{"ids": [...]}``."""
    payload, error = await read_json(request)
    if error is not None:
        return error
    ids = _string_list(payload, "ids")
    if ids is None:
        return api_error("ids must be a list of strings", code=INVALID_REQUEST)

    failed = await delete_thumbnails(ids, directory=request.app[THUMBNAIL_DIR_KEY])
    return web.json_response({"failed": failed})


async def cleanup_thumbnails_handler(request: web.Request) -> web.Response:
    """Handle POST /api/thumbnails/cleanup."""
    removed = await cleanup_all_temp_thumbnails(request.app[THUMBNAIL_DIR_KEY])
    return web.json_response({"removed": removed})


async def files_info_handler(request: web.Request) -> web.Response:
    """Handle POST /api/files/info with ``{"paths": [...]}``."""
    payload, error = await read_json(request)
    if error is not None:
        return error
    paths = _string_list(payload, "paths")
    if paths is None:
        return api_error("paths must be a list of strings", code=INVALID_REQUEST)

    config = request.app[CONFIG_KEY]
    results = await get_files_info_batch(
        paths, max_workers=config.conversion.file_info_workers
    )
    return web.json_response([r.to_payload() for r in results])


async def file_exists_handler(request: web.Request) -> web.Response:
    """Handle GET /api/files/exists?path=..."""
    path = request.query.get("path")
    if not path:
        return api_error("path query parameter is required", code=INVALID_REQUEST)
    return web.json_response({"path": path, "exists": await check_file_exists(path)})


async def _on_shutdown(app: web.Application) -> None:
    """Stop conversions, remove partial outputs and temp thumbnails."""
    app[SHUTDOWN_KEY].set()
    app[BROADCASTER_KEY].close()

    await app[SUPERVISOR_KEY].kill_all()

    tasks: dict[str, asyncio.Task] = app[TASKS_KEY]
    pending = list(tasks.values())
    if pending:
        timeout = app[CONFIG_KEY].server.shutdown_timeout
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled %d conversion task(s)", len(still_running))

    await cleanup_all_temp_thumbnails(app[THUMBNAIL_DIR_KEY])
    logger.info("Conversion engine stopped")


def create_app(
    config: AetherConfig | None = None,
    *,
    ffmpeg_path: Path | None = None,
    thumbnail_dir: Path | None = None,
) -> web.Application:
    """Create the aiohttp application.

    Args:
        config: Effective configuration (defaults if None).
        ffmpeg_path: Explicit ffmpeg executable; looked up on first use
            when None.
        thumbnail_dir: Directory for temporary thumbnails (system temp
            directory when None).

    Returns:
        Configured aiohttp Application.
    """
    config = config or AetherConfig()
    ffmpeg_path = ffmpeg_path or config.tools.ffmpeg

    app = web.Application()

    supervisor = ProcessSupervisor()
    broadcaster = EventBroadcaster()

    app[CONFIG_KEY] = config
    app[SUPERVISOR_KEY] = supervisor
    app[BROADCASTER_KEY] = broadcaster
    app[ORCHESTRATOR_KEY] = ConversionOrchestrator(
        supervisor,
        broadcaster,
        config.conversion,
        ffmpeg_path=ffmpeg_path,
    )
    app[TASKS_KEY] = {}
    app[SHUTDOWN_KEY] = asyncio.Event()
    app[FFMPEG_PATH_KEY] = ffmpeg_path
    app[THUMBNAIL_DIR_KEY] = thumbnail_dir

    app.router.add_get("/health", health_handler)
    app.router.add_post("/api/convert", convert_handler)
    app.router.add_post("/api/convert/{id}/cancel", cancel_handler)
    app.router.add_post("/api/thumbnails", thumbnails_handler)
    app.router.add_delete("/api/thumbnails", delete_thumbnails_handler)
    app.router.add_post("/api/thumbnails/cleanup", cleanup_thumbnails_handler)
    app.router.add_post("/api/files/info", files_info_handler)
    app.router.add_get("/api/files/exists", file_exists_handler)
    app.router.add_get("/api/events", sse_events_handler)

    app.on_shutdown.append(_on_shutdown)

    return app
