"""Thumbnail generation for the file list.

Thumbnails are small JPEGs written to the system temp directory as
``aether_thumb_<id>.jpg``. The fixed prefix and suffix let
cleanup_all_temp_thumbnails() find them without any registry.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path

from aether.domain.formats import MediaType
from aether.domain.models import ThumbnailRequest, ThumbnailResult
from aether.errors import ThumbnailError
from aether.tools.detection import require_tool

from .batch import BatchRunner
from .command import build_thumbnail_args

logger = logging.getLogger(__name__)

THUMBNAIL_PREFIX = "aether_thumb_"
THUMBNAIL_SUFFIX = ".jpg"
DEFAULT_THUMBNAIL_WORKERS = 3

FFMPEG_FAILED_MESSAGE = "FFmpeg failed"


def thumbnail_dir() -> Path:
    return Path(tempfile.gettempdir())


def thumbnail_path(job_id: str, directory: Path | None = None) -> Path:
    """Well-known location of the thumbnail for ``job_id``."""
    base = directory if directory is not None else thumbnail_dir()
    return base / f"{THUMBNAIL_PREFIX}{job_id}{THUMBNAIL_SUFFIX}"


async def generate_thumbnail(
    request: ThumbnailRequest,
    *,
    ffmpeg_path: Path | None = None,
    directory: Path | None = None,
) -> ThumbnailResult:
    """Render a thumbnail for one file.

    Audio files have no picture: the result is a success without a path
    and no subprocess is run.

    Raises:
        ThumbnailError: If FFmpeg cannot be started.
        ToolNotFoundError: If FFmpeg cannot be located.
    """
    if request.media_type is MediaType.AUDIO:
        return ThumbnailResult(id=request.id, success=True)

    output = thumbnail_path(request.id, directory)
    args = build_thumbnail_args(
        request.input_path, output, is_video=request.media_type is MediaType.VIDEO
    )
    ffmpeg = ffmpeg_path or await asyncio.to_thread(require_tool, "ffmpeg")

    try:
        process = await asyncio.create_subprocess_exec(
            str(ffmpeg),
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise ThumbnailError(f"Failed to generate thumbnail: {e}") from e

    stdout, _ = await process.communicate()

    if process.returncode == 0 and await asyncio.to_thread(output.exists):
        return ThumbnailResult(id=request.id, success=True, thumbnail_path=output)

    logger.debug(
        "Thumbnail for %s failed (exit %s): %s",
        request.input_path,
        process.returncode,
        stdout.decode("utf-8", errors="replace")[-500:],
    )
    return ThumbnailResult(
        id=request.id, success=False, error_message=FFMPEG_FAILED_MESSAGE
    )


async def generate_thumbnails_batch(
    requests: list[ThumbnailRequest],
    *,
    max_workers: int = DEFAULT_THUMBNAIL_WORKERS,
    ffmpeg_path: Path | None = None,
    directory: Path | None = None,
) -> list[ThumbnailResult]:
    """Render thumbnails with at most ``max_workers`` FFmpeg processes.

    A failure for one request becomes that request's error_message.
    """

    async def worker(request: ThumbnailRequest) -> ThumbnailResult:
        return await generate_thumbnail(
            request, ffmpeg_path=ffmpeg_path, directory=directory
        )

    runner: BatchRunner[ThumbnailRequest, ThumbnailResult] = BatchRunner(
        worker,
        max_workers=max_workers,
        on_error=lambda request, exc: ThumbnailResult(
            id=request.id, success=False, error_message=str(exc)
        ),
    )
    return await runner.run(requests)


def _delete_one(path: Path) -> None:
    if path.exists():
        path.unlink()


async def delete_thumbnails(
    job_ids: list[str], *, directory: Path | None = None
) -> list[str]:
    """Delete thumbnails by id.

    Returns:
        Ids whose thumbnail could not be deleted. Missing files are not
        failures.
    """
    failed: list[str] = []
    for job_id in job_ids:
        try:
            await asyncio.to_thread(_delete_one, thumbnail_path(job_id, directory))
        except OSError as e:
            logger.warning("Failed to delete thumbnail %s: %s", job_id, e)
            failed.append(job_id)
    return failed


def _sweep(directory: Path) -> int:
    removed = 0
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.warning("Cannot list %s: %s", directory, e)
        return 0
    for entry in entries:
        name = entry.name
        if not (name.startswith(THUMBNAIL_PREFIX) and name.endswith(THUMBNAIL_SUFFIX)):
            continue
        try:
            entry.unlink()
            removed += 1
        except OSError as e:
            logger.debug("Failed to delete %s: %s", entry, e)
    return removed


async def cleanup_all_temp_thumbnails(directory: Path | None = None) -> int:
    """Delete every thumbnail in the temp directory, best-effort.

    Returns:
        Number of files removed.
    """
    removed = await asyncio.to_thread(_sweep, directory or thumbnail_dir())
    if removed:
        logger.info("Removed %d temporary thumbnail(s)", removed)
    return removed
