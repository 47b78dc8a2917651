"""Input file inspection."""

from __future__ import annotations

import asyncio
from pathlib import Path

from aether.domain.formats import MediaType
from aether.domain.models import FileInfo, FileInfoResult
from aether.errors import ConversionIOError, InputNotFoundError, UnsupportedFormatError

from .batch import BatchRunner

DEFAULT_FILE_INFO_WORKERS = 10


def _file_info(path_str: str) -> FileInfo:
    path = Path(path_str)
    if not path.exists():
        raise InputNotFoundError(path_str)

    try:
        size = path.stat().st_size
    except OSError as e:
        raise ConversionIOError(str(e)) from e

    extension = path.suffix.lstrip(".")
    media_type = MediaType.from_extension(extension)
    if media_type is None:
        raise UnsupportedFormatError(path_str, extension or "?", "unknown input type")

    return FileInfo(path=str(path), name=path.name, size=size, media_type=media_type)


async def get_file_info(path: str) -> FileInfo:
    """Size and media type of one input file.

    Raises:
        InputNotFoundError: The file does not exist.
        UnsupportedFormatError: The extension is not a known media type.
    """
    return await asyncio.to_thread(_file_info, path)


async def get_files_info_batch(
    paths: list[str], *, max_workers: int = DEFAULT_FILE_INFO_WORKERS
) -> list[FileInfoResult]:
    """Look up many files; each failure is reported on its own item."""

    async def worker(path: str) -> FileInfoResult:
        return FileInfoResult(path=path, info=await get_file_info(path))

    runner: BatchRunner[str, FileInfoResult] = BatchRunner(
        worker,
        max_workers=max_workers,
        on_error=lambda path, exc: FileInfoResult(path=path, error=str(exc)),
    )
    return await runner.run(paths)


async def check_file_exists(path: str) -> bool:
    try:
        return await asyncio.to_thread(Path(path).exists)
    except OSError:
        return False
