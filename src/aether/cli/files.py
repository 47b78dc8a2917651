"""CLI commands for input inspection and thumbnails."""

from __future__ import annotations

import asyncio
import json
import sys
import uuid
from pathlib import Path

import click

from aether.cli.context import load_cli_config
from aether.cli.exit_codes import ExitCode
from aether.domain.formats import MediaType
from aether.domain.models import ThumbnailRequest, ThumbnailResult
from aether.errors import ToolNotFoundError
from aether.executor.files import get_files_info_batch
from aether.executor.thumbnail import (
    cleanup_all_temp_thumbnails,
    generate_thumbnails_batch,
)
from aether.tools.detection import require_tool


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


@click.command("info")
@click.argument("paths", nargs=-1, required=True)
@click.option("--json", "json_output", is_flag=True, help="Print JSON.")
@click.pass_context
def info_command(ctx: click.Context, paths: tuple[str, ...], json_output: bool) -> None:
    """Show size and media type of each of PATHS."""
    config = load_cli_config(ctx)
    results = asyncio.run(
        get_files_info_batch(
            list(paths), max_workers=config.conversion.file_info_workers
        )
    )

    if json_output:
        click.echo(json.dumps([r.to_payload() for r in results], indent=2))
    else:
        for result in results:
            if result.info is not None:
                click.echo(
                    f"{result.info.name}\t{result.info.media_type.value}\t"
                    f"{_format_size(result.info.size)}"
                )
            else:
                click.echo(f"{result.path}\terror: {result.error}", err=True)

    if any(r.info is None for r in results):
        sys.exit(ExitCode.OPERATION_FAILED)


@click.command("thumbnail")
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=None,
    help="Where to write thumbnails (default: system temp directory).",
)
@click.pass_context
def thumbnail_command(
    ctx: click.Context, paths: tuple[str, ...], directory: Path | None
) -> None:
    """Render a small JPEG preview for each of PATHS."""
    config = load_cli_config(ctx)

    requests: list[ThumbnailRequest] = []
    failures = 0
    for path in paths:
        media_type = MediaType.from_extension(Path(path).suffix)
        if media_type is None:
            click.echo(f"{path}\terror: unknown media type", err=True)
            failures += 1
            continue
        requests.append(
            ThumbnailRequest(
                id=uuid.uuid4().hex[:12], input_path=Path(path), media_type=media_type
            )
        )

    ffmpeg_path = config.tools.ffmpeg
    needs_ffmpeg = any(r.media_type is not MediaType.AUDIO for r in requests)
    if ffmpeg_path is None and needs_ffmpeg:
        try:
            ffmpeg_path = require_tool("ffmpeg")
        except ToolNotFoundError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(ExitCode.TOOL_NOT_AVAILABLE)

    results: list[ThumbnailResult] = asyncio.run(
        generate_thumbnails_batch(
            requests,
            max_workers=config.conversion.thumbnail_workers,
            ffmpeg_path=ffmpeg_path,
            directory=directory,
        )
    )

    inputs = {r.id: r.input_path for r in requests}
    for result in results:
        source = inputs[result.id]
        if not result.success:
            click.echo(f"{source}\terror: {result.error_message}", err=True)
            failures += 1
        elif result.thumbnail_path is None:
            click.echo(f"{source}\t(no preview for audio)")
        else:
            click.echo(f"{source}\t{result.thumbnail_path}")

    if failures:
        sys.exit(ExitCode.OPERATION_FAILED)


@click.command("cleanup-thumbnails")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=None,
    help="Directory to sweep (default: system temp directory).",
)
def cleanup_thumbnails_command(directory: Path | None) -> None:
    """Delete every temporary thumbnail."""
    removed = asyncio.run(cleanup_all_temp_thumbnails(directory))
    click.echo(f"Removed {removed} temporary thumbnail(s)")
