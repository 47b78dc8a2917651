"""CLI convert command.

Runs one conversion job in the foreground, printing a progress line to
stderr. Ctrl+C (or SIGTERM) cancels the job: FFmpeg is killed and the
partial output file is removed before the command exits.
"""

from __future__ import annotations

import asyncio
import logging
import re
import signal
import sys
import uuid
from pathlib import Path
from typing import Any

import click

from aether.cli.context import load_cli_config
from aether.cli.exit_codes import ExitCode, exit_code_for_status
from aether.config.models import AetherConfig
from aether.domain.models import (
    MIN_RESIZE_DIMENSION,
    ConversionResult,
    ProcessStatus,
)
from aether.domain.requests import ConversionRequest, parse_conversion_request
from aether.errors import InvalidConfigError, ToolNotFoundError
from aether.events import CONVERSION_COMPLETE, CONVERSION_PROGRESS
from aether.executor.orchestrator import ConversionOrchestrator
from aether.executor.supervisor import ProcessSupervisor
from aether.server.signals import remove_signal_handlers, setup_signal_handlers
from aether.tools.detection import require_tool

logger = logging.getLogger(__name__)

_RESIZE_PATTERN = re.compile(r"^(\d+)[xX](\d+)$")
_LINE_WIDTH = 40


class StderrProgressSink:
    """Renders conversion events as a single rewritten stderr line."""

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet
        self._open_line = False

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        if event == CONVERSION_PROGRESS:
            status = payload.get("status")
            if status == ProcessStatus.PROCESSING.value:
                if not self.quiet:
                    message = payload.get("message") or ""
                    line = f"{payload.get('progress', 0):3d}% {message}"
                    click.echo("\r" + line.ljust(_LINE_WIDTH), err=True, nl=False)
                    self._open_line = True
                return
            self._finish_line()
            click.echo(f"{status}: {payload.get('message') or ''}", err=True)
        elif event == CONVERSION_COMPLETE:
            self._finish_line()

    def _finish_line(self) -> None:
        if self._open_line:
            click.echo("", err=True)
            self._open_line = False


def _parse_resize(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> tuple[int, int] | None:
    if value is None:
        return None
    match = _RESIZE_PATTERN.match(value.strip())
    if not match:
        raise click.BadParameter("expected WIDTHxHEIGHT, e.g. 1280x720")
    width, height = int(match.group(1)), int(match.group(2))
    if min(width, height) < MIN_RESIZE_DIMENSION:
        raise click.BadParameter(
            f"width and height must be at least {MIN_RESIZE_DIMENSION}"
        )
    return width, height


def _parse_name_blocks(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[dict[str, Any]]:
    """Parse ``--name-block`` values: original, date, prefix:TEXT, random[:N]."""
    blocks: list[dict[str, Any]] = []
    for value in values:
        kind, _, arg = value.partition(":")
        kind = kind.strip().casefold()
        if kind in ("original", "date"):
            blocks.append({"type": kind})
        elif kind == "prefix":
            blocks.append({"type": "prefix", "value": arg})
        elif kind == "random":
            if not arg:
                blocks.append({"type": "random"})
                continue
            try:
                blocks.append({"type": "random", "length": int(arg)})
            except ValueError:
                raise click.BadParameter(
                    f"random length must be an integer, got {arg!r}"
                ) from None
        else:
            raise click.BadParameter(
                f"unknown block {value!r} (use original, date, prefix:TEXT, random:N)"
            )
    return blocks


def _build_payload(
    input_path: Path,
    *,
    output_format: str,
    quality: int,
    resize: tuple[int, int] | None,
    resize_mode: str,
    background: str,
    mute: bool,
    strip_metadata: bool,
    output_dir: Path | None,
    conflict: str,
    processing: bool,
    max_bitrate: int | None,
    name_blocks: list[dict[str, Any]],
    sanitize: bool,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": uuid.uuid4().hex[:12],
        "input_path": str(input_path),
        "output_format": output_format,
        "quality_percent": quality,
        "strip_metadata": strip_metadata,
        "is_muted": mute,
        "conflict_mode": conflict,
        "processing_enabled": processing,
        "max_bitrate": max_bitrate,
    }
    if resize is not None:
        payload["resize_config"] = {
            "width": resize[0],
            "height": resize[1],
            "mode": resize_mode,
            "background_color": background,
        }
    if name_blocks or sanitize:
        payload["naming_config"] = {
            "blocks": name_blocks or [{"type": "original"}],
            "sanitize_enabled": sanitize,
        }
    if output_dir is not None:
        payload["output_directory"] = str(output_dir)
    return payload


async def run_conversion(
    request: ConversionRequest,
    config: AetherConfig,
    sink: StderrProgressSink,
) -> ConversionResult:
    """Run one job, cancelling it on SIGINT/SIGTERM."""
    supervisor = ProcessSupervisor()
    orchestrator = ConversionOrchestrator(
        supervisor, sink, config.conversion, ffmpeg_path=config.tools.ffmpeg
    )
    loop = asyncio.get_running_loop()
    cancellations: set[asyncio.Task] = set()

    def handle_cancel_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, cancelling conversion", sig.name)
        task = loop.create_task(orchestrator.cancel(request.id))
        cancellations.add(task)
        task.add_done_callback(cancellations.discard)

    setup_signal_handlers(loop, handle_cancel_signal)
    try:
        return await orchestrator.convert(request)
    finally:
        remove_signal_handlers(loop)
        if cancellations:
            await asyncio.gather(*cancellations, return_exceptions=True)


@click.command("convert")
@click.argument("input_path", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "-f",
    "output_format",
    required=True,
    help="Target format (mp4, webm, mp3, png, ...).",
)
@click.option(
    "--quality",
    "-q",
    type=click.IntRange(0, 100),
    default=None,
    help="Quality percent 0-100 (default: from config, 80).",
)
@click.option(
    "--resize",
    callback=_parse_resize,
    default=None,
    help="Target box as WIDTHxHEIGHT.",
)
@click.option(
    "--resize-mode",
    type=click.Choice(["fill", "cover", "contain"], case_sensitive=False),
    default="contain",
    show_default=True,
    help="How the source is fitted into the --resize box.",
)
@click.option(
    "--background",
    type=click.Choice(["transparent", "black", "white"], case_sensitive=False),
    default="black",
    show_default=True,
    help="Padding color for --resize-mode contain.",
)
@click.option("--mute", is_flag=True, help="Drop all audio streams.")
@click.option("--strip-metadata", is_flag=True, help="Drop metadata and chapters.")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for the output (default: next to the input).",
)
@click.option(
    "--conflict",
    type=click.Choice(["keep_both", "overwrite", "reject"], case_sensitive=False),
    default=None,
    help="What to do when the output exists (default: from config, keep_both).",
)
@click.option(
    "--no-processing",
    is_flag=True,
    help="Copy the input verbatim under the new name instead of transcoding.",
)
@click.option(
    "--max-bitrate",
    type=click.IntRange(min=1),
    default=None,
    help="Video bitrate ceiling in kbps.",
)
@click.option(
    "--name-block",
    "name_blocks",
    multiple=True,
    callback=_parse_name_blocks,
    help="Output name block, repeatable: original, date, prefix:TEXT, random:N.",
)
@click.option("--sanitize", is_flag=True, help="Sanitize the generated file name.")
@click.option("--quiet", is_flag=True, help="Do not print progress.")
@click.pass_context
def convert_command(
    ctx: click.Context,
    input_path: Path,
    output_format: str,
    quality: int | None,
    resize: tuple[int, int] | None,
    resize_mode: str,
    background: str,
    mute: bool,
    strip_metadata: bool,
    output_dir: Path | None,
    conflict: str | None,
    no_processing: bool,
    max_bitrate: int | None,
    name_blocks: list[dict[str, Any]],
    sanitize: bool,
    quiet: bool,
) -> None:
    """Convert INPUT_PATH to another format.

    \b
    Examples:
        aether convert clip.mov -f mp4
        aether convert clip.mov -f webm -q 60 --resize 1280x720 --mute
        aether convert photo.png -f jpg --name-block date --name-block random:6
        aether convert song.flac -f mp3 -o ~/Music --conflict overwrite
    """
    config = load_cli_config(ctx)

    if not input_path.exists():
        click.echo(f"Error: File not found: {input_path}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)

    payload = _build_payload(
        input_path,
        output_format=output_format,
        quality=quality if quality is not None else config.conversion.default_quality,
        resize=resize,
        resize_mode=resize_mode.casefold(),
        background=background.casefold(),
        mute=mute,
        strip_metadata=strip_metadata,
        output_dir=output_dir,
        conflict=conflict or config.conversion.default_conflict_mode,
        processing=not no_processing,
        max_bitrate=max_bitrate,
        name_blocks=name_blocks,
        sanitize=sanitize,
    )
    try:
        request = parse_conversion_request(payload)
    except InvalidConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.INVALID_ARGUMENTS)

    if request.processing_enabled and config.tools.ffmpeg is None:
        try:
            require_tool("ffmpeg")
        except ToolNotFoundError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(ExitCode.TOOL_NOT_AVAILABLE)

    result = asyncio.run(run_conversion(request, config, StderrProgressSink(quiet)))

    if result.success:
        click.echo(str(result.output_path))
    elif result.status is ProcessStatus.ERROR:
        click.echo(f"Error: {result.error_message}", err=True)
    sys.exit(exit_code_for_status(result.status))
