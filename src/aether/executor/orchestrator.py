"""Per-job conversion state machine.

A job moves Pending -> Processing -> one of Completed, Error, Cancelled
or Conflict. ``ConversionOrchestrator.convert`` drives one job from
request to terminal result:

1. check the input exists and the target format is known
2. resolve the output path (naming + conflict policy)
3. either copy the input verbatim (processing disabled) or synthesize
   the FFmpeg arguments, spawn FFmpeg and follow its diagnostic stream
4. classify the outcome and emit exactly one terminal event

Cancellation is out-of-band: ``cancel`` (or ProcessSupervisor.kill)
removes the job from the supervisor and kills the process. The job's own
coroutine notices once the stream ends: either its process entry or
its output claim is gone.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
import shutil
import time
from collections.abc import AsyncIterator
from pathlib import Path

from aether.config.models import ConversionSettings
from aether.domain.formats import parse_output_format
from aether.domain.models import (
    ConversionConfig,
    ConversionResult,
    ProcessStatus,
    ProgressEvent,
)
from aether.domain.requests import ConversionRequest
from aether.errors import (
    ConversionError,
    FileConflictError,
    InputNotFoundError,
    ProcessError,
    UnsupportedFormatError,
)
from aether.events import (
    CONVERSION_COMPLETE,
    CONVERSION_PROGRESS,
    EventSink,
    NullEventSink,
    safe_emit,
)
from aether.logging.context import job_context
from aether.paths.resolver import resolve_output_path
from aether.tools.detection import require_tool

from .command import build_args, describe_target
from .progress import DiagnosticTail, ProgressTracker, classify_failure
from .supervisor import ProcessSupervisor, remove_file

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by user"
CANCELLED_RESULT_MESSAGE = "Conversion cancelled"
PROCESSING_MESSAGE = "Processing..."
COPYING_MESSAGE = "Renaming/Copying..."

_READ_CHUNK = 4096
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


async def iter_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    """Yield decoded lines, treating ``\\r`` as a line break too.

    FFmpeg rewrites its inline status line with carriage returns, so a
    plain readline() would see one ever-growing line.
    """
    # Incremental so a multibyte character split across reads survives
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        buffer += decoder.decode(chunk)
        *lines, buffer = _LINE_BREAK.split(buffer)
        for line in lines:
            if line:
                yield line
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer


class ConversionOrchestrator:
    """Runs conversion jobs against a shared ProcessSupervisor.

    Usage:
        supervisor = ProcessSupervisor()
        orchestrator = ConversionOrchestrator(supervisor, sink)
        result = await orchestrator.convert(request)
        ...
        await orchestrator.cancel(job_id)
    """

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        sink: EventSink | None = None,
        settings: ConversionSettings | None = None,
        ffmpeg_path: Path | None = None,
    ) -> None:
        self.supervisor = supervisor
        self.sink: EventSink = sink if sink is not None else NullEventSink()
        self.settings = settings if settings is not None else ConversionSettings()
        self._ffmpeg_path = ffmpeg_path

    async def _ffmpeg(self) -> Path:
        if self._ffmpeg_path is None:
            self._ffmpeg_path = await asyncio.to_thread(require_tool, "ffmpeg")
        return self._ffmpeg_path

    # -------------------------------------------------------------------------
    # Event helpers
    # -------------------------------------------------------------------------

    def _progress(
        self,
        job_id: str,
        progress: int,
        status: ProcessStatus,
        message: str | None = None,
    ) -> None:
        event = ProgressEvent(
            id=job_id, progress=progress, status=status, message=message
        )
        safe_emit(self.sink, CONVERSION_PROGRESS, event.to_payload())

    def _complete(self, result: ConversionResult) -> ConversionResult:
        safe_emit(self.sink, CONVERSION_COMPLETE, result.to_payload())
        if result.success:
            logger.info("Conversion complete: %s", result.output_path)
        else:
            logger.warning("Conversion failed: %s", result.error_message)
        return result

    def _fail(self, job_id: str, error: ConversionError | str) -> ConversionResult:
        return self._complete(ConversionResult.failed(job_id, str(error)))

    def _cancelled(self, job_id: str) -> ConversionResult:
        logger.info("Conversion cancelled")
        self._progress(job_id, 0, ProcessStatus.CANCELLED, CANCELLED_MESSAGE)
        return ConversionResult.failed(
            job_id, CANCELLED_RESULT_MESSAGE, status=ProcessStatus.CANCELLED
        )

    def _conflict(self, job_id: str, error: FileConflictError) -> ConversionResult:
        logger.warning("Output conflict: %s", error)
        self._progress(job_id, 0, ProcessStatus.CONFLICT, str(error))
        return ConversionResult.failed(
            job_id, str(error), status=ProcessStatus.CONFLICT
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def cancel(self, job_id: str) -> None:
        """Cancel a job by id. Unknown ids are a no-op."""
        await self.supervisor.kill(job_id)

    async def convert(self, request: ConversionRequest) -> ConversionResult:
        """Run one conversion job to its terminal result.

        Never raises for job-level failures; the outcome is returned and
        also emitted as exactly one terminal event.
        """
        with job_context(request.id):
            try:
                return await self._convert(request)
            except asyncio.CancelledError:
                # The surrounding task was cancelled (shutdown, Ctrl-C)
                await self.supervisor.kill(request.id)
                raise

    async def _convert(self, request: ConversionRequest) -> ConversionResult:
        job_id = request.id
        input_path = Path(request.input_path)

        if not await asyncio.to_thread(input_path.exists):
            return self._fail(job_id, InputNotFoundError(request.input_path))

        output_format = parse_output_format(request.output_format)
        if output_format is None:
            return self._fail(
                job_id,
                UnsupportedFormatError(
                    request.input_path, request.output_format, "unknown target format"
                ),
            )

        naming = request.naming_config.to_config() if request.naming_config else None
        output_directory = (
            Path(request.output_directory) if request.output_directory else None
        )
        try:
            output_path = await asyncio.to_thread(
                resolve_output_path,
                input_path,
                output_format,
                output_directory=output_directory,
                naming=naming,
                conflict_mode=request.conflict_mode,
                processing_enabled=request.processing_enabled,
            )
        except FileConflictError as e:
            return self._conflict(job_id, e)
        except ConversionError as e:
            return self._fail(job_id, e)

        if not request.processing_enabled:
            return await self._copy(job_id, input_path, output_path)

        try:
            config = ConversionConfig(
                input_path=input_path,
                output_path=output_path,
                output_format=output_format,
                quality_percent=request.quality_percent,
                resize=(
                    request.resize_config.to_spec()
                    if request.resize_config
                    else None
                ),
                is_muted=request.is_muted,
                strip_metadata=request.strip_metadata,
                conflict_mode=request.conflict_mode,
                max_bitrate_kbps=request.max_bitrate,
            )
            args = build_args(config)
            ffmpeg = await self._ffmpeg()
        except ConversionError as e:
            return self._fail(job_id, e)

        logger.info(
            "Converting %s -> %s (%s)",
            input_path,
            output_path,
            describe_target(output_format),
        )
        return await self._transcode(job_id, ffmpeg, args, output_path)

    # -------------------------------------------------------------------------
    # Direct copy
    # -------------------------------------------------------------------------

    async def _copy(
        self, job_id: str, input_path: Path, output_path: Path
    ) -> ConversionResult:
        await self.supervisor.register_output(job_id, output_path)
        self._progress(job_id, 0, ProcessStatus.PROCESSING, COPYING_MESSAGE)
        logger.info("Copying %s -> %s", input_path, output_path)

        try:
            await asyncio.to_thread(shutil.copy, input_path, output_path)
        except OSError as e:
            await self.supervisor.remove_output(job_id)
            return self._fail(job_id, f"Failed to copy file: {e}")

        if await self.supervisor.remove_output(job_id) is None:
            # Cancelled while copying; the copy may have landed after the
            # canceller's cleanup
            await remove_file(output_path)
            return self._cancelled(job_id)

        return self._complete(ConversionResult.completed(job_id, output_path))

    # -------------------------------------------------------------------------
    # Transcode
    # -------------------------------------------------------------------------

    async def _transcode(
        self,
        job_id: str,
        ffmpeg: Path,
        args: list[str],
        output_path: Path,
    ) -> ConversionResult:
        await self.supervisor.register_output(job_id, output_path)

        logger.debug("Running: %s %s", ffmpeg, " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                str(ffmpeg),
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            await self.supervisor.remove_output(job_id)
            return self._fail(job_id, f"Failed to spawn ffmpeg: {e}")

        await self.supervisor.register(job_id, process)

        if not await self.supervisor.has_output(job_id):
            # Cancelled between path resolution and registration
            await self.supervisor.kill(job_id)
            await process.wait()
            await remove_file(output_path)
            return self._cancelled(job_id)

        self._progress(job_id, 0, ProcessStatus.PROCESSING, PROCESSING_MESSAGE)

        tail = DiagnosticTail(self.settings.diagnostic_tail_lines)
        tracker = ProgressTracker()
        interval = self.settings.progress_interval
        last_emit = time.monotonic()

        assert process.stderr is not None
        async for line in iter_lines(process.stderr):
            tail.append(line)
            progress = tracker.feed(line)
            if progress is None:
                continue
            now = time.monotonic()
            if now - last_emit >= interval:
                self._progress(job_id, progress, ProcessStatus.PROCESSING)
                last_emit = now

        if await self.supervisor.remove(job_id) is None:
            # The killer owns process termination and output cleanup
            await process.wait()
            return self._cancelled(job_id)

        exit_code = await process.wait()
        claimed = await self.supervisor.remove_output(job_id)

        if claimed is None:
            # Cancelled after the stream closed; the canceller already swept
            # the output but FFmpeg may have finished writing it since
            await remove_file(output_path)
            return self._cancelled(job_id)

        if exit_code == 0:
            return self._complete(ConversionResult.completed(job_id, output_path))

        await remove_file(claimed)

        stderr_tail = tail.text()
        reason, message = classify_failure(stderr_tail, exit_code)
        error = ProcessError(
            "ffmpeg", exit_code, stderr_tail, reason=reason, message=message
        )
        logger.debug("ffmpeg failed (%s): %s", reason.value, stderr_tail)
        return self._fail(job_id, error)
