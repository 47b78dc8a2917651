"""FFprobe-based bitrate and duration lookup.

Not used by the conversion path; kept available for bitrate-aware
features.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from aether.domain.models import ProbeResult
from aether.tools.detection import require_tool

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_probe_output(data: dict[str, Any]) -> ProbeResult:
    """Extract bitrates and duration from ffprobe's JSON document.

    The container bitrate stands in for the video bitrate until a video
    stream reports its own. The last stream of each type wins.
    """
    fmt = data.get("format") or {}
    duration = _as_float(fmt.get("duration"))
    video_bitrate = _as_int(fmt.get("bit_rate"))
    audio_bitrate: int | None = None

    for stream in data.get("streams") or []:
        bitrate = _as_int(stream.get("bit_rate"))
        if bitrate is None:
            continue
        codec_type = stream.get("codec_type")
        if codec_type == "video":
            video_bitrate = bitrate
        elif codec_type == "audio":
            audio_bitrate = bitrate

    return ProbeResult(
        video_bitrate=video_bitrate,
        audio_bitrate=audio_bitrate,
        duration=duration,
    )


async def probe(path: Path, ffprobe_path: Path | None = None) -> ProbeResult | None:
    """Probe a media file.

    Returns:
        ProbeResult, or None if ffprobe fails or prints invalid JSON.

    Raises:
        ToolNotFoundError: If ffprobe cannot be located.
    """
    ffprobe = ffprobe_path or await asyncio.to_thread(require_tool, "ffprobe")
    process = await asyncio.create_subprocess_exec(
        str(ffprobe),
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(path),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    stdout, _ = await process.communicate()
    if process.returncode != 0:
        logger.debug("ffprobe exited with %s for %s", process.returncode, path)
        return None

    try:
        data = json.loads(stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        logger.debug("Invalid ffprobe output for %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        return None
    return parse_probe_output(data)
