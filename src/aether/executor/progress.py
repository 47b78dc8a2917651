"""FFmpeg diagnostic-stream parsing.

FFmpeg writes both its human-readable status and, with ``-progress
pipe:2``, machine-readable ``key=value`` blocks to stderr. This module
extracts the total duration and the current position from those lines,
keeps a bounded tail of recent lines for diagnosis, and classifies
non-zero exits.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field

from aether.errors import FailureReason

DEFAULT_TAIL_LINES = 20

# Duration: 00:01:40.00, start: 0.000000, bitrate: 1205 kb/s
DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d+):(\d+(?:\.\d+)?),")

# Inline status form: ... time=00:00:05.00 bitrate=...
INLINE_TIME_PATTERN = re.compile(r"(?:^|\s)time=(\S+)(?:\s|$)")

# Substrings scanned in the diagnostic tail, first match wins
_FAILURE_SIGNATURES: tuple[tuple[str, FailureReason, str], ...] = (
    (
        "Output file does not contain any stream",
        FailureReason.NO_AUDIO_STREAM,
        "Conversion failed: Input file has no suitable audio stream.",
    ),
    (
        "Permission denied",
        FailureReason.PERMISSION_DENIED,
        "Conversion failed: Permission denied writing to output.",
    ),
    (
        "No space left on device",
        FailureReason.DISK_FULL,
        "Conversion failed: Disk full.",
    ),
)


def parse_time_to_seconds(value: str) -> float | None:
    """Parse ``HH:MM:SS.ms`` into seconds.

    Args:
        value: Time string as printed by FFmpeg.

    Returns:
        Seconds, or None for ``N/A`` and malformed values.
    """
    parts = value.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = float(parts[2])
    except ValueError:
        return None
    if hours < 0 or minutes < 0 or seconds < 0:
        return None
    return hours * 3600 + minutes * 60 + seconds


def parse_duration(line: str) -> float | None:
    """Extract the total duration from a ``Duration:`` announcement."""
    match = DURATION_PATTERN.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_position(line: str) -> float | None:
    """Extract the current output position in seconds.

    Three encodings are understood:

    - ``out_time_us=<microseconds>`` (machine form)
    - ``out_time=<HH:MM:SS.ms>`` (machine form)
    - ``... time=<HH:MM:SS.ms> ...`` (inline human form)

    Returns:
        Position in seconds, or None if the line carries none.
    """
    stripped = line.strip()

    if stripped.startswith("out_time_us="):
        value = stripped.partition("=")[2].strip()
        try:
            return int(value) / 1_000_000
        except ValueError:
            return None

    if stripped.startswith("out_time="):
        return parse_time_to_seconds(stripped.partition("=")[2])

    match = INLINE_TIME_PATTERN.search(line)
    if match:
        return parse_time_to_seconds(match.group(1))
    return None


def compute_progress(position: float, duration: float | None) -> int | None:
    """Percentage of ``position`` over ``duration``, clamped to [0, 100]."""
    if duration is None or duration <= 0:
        return None
    percent = int(100 * position / duration)
    return max(0, min(100, percent))


def parse_progress(line: str, duration: float | None) -> int | None:
    """Parse one diagnostic line into a progress percentage.

    Args:
        line: A line from the diagnostic stream.
        duration: Total duration in seconds, if known.

    Returns:
        Progress (0-100), or None if the line has no position or the
        duration is unknown.
    """
    position = parse_position(line)
    if position is None:
        return None
    return compute_progress(position, duration)


@dataclass
class DiagnosticTail:
    """Bounded buffer of the most recent diagnostic lines."""

    max_lines: int = DEFAULT_TAIL_LINES
    _lines: deque[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_lines < 1:
            raise ValueError(f"max_lines must be at least 1, got {self.max_lines}")
        self._lines = deque(maxlen=self.max_lines)

    def append(self, line: str) -> None:
        self._lines.append(line.rstrip("\r\n"))

    def __len__(self) -> int:
        return len(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines)


@dataclass
class ProgressTracker:
    """Per-job progress state fed one diagnostic line at a time.

    The first duration announcement wins. Reported progress never goes
    backwards.
    """

    duration: float | None = None
    progress: int = 0

    def feed(self, line: str) -> int | None:
        """Consume a line; return the new progress if it advanced."""
        if self.duration is None:
            duration = parse_duration(line)
            if duration is not None:
                self.duration = duration
                return None

        percent = parse_progress(line, self.duration)
        if percent is None or percent <= self.progress:
            return None
        self.progress = percent
        return percent


def classify_failure(tail: str, exit_code: int | None) -> tuple[FailureReason, str]:
    """Map a non-zero exit onto a failure reason and user-facing message.

    Args:
        tail: Retained diagnostic tail.
        exit_code: Process exit code (None if killed by a signal).

    Returns:
        Tuple of (reason, message).
    """
    for needle, reason, message in _FAILURE_SIGNATURES:
        if needle in tail:
            return reason, message
    return FailureReason.GENERIC, f"FFmpeg exited with code: {exit_code}\n{tail}"
