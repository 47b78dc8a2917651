"""Output filename stem generation.

A NamingConfig is an ordered list of blocks; each block contributes one
component and the components are joined with ``_``.
"""

from __future__ import annotations

import re
import secrets
import string
import threading
from collections.abc import Callable
from datetime import datetime

from aether.domain.models import (
    DateBlock,
    NamingConfig,
    OriginalBlock,
    PrefixBlock,
    RandomBlock,
)

RANDOM_CHARSET = string.ascii_lowercase + string.digits

EMPTY_STEM_FALLBACK = "unnamed"
SANITIZED_FALLBACK = "file"

_DISALLOWED_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_REPEATED_UNDERSCORES = re.compile(r"_+")


class TimestampSequencer:
    """Produces millisecond timestamps that are unique within the process.

    When the clock yields the same millisecond twice in a row, the repeat
    gets a ``_<n>`` suffix (``_2``, ``_3``, ...).
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._last = ""
        self._count = 0

    def next(self) -> str:
        now = self._clock()
        # %f is microseconds; keep the first three digits for milliseconds
        stamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
        with self._lock:
            if stamp == self._last:
                self._count += 1
                return f"{stamp}_{self._count}"
            self._last = stamp
            self._count = 1
            return stamp


_default_sequencer = TimestampSequencer()


def random_token(length: int) -> str:
    """Lowercase alphanumeric token of exactly ``length`` characters."""
    return "".join(secrets.choice(RANDOM_CHARSET) for _ in range(length))


def sanitize_filename(name: str) -> str:
    """Make a filename stem safe and predictable.

    Lowercases, turns spaces into underscores, strips everything outside
    ``[a-z0-9_-]``, collapses runs of underscores and trims them from both
    ends. An empty result becomes ``file``.
    """
    lowered = name.lower().replace(" ", "_")
    cleaned = _DISALLOWED_CHARS.sub("", lowered)
    cleaned = _REPEATED_UNDERSCORES.sub("_", cleaned).strip("_")
    return cleaned or SANITIZED_FALLBACK


def apply_naming_pipeline(
    original_stem: str,
    config: NamingConfig,
    sequencer: TimestampSequencer | None = None,
) -> str:
    """Build an output stem from the naming blocks.

    Args:
        original_stem: Input filename without extension.
        config: Ordered blocks plus the sanitize flag.
        sequencer: Timestamp source for date blocks (process-wide default).

    Returns:
        The stem; never empty.
    """
    sequencer = sequencer or _default_sequencer
    parts: list[str] = []

    for block in config.blocks:
        match block:
            case OriginalBlock():
                parts.append(original_stem)
            case PrefixBlock(value=value):
                if value:
                    parts.append(value)
            case RandomBlock():
                parts.append(random_token(block.clamped_length))
            case DateBlock():
                parts.append(sequencer.next())

    result = "_".join(parts)
    if not result:
        return EMPTY_STEM_FALLBACK
    if config.sanitize:
        result = sanitize_filename(result)
    return result
