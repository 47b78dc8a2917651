"""Domain models for conversion jobs.

These are the immutable values that flow through the orchestration engine:
resize and naming specifications, the per-job ConversionConfig, and the
transient/terminal values reported to the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from aether.domain.formats import MediaType, OutputFormat
from aether.errors import InvalidConfigError

# Conflict policies understood by the output path resolver. Any other value
# rejects the job when the output path already exists.
CONFLICT_OVERWRITE = "overwrite"
CONFLICT_KEEP_BOTH = "keep_both"
CONFLICT_REJECT = "reject"


class ResizeMode(Enum):
    """How the source is fitted into the target box."""

    FILL = "fill"  # Exact box, aspect ratio ignored
    COVER = "cover"  # Scale up to cover the box, then center-crop
    CONTAIN = "contain"  # Scale down to fit the box, then pad


class BackgroundColor(Enum):
    """Padding color for ResizeMode.CONTAIN."""

    TRANSPARENT = "transparent"
    BLACK = "black"
    WHITE = "white"


# Anything smaller rounds down to 0, which FFmpeg reads as "keep source size"
MIN_RESIZE_DIMENSION = 2


@dataclass(frozen=True)
class ResizeSpec:
    """Target box for a resize operation."""

    width: int
    height: int
    mode: ResizeMode = ResizeMode.CONTAIN
    background_color: BackgroundColor = BackgroundColor.BLACK

    def __post_init__(self) -> None:
        if min(self.width, self.height) < MIN_RESIZE_DIMENSION:
            raise InvalidConfigError(
                f"resize dimensions must be at least {MIN_RESIZE_DIMENSION}, "
                f"got {self.width}x{self.height}"
            )

    @property
    def even_width(self) -> int:
        """Width rounded down to an even number (chroma subsampling)."""
        return (self.width // 2) * 2

    @property
    def even_height(self) -> int:
        """Height rounded down to an even number (chroma subsampling)."""
        return (self.height // 2) * 2


# =============================================================================
# Naming blocks
# =============================================================================

RANDOM_LENGTH_MIN = 4
RANDOM_LENGTH_MAX = 32


@dataclass(frozen=True)
class OriginalBlock:
    """Inserts the input file's stem."""


@dataclass(frozen=True)
class PrefixBlock:
    """Inserts literal text; skipped when empty."""

    value: str


@dataclass(frozen=True)
class RandomBlock:
    """Inserts a random lowercase alphanumeric token."""

    length: int = 8

    @property
    def clamped_length(self) -> int:
        return max(RANDOM_LENGTH_MIN, min(RANDOM_LENGTH_MAX, self.length))


@dataclass(frozen=True)
class DateBlock:
    """Inserts a process-unique timestamp."""


NamingBlock = OriginalBlock | PrefixBlock | RandomBlock | DateBlock


@dataclass(frozen=True)
class NamingConfig:
    """Ordered naming blocks plus the sanitize flag."""

    blocks: tuple[NamingBlock, ...] = (OriginalBlock(),)
    sanitize: bool = False


# =============================================================================
# Per-job configuration
# =============================================================================


@dataclass(frozen=True)
class ConversionConfig:
    """Everything the argument synthesizer needs for one job.

    The output path has already been resolved (naming and conflict policy
    applied) by the time this value is built.
    """

    input_path: Path
    output_path: Path
    output_format: OutputFormat
    quality_percent: int = 80
    resize: ResizeSpec | None = None
    is_muted: bool = False
    strip_metadata: bool = False
    conflict_mode: str = CONFLICT_KEEP_BOTH
    max_bitrate_kbps: int | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.quality_percent <= 100:
            raise InvalidConfigError(
                f"quality_percent must be between 0 and 100, "
                f"got {self.quality_percent}"
            )
        if self.max_bitrate_kbps is not None and self.max_bitrate_kbps <= 0:
            raise InvalidConfigError(
                f"max_bitrate must be positive, got {self.max_bitrate_kbps}"
            )
        suffix = self.output_path.suffix.lstrip(".").casefold()
        if suffix != self.output_format.extension:
            raise InvalidConfigError(
                f"output path {self.output_path} does not match target "
                f"format {self.output_format.extension}"
            )

    @property
    def overwrite(self) -> bool:
        """True when the transcoder may overwrite the output path."""
        return self.conflict_mode == CONFLICT_OVERWRITE


# =============================================================================
# Reported values
# =============================================================================


class ProcessStatus(Enum):
    """Lifecycle state of a conversion job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"
    CONFLICT = "conflict"

    @property
    def is_terminal(self) -> bool:
        return self not in (ProcessStatus.PENDING, ProcessStatus.PROCESSING)


@dataclass(frozen=True)
class ProgressEvent:
    """Transient progress notification for one job."""

    id: str
    progress: int
    status: ProcessStatus
    message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "progress": self.progress,
            "status": self.status.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class ConversionResult:
    """Terminal outcome of one job, emitted exactly once."""

    id: str
    success: bool
    output_path: Path | None = None
    error_message: str | None = None
    status: ProcessStatus = ProcessStatus.COMPLETED

    @classmethod
    def completed(cls, job_id: str, output_path: Path) -> ConversionResult:
        return cls(id=job_id, success=True, output_path=output_path)

    @classmethod
    def failed(
        cls,
        job_id: str,
        message: str,
        status: ProcessStatus = ProcessStatus.ERROR,
    ) -> ConversionResult:
        return cls(id=job_id, success=False, error_message=message, status=status)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "success": self.success,
            "outputPath": str(self.output_path) if self.output_path else None,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class ThumbnailRequest:
    """Request to render a small preview image for one input file."""

    id: str
    input_path: Path
    media_type: MediaType


@dataclass(frozen=True)
class ThumbnailResult:
    """Outcome of one thumbnail job."""

    id: str
    success: bool
    thumbnail_path: Path | None = None
    error_message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thumbnailPath": str(self.thumbnail_path) if self.thumbnail_path else None,
            "success": self.success,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class FileInfo:
    """Basic facts about an input file."""

    path: str
    name: str
    size: int
    media_type: MediaType

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "mediaType": self.media_type.value,
        }


@dataclass(frozen=True)
class FileInfoResult:
    """Per-item result of a batch file-info lookup."""

    path: str
    info: FileInfo | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "info": self.info.to_payload() if self.info else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class ProbeResult:
    """Bitrate and duration metadata read from ffprobe."""

    video_bitrate: int | None = None
    audio_bitrate: int | None = None
    duration: float | None = None
