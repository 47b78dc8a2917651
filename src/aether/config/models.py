"""Configuration data models.

This module defines dataclasses for aether configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path

from aether.domain.models import CONFLICT_KEEP_BOTH


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in the
    bundled binary directories and then in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")
        if self.backup_count < 0:
            raise ValueError(
                f"backup_count must be non-negative, got {self.backup_count}"
            )


@dataclass
class ConversionSettings:
    """Tuning knobs for the conversion engine."""

    # Concurrent thumbnail renders
    thumbnail_workers: int = 3

    # Concurrent file-info lookups
    file_info_workers: int = 10

    # Minimum wall-clock gap between progress events for one job
    progress_interval_ms: int = 100

    # Diagnostic lines retained for failure classification
    diagnostic_tail_lines: int = 20

    default_quality: int = 80
    default_conflict_mode: str = CONFLICT_KEEP_BOTH

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.thumbnail_workers < 1:
            raise ValueError(
                f"thumbnail_workers must be at least 1, got {self.thumbnail_workers}"
            )
        if self.file_info_workers < 1:
            raise ValueError(
                f"file_info_workers must be at least 1, got {self.file_info_workers}"
            )
        if self.progress_interval_ms < 0:
            raise ValueError(
                "progress_interval_ms must be non-negative, "
                f"got {self.progress_interval_ms}"
            )
        if self.diagnostic_tail_lines < 1:
            raise ValueError(
                "diagnostic_tail_lines must be at least 1, "
                f"got {self.diagnostic_tail_lines}"
            )
        if not 0 <= self.default_quality <= 100:
            raise ValueError(
                f"default_quality must be 0-100, got {self.default_quality}"
            )

    @property
    def progress_interval(self) -> float:
        """Progress interval in seconds."""
        return self.progress_interval_ms / 1000.0


@dataclass
class ServerConfig:
    """Configuration for `aether serve`.

    Controls bind address, port, and shutdown behavior.
    """

    bind: str = "127.0.0.1"
    """Network address to bind to. Default localhost for security."""

    port: int = 8412
    """Port number for the HTTP server."""

    shutdown_timeout: float = 10.0
    """Seconds to wait for graceful shutdown before cancelling tasks."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive, got {self.shutdown_timeout}"
            )


@dataclass
class AetherConfig:
    """Main configuration container.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    conversion: ConversionSettings = field(default_factory=ConversionSettings)
    server: ServerConfig = field(default_factory=ServerConfig)
