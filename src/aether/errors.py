"""Exception hierarchy for conversion operations.

Every failure a conversion job can end in is represented by a subclass of
ConversionError. Each class carries a stable machine-readable ``code`` so
that outer surfaces (CLI, HTTP API) can report failures without parsing
messages.
"""

from __future__ import annotations

from enum import Enum


class ConversionError(Exception):
    """Base exception for conversion errors.

    All conversion-related exceptions inherit from this class, allowing
    callers to catch every job failure with a single except clause.
    """

    code: str = "UNKNOWN"


class InputNotFoundError(ConversionError):
    """Raised when the input file of a job does not exist.

    Attributes:
        path: The path that could not be found.
    """

    code = "FILE_NOT_FOUND"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class UnsupportedFormatError(ConversionError):
    """Raised when a requested format identifier is not recognized."""

    code = "UNSUPPORTED_FORMAT"

    def __init__(self, input: str, output: str, reason: str) -> None:
        self.input = input
        self.output = output
        self.reason = reason
        super().__init__(f"Unsupported format: {input} -> {output} ({reason})")


class FileConflictError(ConversionError):
    """Raised when the output path exists and the conflict policy rejects it.

    Attributes:
        path: The existing output path.
    """

    code = "FILE_CONFLICT"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File already exists: {path}")


class DuplicateLimitError(ConversionError):
    """Raised when keep_both resolution runs out of numbered suffixes."""

    code = "TOO_MANY_DUPLICATES"

    def __init__(self, path: str, limit: int) -> None:
        self.path = path
        self.limit = limit
        super().__init__(f"Too many duplicate files for {path} (limit {limit})")


class FailureReason(Enum):
    """Classified reason for a non-zero transcoder exit."""

    NO_AUDIO_STREAM = "no_audio_stream"
    PERMISSION_DENIED = "permission_denied"
    DISK_FULL = "disk_full"
    GENERIC = "generic"


class ProcessError(ConversionError):
    """Raised when the external tool exits with a non-zero status.

    Attributes:
        tool: Name of the tool that failed (e.g. "ffmpeg").
        exit_code: Process exit code, None if killed by a signal.
        stderr: Retained diagnostic tail.
        reason: Classified failure reason.
    """

    code = "PROCESS_ERROR"

    def __init__(
        self,
        tool: str,
        exit_code: int | None,
        stderr: str,
        reason: FailureReason = FailureReason.GENERIC,
        message: str | None = None,
    ) -> None:
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr
        self.reason = reason
        if message is None:
            first_line = stderr.splitlines()[0] if stderr else "Unknown error"
            message = f"{tool} error (code: {exit_code}): {first_line}"
        super().__init__(message)


class ConversionCancelledError(ConversionError):
    """Raised when a job is cancelled while in flight."""

    code = "CANCELLED"

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Process cancelled: {job_id}")


class ConversionIOError(ConversionError):
    """Raised when a filesystem operation fails."""

    code = "IO_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(f"IO error: {message}")


class InvalidConfigError(ConversionError):
    """Raised when a conversion request or configuration is invalid."""

    code = "INVALID_CONFIG"

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid configuration: {message}")


class ToolNotFoundError(InvalidConfigError):
    """Raised when a required external executable cannot be located.

    Attributes:
        tool: Name of the tool.
        checked: Every location that was examined.
    """

    code = "TOOL_NOT_FOUND"

    def __init__(self, tool: str, checked: list[str]) -> None:
        self.tool = tool
        self.checked = checked
        super().__init__(f"Could not find {tool} binary. Checked: {checked}")


class ThumbnailError(ConversionError):
    """Raised when thumbnail generation fails."""

    code = "THUMBNAIL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(f"Thumbnail error: {message}")


class UnknownConversionError(ConversionError):
    """Raised for failures that fit no other category."""

    code = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(f"Unknown error: {message}")
