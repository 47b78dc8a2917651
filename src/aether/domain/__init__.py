"""Domain types for aether.

- formats: closed sum type of target formats, MediaType classification
- models: resize/naming specs, ConversionConfig, reported values
- requests: pydantic models validating client payloads

Usage:
    from aether.domain import OutputFormat, ConversionConfig, ResizeSpec
"""

from .formats import (
    AudioFormat,
    ImageFormat,
    MediaFamily,
    MediaType,
    OutputFormat,
    VideoFormat,
    parse_output_format,
)
from .models import (
    CONFLICT_KEEP_BOTH,
    CONFLICT_OVERWRITE,
    CONFLICT_REJECT,
    BackgroundColor,
    ConversionConfig,
    ConversionResult,
    DateBlock,
    FileInfo,
    FileInfoResult,
    NamingBlock,
    NamingConfig,
    OriginalBlock,
    PrefixBlock,
    ProbeResult,
    ProcessStatus,
    ProgressEvent,
    RandomBlock,
    ResizeMode,
    ResizeSpec,
    ThumbnailRequest,
    ThumbnailResult,
)

__all__ = [
    # Formats
    "AudioFormat",
    "ImageFormat",
    "MediaFamily",
    "MediaType",
    "OutputFormat",
    "VideoFormat",
    "parse_output_format",
    # Conflict policies
    "CONFLICT_KEEP_BOTH",
    "CONFLICT_OVERWRITE",
    "CONFLICT_REJECT",
    # Models
    "BackgroundColor",
    "ConversionConfig",
    "ConversionResult",
    "DateBlock",
    "FileInfo",
    "FileInfoResult",
    "NamingBlock",
    "NamingConfig",
    "OriginalBlock",
    "PrefixBlock",
    "ProbeResult",
    "ProcessStatus",
    "ProgressEvent",
    "RandomBlock",
    "ResizeMode",
    "ResizeSpec",
    "ThumbnailRequest",
    "ThumbnailResult",
]
