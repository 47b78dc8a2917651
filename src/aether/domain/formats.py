"""Target format types.

The output format of a conversion is a closed sum type: a media family
(video, audio or image) paired with one variant of that family's enum.
Mapping sites (extension, quality tables, argument synthesis) match on the
family and variant and raise UnsupportedFormatError for anything they do
not know, so adding a format is a localized change.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MediaFamily(Enum):
    """Media family of a target format."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"


class VideoFormat(Enum):
    """Video container targets."""

    MP4 = "mp4"
    MKV = "mkv"
    MOV = "mov"
    WEBM = "webm"
    AVI = "avi"
    WMV = "wmv"
    M4V = "m4v"
    FLV = "flv"


class AudioFormat(Enum):
    """Audio-extraction targets."""

    MP3 = "mp3"
    WAV = "wav"
    AAC = "aac"
    FLAC = "flac"
    M4A = "m4a"
    OGG = "ogg"


class ImageFormat(Enum):
    """Still image targets."""

    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"
    BMP = "bmp"
    TIFF = "tiff"


# Targets whose codecs can carry an alpha channel
_TRANSPARENCY_CAPABLE: frozenset[Enum] = frozenset(
    {ImageFormat.PNG, ImageFormat.WEBP, VideoFormat.WEBM}
)


@dataclass(frozen=True)
class OutputFormat:
    """A target format: media family plus the family's variant."""

    family: MediaFamily
    variant: VideoFormat | AudioFormat | ImageFormat

    def __post_init__(self) -> None:
        expected = {
            MediaFamily.VIDEO: VideoFormat,
            MediaFamily.AUDIO: AudioFormat,
            MediaFamily.IMAGE: ImageFormat,
        }[self.family]
        if not isinstance(self.variant, expected):
            raise TypeError(
                f"{self.family.value} format requires a {expected.__name__}, "
                f"got {self.variant!r}"
            )

    @classmethod
    def video(cls, variant: VideoFormat) -> OutputFormat:
        return cls(MediaFamily.VIDEO, variant)

    @classmethod
    def audio(cls, variant: AudioFormat) -> OutputFormat:
        return cls(MediaFamily.AUDIO, variant)

    @classmethod
    def image(cls, variant: ImageFormat) -> OutputFormat:
        return cls(MediaFamily.IMAGE, variant)

    @property
    def extension(self) -> str:
        """Canonical file extension (without the dot)."""
        return self.variant.value

    @property
    def is_video(self) -> bool:
        return self.family is MediaFamily.VIDEO

    @property
    def is_audio(self) -> bool:
        return self.family is MediaFamily.AUDIO

    @property
    def is_image(self) -> bool:
        return self.family is MediaFamily.IMAGE

    def supports_transparency(self) -> bool:
        """True if the target can carry an alpha channel."""
        return self.variant in _TRANSPARENCY_CAPABLE

    def __str__(self) -> str:
        return self.extension


_IDENTIFIER_ALIASES = {"jpeg": "jpg"}


def parse_output_format(identifier: str) -> OutputFormat | None:
    """Resolve a format identifier such as "mp4" or "JPEG".

    Args:
        identifier: Format name, case-insensitive.

    Returns:
        The OutputFormat, or None if the identifier is not recognized.
    """
    key = identifier.strip().casefold()
    key = _IDENTIFIER_ALIASES.get(key, key)
    for family, enum_cls in (
        (MediaFamily.VIDEO, VideoFormat),
        (MediaFamily.IMAGE, ImageFormat),
        (MediaFamily.AUDIO, AudioFormat),
    ):
        try:
            return OutputFormat(family, enum_cls(key))
        except ValueError:
            continue
    return None


class MediaType(Enum):
    """Media type of an input file, derived from its extension."""

    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"

    @classmethod
    def from_extension(cls, extension: str) -> MediaType | None:
        """Classify a file extension (with or without the leading dot)."""
        ext = extension.casefold().lstrip(".")
        if ext in _VIDEO_EXTENSIONS:
            return cls.VIDEO
        if ext in _IMAGE_EXTENSIONS:
            return cls.IMAGE
        if ext in _AUDIO_EXTENSIONS:
            return cls.AUDIO
        return None


_VIDEO_EXTENSIONS = frozenset(f.value for f in VideoFormat)
_IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "bmp", "tiff"})
_AUDIO_EXTENSIONS = frozenset(f.value for f in AudioFormat)
