"""Quality-percent to codec-parameter mappings.

Every mapping here is a deterministic pure function of ``quality_percent``
(0-100) and encodes the product's perceptual tuning, so the formulas and
clamps must not drift. Where a codec's native scale is inverted (lower
value means higher fidelity) the inversion happens here, never at the
call site.
"""

from __future__ import annotations

import math

from aether.domain.formats import (
    AudioFormat,
    ImageFormat,
    MediaFamily,
    OutputFormat,
    VideoFormat,
)
from aether.errors import UnsupportedFormatError

# (best, worst) numeric values of each constant-quality scale
VP9_CRF_RANGE = (31, 63)
X264_CRF_RANGE = (23, 51)
QSCALE_RANGE = (3, 31)

AUDIO_BITRATE_MIN_KBPS = 128
AUDIO_BITRATE_MAX_KBPS = 320

JPEG_QSCALE_MIN = 2
WEBP_QUALITY_MAX = 92


def _round_half_up(value: float) -> int:
    """Round non-negative values half away from zero.

    The builtin round() uses banker's rounding, which would map 0.5 to 0.
    """
    return math.floor(value + 0.5)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def constant_quality_scale(quality_percent: int, scale: tuple[int, int]) -> int:
    """Map quality onto a "lower is better" constant-quality scale.

    ``high - (quality/100) * (high - low)``, truncated and clamped to the
    scale's range.

    Args:
        quality_percent: Requested quality (0-100).
        scale: (low, high) numeric range of the codec's scale.

    Returns:
        Scale value; monotonically non-increasing in quality_percent.
    """
    low, high = scale
    value = high - (quality_percent / 100.0) * (high - low)
    return _clamp(int(value), low, high)


def _video_scale(variant: VideoFormat) -> tuple[int, int]:
    match variant:
        case VideoFormat.WEBM:
            return VP9_CRF_RANGE
        case (
            VideoFormat.MP4
            | VideoFormat.MKV
            | VideoFormat.MOV
            | VideoFormat.M4V
            | VideoFormat.FLV
        ):
            return X264_CRF_RANGE
        case VideoFormat.AVI | VideoFormat.WMV:
            return QSCALE_RANGE
    raise UnsupportedFormatError("video", variant.value, "no quality scale")


def calculate_crf(output_format: OutputFormat, quality_percent: int) -> int:
    """Constant-quality factor (or qscale) for a video target.

    Raises:
        UnsupportedFormatError: If the target is not a video format.
    """
    if output_format.family is not MediaFamily.VIDEO:
        raise UnsupportedFormatError(
            "video", output_format.extension, "CRF applies to video targets only"
        )
    return constant_quality_scale(quality_percent, _video_scale(output_format.variant))


def audio_bitrate_kbps(quality_percent: int) -> int:
    """AAC/Opus/Vorbis bitrate for a quality level, clamped to [128, 320]."""
    raw = 64 + (quality_percent * 256) // 100
    return _clamp(raw, AUDIO_BITRATE_MIN_KBPS, AUDIO_BITRATE_MAX_KBPS)


def x264_preset(quality_percent: int) -> str:
    """Speed preset chosen from the quality tier."""
    if quality_percent >= 80:
        return "slow"
    if quality_percent >= 50:
        return "medium"
    return "fast"


def mp3_vbr_quality(quality_percent: int) -> int:
    """LAME ``-q:a`` value; 0 is best, 9 is worst."""
    return _clamp(_round_half_up((100 - quality_percent) / 100.0 * 9.0), 0, 9)


def vorbis_quality(quality_percent: int) -> int:
    """Vorbis ``-q:a`` value clamped to [1, 8]; higher is better."""
    return _clamp(_round_half_up(quality_percent / 100.0 * 8.0), 1, 8)


def jpeg_qscale(quality_percent: int) -> int:
    """MJPEG ``-q:v`` value; lower is better, never below 2."""
    return max(JPEG_QSCALE_MIN, 31 - _round_half_up(quality_percent / 100.0 * 29.0))


def webp_quality(quality_percent: int) -> int:
    """libwebp ``-quality`` value capped at 92."""
    return min(WEBP_QUALITY_MAX, 20 + (quality_percent * 72) // 100)


def audio_quality_args(variant: AudioFormat, quality_percent: int) -> list[str]:
    """Quality arguments for an audio-extraction target."""
    match variant:
        case AudioFormat.MP3:
            return ["-q:a", str(mp3_vbr_quality(quality_percent))]
        case AudioFormat.AAC | AudioFormat.M4A:
            return ["-b:a", f"{audio_bitrate_kbps(quality_percent)}k"]
        case AudioFormat.OGG:
            return ["-q:a", str(vorbis_quality(quality_percent))]
        case AudioFormat.FLAC:
            # Lossless; quality only trades CPU for size
            return ["-compression_level", "8"]
        case AudioFormat.WAV:
            return []
    raise UnsupportedFormatError("audio", variant.value, "no quality mapping")


def image_quality_args(variant: ImageFormat, quality_percent: int) -> list[str]:
    """Quality arguments for a still-image target."""
    match variant:
        case ImageFormat.JPG:
            return ["-q:v", str(jpeg_qscale(quality_percent))]
        case ImageFormat.WEBP:
            return [
                "-quality",
                str(webp_quality(quality_percent)),
                "-preset",
                "photo",
                "-compression_level",
                "6",
            ]
        case ImageFormat.PNG:
            return ["-compression_level", "9"]
        case ImageFormat.BMP | ImageFormat.TIFF:
            return []
    raise UnsupportedFormatError("image", variant.value, "no quality mapping")
