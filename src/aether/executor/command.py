"""FFmpeg argument synthesis.

This module maps a ConversionConfig onto the exact ordered argument vector
for the external transcoder. The functions are pure: no I/O, no state, and
the executable path is not part of the returned vector (the caller
prepends it when spawning).
"""

from __future__ import annotations

from pathlib import Path

from aether.domain.formats import (
    AudioFormat,
    MediaFamily,
    OutputFormat,
    VideoFormat,
)
from aether.domain.models import ConversionConfig
from aether.errors import UnsupportedFormatError

from .filters import build_resize_filter
from .quality import (
    audio_bitrate_kbps,
    audio_quality_args,
    calculate_crf,
    image_quality_args,
    x264_preset,
)

THUMBNAIL_WIDTH = 120
THUMBNAIL_SEEK = "00:00:01"

# Output containers that benefit from moving the moov atom to the front
_FASTSTART_FORMATS = frozenset({VideoFormat.MP4, VideoFormat.MOV, VideoFormat.M4V})

_X264_FORMATS = frozenset(
    {
        VideoFormat.MP4,
        VideoFormat.MKV,
        VideoFormat.MOV,
        VideoFormat.M4V,
        VideoFormat.FLV,
    }
)

# (video encoder, audio encoder) for qscale-based legacy containers
_QSCALE_ENCODERS = {
    VideoFormat.AVI: ("mpeg4", "libmp3lame"),
    VideoFormat.WMV: ("wmv2", "wmav2"),
}


def _overwrite_flag(config: ConversionConfig) -> str:
    return "-y" if config.overwrite else "-n"


def _ceiling_args(max_bitrate_kbps: int) -> list[str]:
    return [
        "-maxrate",
        f"{max_bitrate_kbps}k",
        "-bufsize",
        f"{max_bitrate_kbps * 5}k",
    ]


def _video_codec_args(config: ConversionConfig) -> list[str]:
    """Codec block for a video target."""
    variant = config.output_format.variant
    audio_bitrate = f"{audio_bitrate_kbps(config.quality_percent)}k"
    crf = calculate_crf(config.output_format, config.quality_percent)
    args: list[str] = []

    if variant is VideoFormat.WEBM:
        args.extend(["-c:v", "libvpx-vp9"])
        if not config.is_muted:
            args.extend(["-c:a", "libopus", "-b:a", audio_bitrate])
        args.extend(["-crf", str(crf)])
        if config.max_bitrate_kbps is not None:
            # Bitrate-targeted mode replaces unconstrained quality mode
            args.extend(["-b:v", f"{config.max_bitrate_kbps}k"])
            args.extend(_ceiling_args(config.max_bitrate_kbps))
        else:
            args.extend(["-b:v", "0"])
        args.extend(
            [
                "-deadline",
                "good",
                "-cpu-used",
                "2",
                "-row-mt",
                "1",
                "-pix_fmt",
                "yuv420p",
            ]
        )
        return args

    if variant in _X264_FORMATS:
        args.extend(["-c:v", "libx264"])
        if not config.is_muted:
            args.extend(["-c:a", "aac", "-b:a", audio_bitrate])
        args.extend(["-crf", str(crf), "-preset", x264_preset(config.quality_percent)])
        if variant in _FASTSTART_FORMATS:
            args.extend(["-movflags", "+faststart"])
        args.extend(["-pix_fmt", "yuv420p"])
        # Ceiling co-exists with constant-quality mode
        if config.max_bitrate_kbps is not None:
            args.extend(_ceiling_args(config.max_bitrate_kbps))
        return args

    if variant in _QSCALE_ENCODERS:
        video_encoder, audio_encoder = _QSCALE_ENCODERS[variant]
        args.extend(["-c:v", video_encoder])
        if not config.is_muted:
            args.extend(["-c:a", audio_encoder, "-b:a", audio_bitrate])
        args.extend(["-q:v", str(crf)])
        if config.max_bitrate_kbps is not None:
            args.extend(_ceiling_args(config.max_bitrate_kbps))
        return args

    raise UnsupportedFormatError("video", variant.value, "no codec mapping")


def build_video_args(config: ConversionConfig) -> list[str]:
    """Build the argument vector for a video target.

    Args:
        config: Conversion configuration with a video output format.

    Returns:
        Ordered argument list (without the executable).
    """
    args: list[str] = ["-i", str(config.input_path)]

    # Machine-readable progress on the diagnostic channel
    args.extend(["-progress", "pipe:2"])
    args.append(_overwrite_flag(config))

    if config.strip_metadata:
        args.extend(["-map_metadata", "-1", "-map_chapters", "-1"])
    if config.is_muted:
        args.append("-an")

    args.append("-ignore_unknown")
    args.extend(["-map", "0:v:0"])
    if not config.is_muted:
        # Trailing ? tolerates inputs without an audio stream
        args.extend(["-map", "0:a:0?"])

    if config.resize is not None:
        args.extend(
            ["-vf", build_resize_filter(config.resize, config.output_format, True)]
        )

    args.extend(_video_codec_args(config))
    args.append(str(config.output_path))
    return args


_AUDIO_ENCODERS = {
    AudioFormat.MP3: "libmp3lame",
    AudioFormat.AAC: "aac",
    AudioFormat.M4A: "aac",
    AudioFormat.OGG: "libvorbis",
    AudioFormat.FLAC: "flac",
    AudioFormat.WAV: "pcm_s16le",
}


def build_audio_extract_args(config: ConversionConfig) -> list[str]:
    """Build the argument vector for extracting audio from the input.

    The video stream is dropped entirely.
    """
    variant = config.output_format.variant
    if variant not in _AUDIO_ENCODERS:
        raise UnsupportedFormatError("audio", variant.value, "no codec mapping")

    args: list[str] = ["-i", str(config.input_path)]
    args.extend(["-progress", "pipe:2"])
    args.append(_overwrite_flag(config))
    if config.strip_metadata:
        args.extend(["-map_metadata", "-1"])
    args.append("-vn")
    args.extend(["-c:a", _AUDIO_ENCODERS[variant]])
    args.extend(audio_quality_args(variant, config.quality_percent))
    args.append(str(config.output_path))
    return args


def build_image_args(config: ConversionConfig) -> list[str]:
    """Build the argument vector for a still-image target.

    Single-frame conversions finish quickly, so no progress channel is
    requested.
    """
    args: list[str] = ["-i", str(config.input_path)]
    args.append(_overwrite_flag(config))

    if config.resize is not None:
        args.extend(
            ["-vf", build_resize_filter(config.resize, config.output_format, False)]
        )

    args.extend(
        image_quality_args(config.output_format.variant, config.quality_percent)
    )
    args.append(str(config.output_path))
    return args


def build_args(config: ConversionConfig) -> list[str]:
    """Dispatch to the builder for the target's media family."""
    match config.output_format.family:
        case MediaFamily.VIDEO:
            return build_video_args(config)
        case MediaFamily.AUDIO:
            return build_audio_extract_args(config)
        case MediaFamily.IMAGE:
            return build_image_args(config)
    raise UnsupportedFormatError(
        str(config.input_path), str(config.output_format), "unknown media family"
    )


def build_thumbnail_args(
    input_path: Path, output_path: Path, is_video: bool = True
) -> list[str]:
    """Build the argument vector for a thumbnail frame.

    Videos seek one second in to skip black lead-in frames.
    """
    args: list[str] = []
    if is_video:
        args.extend(["-ss", THUMBNAIL_SEEK])
    args.extend(["-i", str(input_path)])
    args.extend(["-vframes", "1"])
    args.extend(["-vf", f"scale={THUMBNAIL_WIDTH}:-1"])
    args.append("-y")
    args.append(str(output_path))
    return args


def describe_target(output_format: OutputFormat) -> str:
    """Short human-readable label used in log messages."""
    return f"{output_format.family.value}/{output_format.extension}"
