"""Unit tests for FFmpeg argument synthesis."""

from pathlib import Path

import pytest

from aether.domain.formats import (
    AudioFormat,
    ImageFormat,
    OutputFormat,
    VideoFormat,
    parse_output_format,
)
from aether.domain.models import (
    CONFLICT_OVERWRITE,
    BackgroundColor,
    ConversionConfig,
    ResizeMode,
    ResizeSpec,
)
from aether.errors import InvalidConfigError
from aether.executor.command import (
    build_args,
    build_audio_extract_args,
    build_image_args,
    build_thumbnail_args,
    build_video_args,
)

INPUT = Path("/in/clip.mov")


def make_config(fmt: str, **kwargs) -> ConversionConfig:
    output_format = parse_output_format(fmt)
    assert output_format is not None
    return ConversionConfig(
        input_path=INPUT,
        output_path=Path(f"/out/clip.{output_format.extension}"),
        output_format=output_format,
        **kwargs,
    )


def value_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


class TestVideoArgs:
    """Tests for build_video_args."""

    def test_mp4_full_vector(self) -> None:
        """Default mp4 job produces the exact expected vector."""
        args = build_video_args(make_config("mp4"))
        assert args == [
            "-i", "/in/clip.mov",
            "-progress", "pipe:2",
            "-n",
            "-ignore_unknown",
            "-map", "0:v:0",
            "-map", "0:a:0?",
            "-c:v", "libx264",
            "-c:a", "aac", "-b:a", "268k",
            "-crf", "28",
            "-preset", "slow",
            "-movflags", "+faststart",
            "-pix_fmt", "yuv420p",
            "/out/clip.mp4",
        ]  # fmt: skip

    def test_input_first_output_last(self) -> None:
        for fmt in ("mp4", "webm", "avi", "wmv", "mkv", "flv"):
            args = build_video_args(make_config(fmt))
            assert args[:2] == ["-i", str(INPUT)]
            assert args[-1].endswith(f".{fmt}")

    def test_overwrite_flag_follows_conflict_mode(self) -> None:
        args = build_video_args(make_config("mp4", conflict_mode=CONFLICT_OVERWRITE))
        assert "-y" in args
        assert "-n" not in args

    def test_muted_drops_audio(self) -> None:
        """Muted jobs get -an and no audio map or codec."""
        args = build_video_args(make_config("mp4", is_muted=True))
        assert "-an" in args
        assert "0:a:0?" not in args
        assert "-c:a" not in args

    def test_strip_metadata(self) -> None:
        args = build_video_args(make_config("mkv", strip_metadata=True))
        assert value_after(args, "-map_metadata") == "-1"
        assert value_after(args, "-map_chapters") == "-1"

    def test_mkv_has_no_faststart(self) -> None:
        assert "-movflags" not in build_video_args(make_config("mkv"))

    def test_resize_filter_before_codec(self) -> None:
        resize = ResizeSpec(640, 360, ResizeMode.FILL)
        args = build_video_args(make_config("mp4", resize=resize))
        assert value_after(args, "-vf") == "scale=640:360"
        assert args.index("-vf") < args.index("-c:v")

    def test_webm_unconstrained_quality(self) -> None:
        args = build_video_args(make_config("webm"))
        assert value_after(args, "-c:v") == "libvpx-vp9"
        assert value_after(args, "-c:a") == "libopus"
        assert value_after(args, "-crf") == "37"
        assert value_after(args, "-b:v") == "0"
        assert "-maxrate" not in args
        assert value_after(args, "-pix_fmt") == "yuv420p"

    def test_webm_bitrate_ceiling(self) -> None:
        """A ceiling switches VP9 to bitrate-targeted mode."""
        args = build_video_args(make_config("webm", max_bitrate_kbps=2000))
        assert value_after(args, "-b:v") == "2000k"
        assert value_after(args, "-maxrate") == "2000k"
        assert value_after(args, "-bufsize") == "10000k"

    def test_x264_bitrate_ceiling(self) -> None:
        """x264 keeps CRF and adds the ceiling after the pixel format."""
        args = build_video_args(make_config("mp4", max_bitrate_kbps=1500))
        assert value_after(args, "-crf") == "28"
        assert value_after(args, "-maxrate") == "1500k"
        assert value_after(args, "-bufsize") == "7500k"
        assert args.index("-maxrate") > args.index("-pix_fmt")

    @pytest.mark.parametrize(
        ("fmt", "video", "audio"),
        [("avi", "mpeg4", "libmp3lame"), ("wmv", "wmv2", "wmav2")],
    )
    def test_qscale_containers(self, fmt: str, video: str, audio: str) -> None:
        args = build_video_args(make_config(fmt))
        assert value_after(args, "-c:v") == video
        assert value_after(args, "-c:a") == audio
        assert value_after(args, "-q:v") == "8"


class TestAudioExtractArgs:
    """Tests for build_audio_extract_args."""

    def test_mp3_vector(self) -> None:
        args = build_audio_extract_args(make_config("mp3"))
        assert args == [
            "-i", "/in/clip.mov",
            "-progress", "pipe:2",
            "-n",
            "-vn",
            "-c:a", "libmp3lame",
            "-q:a", "2",
            "/out/clip.mp3",
        ]  # fmt: skip

    def test_wav_is_pcm_without_quality(self) -> None:
        args = build_audio_extract_args(make_config("wav"))
        assert value_after(args, "-c:a") == "pcm_s16le"
        assert "-q:a" not in args
        assert "-b:a" not in args

    def test_flac_lossless(self) -> None:
        args = build_audio_extract_args(make_config("flac", quality_percent=10))
        assert value_after(args, "-compression_level") == "8"

    def test_strip_metadata(self) -> None:
        args = build_audio_extract_args(make_config("ogg", strip_metadata=True))
        assert value_after(args, "-map_metadata") == "-1"
        assert value_after(args, "-c:a") == "libvorbis"


class TestImageArgs:
    """Tests for build_image_args."""

    def test_jpg_vector(self) -> None:
        args = build_image_args(make_config("jpeg"))
        assert args == ["-i", "/in/clip.mov", "-n", "-q:v", "8", "/out/clip.jpg"]

    def test_no_progress_channel(self) -> None:
        assert "-progress" not in build_image_args(make_config("png"))

    def test_transparent_png_resize(self) -> None:
        resize = ResizeSpec(64, 64, ResizeMode.CONTAIN, BackgroundColor.TRANSPARENT)
        args = build_image_args(make_config("png", resize=resize))
        assert value_after(args, "-vf").startswith("format=rgba,")


class TestBuildArgsDispatch:
    """build_args picks the builder by media family."""

    def test_dispatch(self) -> None:
        assert "-vn" in build_args(make_config("aac"))
        assert "-map" in build_args(make_config("mov"))
        assert "-progress" not in build_args(make_config("bmp"))


class TestConversionConfigValidation:
    """Invalid configurations are rejected before any argument is built."""

    @pytest.mark.parametrize("quality", [-1, 101])
    def test_quality_out_of_range(self, quality: int) -> None:
        with pytest.raises(InvalidConfigError):
            make_config("mp4", quality_percent=quality)

    def test_extension_must_match_format(self) -> None:
        with pytest.raises(InvalidConfigError):
            ConversionConfig(
                input_path=INPUT,
                output_path=Path("/out/clip.mkv"),
                output_format=OutputFormat.video(VideoFormat.MP4),
            )

    def test_non_positive_bitrate(self) -> None:
        with pytest.raises(InvalidConfigError):
            make_config("mp4", max_bitrate_kbps=0)


class TestThumbnailArgs:
    """Tests for build_thumbnail_args."""

    def test_video_seeks_first(self) -> None:
        args = build_thumbnail_args(Path("/in/a.mp4"), Path("/tmp/t.jpg"))
        assert args == [
            "-ss", "00:00:01",
            "-i", "/in/a.mp4",
            "-vframes", "1",
            "-vf", "scale=120:-1",
            "-y",
            "/tmp/t.jpg",
        ]  # fmt: skip

    def test_image_does_not_seek(self) -> None:
        args = build_thumbnail_args(
            Path("/in/a.png"), Path("/tmp/t.jpg"), is_video=False
        )
        assert "-ss" not in args


def test_every_format_builds() -> None:
    """Every declared variant has a codec mapping."""
    formats = (
        [OutputFormat.video(v) for v in VideoFormat]
        + [OutputFormat.audio(a) for a in AudioFormat]
        + [OutputFormat.image(i) for i in ImageFormat]
    )
    for fmt in formats:
        args = build_args(make_config(fmt.extension))
        assert args[-1] == f"/out/clip.{fmt.extension}"
