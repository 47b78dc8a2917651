"""Unit tests for resize filter compilation."""

import pytest

from aether.domain.formats import ImageFormat, OutputFormat, VideoFormat
from aether.domain.models import BackgroundColor, ResizeMode, ResizeSpec
from aether.errors import InvalidConfigError
from aether.executor.filters import build_resize_filter

MP4 = OutputFormat.video(VideoFormat.MP4)
WEBM = OutputFormat.video(VideoFormat.WEBM)
PNG = OutputFormat.image(ImageFormat.PNG)
JPG = OutputFormat.image(ImageFormat.JPG)


class TestResizeModes:
    """Tests for the three resize modes."""

    def test_fill_ignores_aspect(self) -> None:
        spec = ResizeSpec(1280, 720, ResizeMode.FILL)
        assert build_resize_filter(spec, MP4, is_video=True) == "scale=1280:720"

    def test_cover_scales_up_then_crops(self) -> None:
        spec = ResizeSpec(1280, 720, ResizeMode.COVER)
        assert build_resize_filter(spec, MP4, is_video=True) == (
            "scale=1280:720:force_original_aspect_ratio=increase,crop=1280:720"
        )

    def test_contain_pads_with_color(self) -> None:
        spec = ResizeSpec(1280, 720, ResizeMode.CONTAIN, BackgroundColor.WHITE)
        assert build_resize_filter(spec, MP4, is_video=True) == (
            "scale=1280:720:force_original_aspect_ratio=decrease,"
            "pad=1280:720:(ow-iw)/2:(oh-ih)/2:color=white"
        )


class TestEvenDimensions:
    """Odd dimensions are rounded down before any filter is built."""

    def test_odd_box_is_evened(self) -> None:
        spec = ResizeSpec(1281, 721, ResizeMode.FILL)
        assert build_resize_filter(spec, MP4, is_video=True) == "scale=1280:720"

    def test_contain_uses_even_dimensions_everywhere(self) -> None:
        spec = ResizeSpec(333, 201, ResizeMode.CONTAIN)
        expr = build_resize_filter(spec, JPG, is_video=False)
        assert "scale=332:200" in expr
        assert "pad=332:200" in expr

    def test_smallest_box_stays_non_zero(self) -> None:
        spec = ResizeSpec(3, 2, ResizeMode.FILL)
        assert build_resize_filter(spec, MP4, is_video=True) == "scale=2:2"

    @pytest.mark.parametrize(("width", "height"), [(1, 1), (1, 720), (1280, 1)])
    def test_sub_even_dimensions_rejected(self, width: int, height: int) -> None:
        """A side of 1 would compile to scale=0, which keeps the source size."""
        with pytest.raises(InvalidConfigError):
            ResizeSpec(width, height, ResizeMode.FILL)


class TestTransparentPadding:
    """Transparent backgrounds need an alpha-capable target."""

    def test_png_gets_rgba(self) -> None:
        spec = ResizeSpec(200, 100, ResizeMode.CONTAIN, BackgroundColor.TRANSPARENT)
        assert build_resize_filter(spec, PNG, is_video=False) == (
            "format=rgba,scale=200:100:force_original_aspect_ratio=decrease,"
            "pad=200:100:(ow-iw)/2:(oh-ih)/2:color=0x00000000"
        )

    def test_webm_gets_yuva(self) -> None:
        spec = ResizeSpec(200, 100, ResizeMode.CONTAIN, BackgroundColor.TRANSPARENT)
        expr = build_resize_filter(spec, WEBM, is_video=True)
        assert expr.startswith("format=yuva420p,")
        assert expr.endswith("color=0x00000000")

    @pytest.mark.parametrize("fmt", [MP4, JPG])
    def test_falls_back_to_black(self, fmt: OutputFormat) -> None:
        """Targets without alpha pad with black instead."""
        spec = ResizeSpec(200, 100, ResizeMode.CONTAIN, BackgroundColor.TRANSPARENT)
        expr = build_resize_filter(spec, fmt, is_video=fmt.is_video)
        assert not expr.startswith("format=")
        assert expr.endswith(":color=black")
