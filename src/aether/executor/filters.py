"""Resize filter-graph compilation.

Turns a ResizeSpec into an FFmpeg ``-vf`` expression. Dimensions are
always rounded down to even numbers first because 4:2:0 chroma
subsampling cannot encode odd widths or heights.
"""

from __future__ import annotations

from aether.domain.formats import OutputFormat
from aether.domain.models import BackgroundColor, ResizeMode, ResizeSpec

# Pixel formats with an alpha plane
VIDEO_ALPHA_PIX_FMT = "yuva420p"
IMAGE_ALPHA_PIX_FMT = "rgba"

TRANSPARENT_PAD_COLOR = "0x00000000"


def _solid_color(color: BackgroundColor) -> str:
    match color:
        case BackgroundColor.WHITE:
            return "white"
        case BackgroundColor.BLACK | BackgroundColor.TRANSPARENT:
            # Transparent degrades to black on targets without alpha
            return "black"
    raise ValueError(f"Unknown background color: {color!r}")


def build_resize_filter(
    resize: ResizeSpec,
    output_format: OutputFormat,
    is_video: bool,
) -> str:
    """Compile a resize specification into a filter-graph expression.

    Args:
        resize: Target box, mode and background.
        output_format: Target format (decides whether alpha padding is
            possible).
        is_video: True for video targets, False for still images; selects
            the alpha-capable pixel format.

    Returns:
        Filter expression for ``-vf``.
    """
    w = resize.even_width
    h = resize.even_height

    match resize.mode:
        case ResizeMode.FILL:
            return f"scale={w}:{h}"
        case ResizeMode.COVER:
            return f"scale={w}:{h}:force_original_aspect_ratio=increase,crop={w}:{h}"
        case ResizeMode.CONTAIN:
            fit = f"scale={w}:{h}:force_original_aspect_ratio=decrease"
            pad = f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2"
            if (
                output_format.supports_transparency()
                and resize.background_color is BackgroundColor.TRANSPARENT
            ):
                pix_fmt = VIDEO_ALPHA_PIX_FMT if is_video else IMAGE_ALPHA_PIX_FMT
                return f"format={pix_fmt},{fit},{pad}:color={TRANSPARENT_PAD_COLOR}"
            return f"{fit},{pad}:color={_solid_color(resize.background_color)}"
    raise ValueError(f"Unknown resize mode: {resize.mode!r}")
