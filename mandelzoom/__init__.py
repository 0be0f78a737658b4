"""Public API for Mandelbrot zoom rendering."""

from .colors import (
    ColorPolicy,
    CyclicPolicy,
    DuotonePolicy,
    LinearPolicy,
    get_color_policy,
    parse_hex_color,
    sinebow,
)
from .generator import (
    FrameReport,
    PrecisionExhaustedError,
    PrecisionWarning,
    ZoomPlanner,
    ZoomSpec,
    frame_id,
    resolution_exhausted,
    run_zoom,
)
from .output import (
    EncoderResult,
    FrameWriter,
    VideoAssemblyError,
    assemble_gif,
    assemble_video,
    open_viewer,
    save_image,
)
from .renderer import escape_time, escape_times, invert, render_frame
from .viewport import ComplexPoint, Viewport, pixel_grid, pixel_to_point

__version__ = "1.0.0"

__all__ = [
    "ColorPolicy",
    "ComplexPoint",
    "CyclicPolicy",
    "DuotonePolicy",
    "EncoderResult",
    "FrameReport",
    "FrameWriter",
    "LinearPolicy",
    "PrecisionExhaustedError",
    "PrecisionWarning",
    "VideoAssemblyError",
    "Viewport",
    "ZoomPlanner",
    "ZoomSpec",
    "assemble_gif",
    "assemble_video",
    "escape_time",
    "escape_times",
    "frame_id",
    "get_color_policy",
    "invert",
    "open_viewer",
    "parse_hex_color",
    "pixel_grid",
    "pixel_to_point",
    "render_frame",
    "resolution_exhausted",
    "run_zoom",
    "save_image",
    "sinebow",
]
