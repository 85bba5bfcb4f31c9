"""Public API for the interactive Mandelbrot explorer."""

from .coloring import build_palette, hsl_to_rgb, iteration_color, parse_hex_color
from .renderer import RenderConfig, RenderResult, compute_iterations, escape_time, render_frame
from .session import ExplorerSession
from .viewport import (
    MAX_ZOOM,
    MIN_ZOOM,
    Viewport,
    ViewportController,
    clamp_zoom,
    pan_viewport,
    pixel_axes,
    pixel_scale,
    pixel_to_complex,
    zoom_viewport,
)

__all__ = [
    "ExplorerSession",
    "MAX_ZOOM",
    "MIN_ZOOM",
    "RenderConfig",
    "RenderResult",
    "Viewport",
    "ViewportController",
    "build_palette",
    "clamp_zoom",
    "compute_iterations",
    "escape_time",
    "hsl_to_rgb",
    "iteration_color",
    "pan_viewport",
    "parse_hex_color",
    "pixel_axes",
    "pixel_scale",
    "pixel_to_complex",
    "render_frame",
    "zoom_viewport",
]
