"""Viewport state and the zoom/pan gesture math for the Mandelbrot explorer."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

MIN_ZOOM = 1e-5
MAX_ZOOM = 1e6
ZOOM_STEP = 1.1
PAN_SENSITIVITY = 0.5
VIEW_SPAN = 4.0


@dataclass(frozen=True)
class Viewport:
    """Visible region of the complex plane: a center point and a zoom factor."""

    center_x: float = -0.6
    center_y: float = 0.0
    zoom: float = 1.0


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def pixel_scale(width: int, zoom: float) -> float:
    """Complex-plane distance spanned by one pixel."""

    return VIEW_SPAN / (width * zoom)


def pixel_to_complex(px: float, py: float, width: int, height: int, viewport: Viewport) -> tuple[float, float]:
    scale = pixel_scale(width, viewport.zoom)
    offset_x = viewport.center_x - (width / 2) * scale
    offset_y = viewport.center_y - (height / 2) * scale
    return px * scale + offset_x, py * scale + offset_y


def pixel_axes(width: int, height: int, viewport: Viewport) -> tuple[np.ndarray, np.ndarray]:
    """Return the x value of every column and the y value of every row.

    Uses the same arithmetic as :func:`pixel_to_complex` so that the grid and
    the scalar mapping agree exactly.
    """

    scale = np.float64(pixel_scale(width, viewport.zoom))
    offset_x = np.float64(viewport.center_x - (width / 2) * float(scale))
    offset_y = np.float64(viewport.center_y - (height / 2) * float(scale))
    xs = np.arange(width, dtype=np.float64) * scale + offset_x
    ys = np.arange(height, dtype=np.float64) * scale + offset_y
    return xs, ys


def zoom_viewport(viewport: Viewport, width: int, height: int, px: float, py: float, zoom_in: bool) -> Viewport:
    """Zoom one wheel step toward (or away from) the pointer at ``(px, py)``.

    The new zoom is clamped first and the center offset is derived from the
    clamped value, so the complex point under the pointer stays on the same
    pixel and a saturated zoom leaves the center untouched.
    """

    old_zoom = viewport.zoom
    new_zoom = old_zoom * ZOOM_STEP if zoom_in else old_zoom / ZOOM_STEP
    new_zoom = clamp_zoom(new_zoom)

    mouse_x = px / width
    mouse_y = py / height
    scale_delta = pixel_scale(width, old_zoom) - pixel_scale(width, new_zoom)

    return replace(
        viewport,
        center_x=viewport.center_x + (mouse_x - 0.5) * width * scale_delta,
        center_y=viewport.center_y + (mouse_y - 0.5) * height * scale_delta,
        zoom=new_zoom,
    )


def pan_viewport(viewport: Viewport, width: int, dx_pixels: float, dy_pixels: float) -> Viewport:
    scale = pixel_scale(width, viewport.zoom)
    dx = dx_pixels * scale
    dy = dy_pixels * scale
    return replace(
        viewport,
        center_x=viewport.center_x - dx * PAN_SENSITIVITY,
        center_y=viewport.center_y - dy * PAN_SENSITIVITY,
    )


class ViewportController:
    """Own the current viewport and derive new ones from wheel and drag input.

    Every gesture replaces :attr:`viewport` with a new instance and returns it.
    Dragging follows ``Idle -> Panning -> Idle``: ``pointer_down`` anchors the
    drag, each ``pointer_move`` pans by the delta since the previous anchor,
    and ``pointer_up``/``pointer_leave`` end it. Moves while idle are ignored.
    """

    def __init__(self, width: int, height: int, viewport: Optional[Viewport] = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"canvas size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.viewport = viewport if viewport is not None else Viewport()
        if self.viewport.zoom != clamp_zoom(self.viewport.zoom):
            self.viewport = replace(self.viewport, zoom=clamp_zoom(self.viewport.zoom))
        self._anchor: Optional[tuple[float, float]] = None

    @property
    def is_panning(self) -> bool:
        return self._anchor is not None

    @property
    def cursor(self) -> str:
        return "grabbing" if self.is_panning else "grab"

    def zoom_at(self, px: float, py: float, zoom_in: bool) -> Viewport:
        self.viewport = zoom_viewport(self.viewport, self.width, self.height, px, py, zoom_in)
        return self.viewport

    def wheel(self, px: float, py: float, delta_y: float) -> Viewport:
        # Scrolling down (positive delta) zooms out.
        return self.zoom_at(px, py, zoom_in=not delta_y > 0)

    def pointer_down(self, px: float, py: float) -> None:
        self._anchor = (px, py)

    def pointer_move(self, px: float, py: float) -> Viewport:
        if self._anchor is None:
            return self.viewport
        anchor_x, anchor_y = self._anchor
        self.viewport = pan_viewport(self.viewport, self.width, px - anchor_x, py - anchor_y)
        self._anchor = (px, py)
        return self.viewport

    def pointer_up(self) -> None:
        self._anchor = None

    def pointer_leave(self) -> None:
        self.pointer_up()
