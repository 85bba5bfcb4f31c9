"""Rendering primitives for Mandelbrot frames."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .coloring import build_palette
from .viewport import Viewport, pixel_axes

ESCAPE_RADIUS_SQUARED = 4.0


@dataclass(frozen=True)
class RenderConfig:
    """Canvas size and iteration budget for a single render."""

    width: int
    height: int
    max_iterations: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"canvas size must be positive, got {self.width}x{self.height}")
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")

    @classmethod
    def coerced(cls, width: int, height: int, max_iterations: int) -> "RenderConfig":
        return cls(width=int(width), height=int(height), max_iterations=max(int(max_iterations), 1))


@dataclass(frozen=True)
class RenderResult:
    """A rendered frame: RGBA pixels plus the escape counts behind them."""

    pixels: np.ndarray
    iterations: np.ndarray
    config: RenderConfig
    viewport: Viewport

    def rgba_bytes(self) -> bytes:
        return self.pixels.tobytes()


def escape_time(x: float, y: float, max_iterations: int) -> int:
    """Count iterations of ``z <- z*z + c`` from ``z = 0`` until ``|z|^2 > 4``.

    Returns ``max_iterations`` for points that never escape. A NaN magnitude
    fails the bound check and counts as escaped.
    """

    zx = 0.0
    zy = 0.0
    iteration = 0
    while zx * zx + zy * zy <= ESCAPE_RADIUS_SQUARED and iteration < max_iterations:
        zx, zy = zx * zx - zy * zy + x, 2.0 * zx * zy + y
        iteration += 1
    return iteration


@tf.function
def _escape_step(zx: tf.Tensor, zy: tf.Tensor, cx: tf.Tensor, cy: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single iteration for points that have not escaped."""

    zx_new = zx * zx - zy * zy + cx
    zy_new = 2.0 * zx * zy + cy
    zx = tf.where(active, zx_new, zx)
    zy = tf.where(active, zy_new, zy)
    ns = ns + tf.cast(active, tf.int32)
    bound = tf.constant(ESCAPE_RADIUS_SQUARED, dtype=zx.dtype)
    # NaN compares false, so it drops out of the active set.
    active = tf.logical_and(active, tf.less_equal(zx * zx + zy * zy, bound))
    return zx, zy, ns, active


@tf.function
def _escape_run(cx: tf.Tensor, cy: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate every point with a TensorFlow while loop and return escape counts."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    zx = tf.zeros_like(cx)
    zy = tf.zeros_like(cy)
    ns = tf.zeros(tf.shape(cx), dtype=tf.int32)
    active = tf.ones(tf.shape(cx), dtype=tf.bool)

    def cond(i, zx, zy, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, zx, zy, ns, active):
        zx, zy, ns, active = _escape_step(zx, zy, cx, cy, ns, active)
        return i + 1, zx, zy, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (i, zx, zy, ns, active))
    return ns


def compute_iterations(config: RenderConfig, viewport: Viewport, *, device: Optional[str] = None) -> np.ndarray:
    """Escape counts for every pixel as a ``(height, width)`` int32 array."""

    xs, ys = pixel_axes(config.width, config.height, viewport)
    grid_x, grid_y = np.meshgrid(xs, ys)

    with tf.device(device if device is not None else "/CPU:0"):
        cx = tf.convert_to_tensor(grid_x, dtype=tf.float64)
        cy = tf.convert_to_tensor(grid_y, dtype=tf.float64)
        ns = _escape_run(cx, cy, tf.constant(config.max_iterations, dtype=tf.int32))

    return ns.numpy().astype(np.int32, copy=False)


def render_frame(
    config: RenderConfig,
    viewport: Viewport,
    *,
    palette: Optional[np.ndarray] = None,
    device: Optional[str] = None,
) -> RenderResult:
    """Render the viewport into a fresh row-major RGBA buffer.

    ``palette`` is a ``(max_iterations + 1, 3)`` lookup table as produced by
    :func:`build_palette`; the HSL palette is used when omitted. Alpha is
    always opaque.
    """

    if palette is None:
        palette = build_palette(config.max_iterations)
    elif palette.shape != (config.max_iterations + 1, 3):
        raise ValueError(
            f"palette must have shape ({config.max_iterations + 1}, 3), got {palette.shape}"
        )

    iterations = compute_iterations(config, viewport, device=device)

    pixels = np.empty((config.height, config.width, 4), dtype=np.uint8)
    pixels[..., :3] = palette[iterations]
    pixels[..., 3] = 255

    return RenderResult(pixels=pixels, iterations=iterations, config=config, viewport=viewport)
