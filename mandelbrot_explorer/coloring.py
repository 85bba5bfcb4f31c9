"""Color mapping from escape counts to RGB."""

from __future__ import annotations

import math

import numpy as np
from matplotlib import colormaps

HSL_PALETTE = "hsl"
INSIDE_COLOR = (0, 0, 0)


def _channel(value: float) -> int:
    # Half-up rounding into [0, 255].
    return int(min(255, max(0, math.floor(value * 255 + 0.5))))


def _hue_to_channel(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def hsl_to_rgb(h: float, s: float, l: float) -> tuple[int, int, int]:
    """Convert hue, saturation and lightness in ``[0, 1]`` to 8-bit RGB."""

    if s == 0:
        r = g = b = l
    else:
        q = l * (1 + s) if l < 0.5 else l + s - l * s
        p = 2 * l - q
        r = _hue_to_channel(p, q, h + 1 / 3)
        g = _hue_to_channel(p, q, h)
        b = _hue_to_channel(p, q, h - 1 / 3)
    return _channel(r), _channel(g), _channel(b)


def iteration_color(iteration: int, max_iterations: int) -> tuple[int, int, int]:
    if iteration == max_iterations:
        return INSIDE_COLOR
    return hsl_to_rgb(iteration / max_iterations, 1.0, 0.5)


def parse_hex_color(hex_color: str) -> tuple[int, int, int]:
    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6:
        raise ValueError('inside_color must be in the form #RRGGBB.')
    try:
        return tuple(int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        raise ValueError('inside_color must contain only hexadecimal digits.') from exc


def build_palette(
    max_iterations: int,
    colormap: str = HSL_PALETTE,
    inside_color: tuple[int, int, int] = INSIDE_COLOR,
) -> np.ndarray:
    """Build a ``(max_iterations + 1, 3)`` lookup table indexed by escape count.

    ``"hsl"`` sweeps the hue wheel with full saturation; any other name is
    looked up as a matplotlib colormap. The last entry, the count of points
    that never escaped, is always ``inside_color``.
    """

    if max_iterations < 1:
        raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")

    if colormap == HSL_PALETTE:
        palette = np.array(
            [iteration_color(i, max_iterations) for i in range(max_iterations + 1)],
            dtype=np.uint8,
        )
    else:
        cmap = colormaps[colormap]
        positions = np.arange(max_iterations + 1, dtype=np.float64) / np.float64(max_iterations)
        rgba = np.asarray(cmap(positions), dtype=np.float64)
        palette = np.uint8(np.clip(np.floor(rgba[:, :3] * 255 + 0.5), 0, 255))

    palette[max_iterations] = inside_color
    return palette
