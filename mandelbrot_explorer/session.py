"""Interactive exploration state: a viewport controller bound to a renderer."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from .coloring import HSL_PALETTE, INSIDE_COLOR, build_palette
from .renderer import RenderConfig, RenderResult, render_frame
from .viewport import Viewport, ViewportController

Renderer = Callable[..., RenderResult]


class ExplorerSession:
    """Keep the current frame in sync with the viewport and iteration budget.

    Each change of viewport or iteration budget renders a new frame
    synchronously, so :attr:`frame` always reflects the latest state.
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_iterations: int = 100,
        viewport: Optional[Viewport] = None,
        *,
        colormap: str = HSL_PALETTE,
        inside_color: tuple[int, int, int] = INSIDE_COLOR,
        renderer: Renderer = render_frame,
        device: Optional[str] = None,
    ):
        self.controller = ViewportController(width, height, viewport)
        self.colormap = colormap
        self.inside_color = inside_color
        self.device = device
        self._renderer = renderer
        self.config = RenderConfig.coerced(width, height, max_iterations)
        self._palette = self._build_palette()
        self.render_count = 0
        self.frame = self._render()

    @property
    def viewport(self) -> Viewport:
        return self.controller.viewport

    @property
    def max_iterations(self) -> int:
        return self.config.max_iterations

    @property
    def cursor(self) -> str:
        return self.controller.cursor

    def _build_palette(self) -> np.ndarray:
        return build_palette(self.config.max_iterations, self.colormap, self.inside_color)

    def _render(self) -> RenderResult:
        self.render_count += 1
        self.frame = self._renderer(self.config, self.viewport, palette=self._palette, device=self.device)
        return self.frame

    def _render_if_changed(self, previous: Viewport) -> RenderResult:
        if self.viewport != previous:
            return self._render()
        return self.frame

    def set_max_iterations(self, max_iterations: int) -> RenderResult:
        config = RenderConfig.coerced(self.config.width, self.config.height, max_iterations)
        if config == self.config:
            return self.frame
        self.config = config
        self._palette = self._build_palette()
        return self._render()

    def wheel(self, px: float, py: float, delta_y: float) -> RenderResult:
        previous = self.viewport
        self.controller.wheel(px, py, delta_y)
        return self._render_if_changed(previous)

    def zoom_at(self, px: float, py: float, zoom_in: bool) -> RenderResult:
        previous = self.viewport
        self.controller.zoom_at(px, py, zoom_in)
        return self._render_if_changed(previous)

    def pointer_down(self, px: float, py: float) -> None:
        self.controller.pointer_down(px, py)

    def pointer_move(self, px: float, py: float) -> RenderResult:
        previous = self.viewport
        self.controller.pointer_move(px, py)
        return self._render_if_changed(previous)

    def pointer_up(self) -> None:
        self.controller.pointer_up()

    def pointer_leave(self) -> None:
        self.controller.pointer_leave()
