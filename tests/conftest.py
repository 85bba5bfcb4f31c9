import os
import sys

import pytest

# Make the root-level `explore` script and the package importable without an install.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")

from mandelbrot_explorer import RenderConfig, Viewport, ViewportController  # noqa: E402


@pytest.fixture
def viewport():
    return Viewport(center_x=-0.6, center_y=0.0, zoom=1.0)


@pytest.fixture
def controller(viewport):
    return ViewportController(800, 600, viewport)


@pytest.fixture
def small_config():
    return RenderConfig(width=16, height=12, max_iterations=50)
