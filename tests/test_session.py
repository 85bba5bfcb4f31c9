import numpy as np
import pytest

from mandelbrot_explorer import ExplorerSession, MAX_ZOOM, RenderResult, Viewport, pixel_to_complex


@pytest.fixture
def calls():
    return []


@pytest.fixture
def fake_renderer(calls):
    def render(config, viewport, *, palette=None, device=None):
        calls.append((config, viewport, palette))
        pixels = np.zeros((config.height, config.width, 4), dtype=np.uint8)
        iterations = np.zeros((config.height, config.width), dtype=np.int32)
        return RenderResult(pixels=pixels, iterations=iterations, config=config, viewport=viewport)

    return render


@pytest.fixture
def session(fake_renderer):
    return ExplorerSession(80, 60, 100, renderer=fake_renderer)


def test_initial_render(session, calls):
    assert session.render_count == 1
    assert len(calls) == 1
    config, viewport, palette = calls[0]
    assert (config.width, config.height, config.max_iterations) == (80, 60, 100)
    assert viewport == Viewport()
    assert palette.shape == (101, 3)
    assert session.frame.viewport == viewport


def test_wheel_renders_new_frame(session, calls):
    frame = session.wheel(20, 15, delta_y=-1)
    assert session.render_count == 2
    assert frame is session.frame
    assert frame.viewport == session.viewport
    assert session.viewport.zoom == pytest.approx(1.1)


def test_zoom_keeps_pointer_anchor(session):
    before = pixel_to_complex(70, 5, 80, 60, session.viewport)
    session.zoom_at(70, 5, zoom_in=True)
    after = pixel_to_complex(70, 5, 80, 60, session.viewport)
    assert after[0] == pytest.approx(before[0], abs=1e-12)
    assert after[1] == pytest.approx(before[1], abs=1e-12)


def test_saturated_zoom_skips_render(fake_renderer):
    session = ExplorerSession(80, 60, 100, Viewport(zoom=MAX_ZOOM), renderer=fake_renderer)
    session.zoom_at(10, 10, zoom_in=True)
    assert session.render_count == 1


def test_idle_moves_do_not_render(session):
    session.pointer_move(30, 30)
    session.pointer_move(40, 50)
    assert session.render_count == 1


def test_drag_renders_each_move(session):
    session.pointer_down(10, 10)
    assert session.cursor == "grabbing"
    session.pointer_move(20, 10)
    session.pointer_move(30, 12)
    session.pointer_leave()
    assert session.cursor == "grab"
    assert session.render_count == 3
    session.pointer_move(50, 50)
    assert session.render_count == 3


def test_drag_round_trip(session):
    start = session.viewport
    session.pointer_down(10, 10)
    session.pointer_move(55, 42)
    session.pointer_move(10, 10)
    session.pointer_up()
    assert session.viewport.center_x == pytest.approx(start.center_x, abs=1e-12)
    assert session.viewport.center_y == pytest.approx(start.center_y, abs=1e-12)


@pytest.mark.parametrize("requested, expected", [(0, 1), (-20, 1), (250, 250)])
def test_max_iterations_are_coerced(session, calls, requested, expected):
    session.set_max_iterations(requested)
    assert session.max_iterations == expected
    assert session.render_count == 2
    config, _, palette = calls[-1]
    assert config.max_iterations == expected
    assert palette.shape == (expected + 1, 3)


def test_unchanged_budget_skips_render(session):
    session.set_max_iterations(100)
    assert session.render_count == 1


def test_rejects_empty_canvas(fake_renderer):
    with pytest.raises(ValueError):
        ExplorerSession(0, 60, renderer=fake_renderer)


def test_renders_with_tensorflow_engine():
    session = ExplorerSession(12, 9, 25, colormap="magma", inside_color=(1, 2, 3))
    frame = session.frame
    assert frame.pixels.shape == (9, 12, 4)
    inside = frame.iterations == 25
    assert inside.any()
    assert np.all(frame.pixels[inside][:, :3] == np.array([1, 2, 3], dtype=np.uint8))
    session.zoom_at(6, 4, zoom_in=True)
    assert session.frame.viewport.zoom == pytest.approx(1.1)
