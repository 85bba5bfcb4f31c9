import pytest
import PIL.Image

import explore
from mandelbrot_explorer import Viewport, ViewportController

SMALL = ["--width", "40", "--height", "30", "--max-iterations", "20"]


def _resolve(args):
    parser = explore.build_parser()
    return explore.resolve_output_config(parser.parse_args(args), parser)


def test_gestures_keep_command_line_order():
    opt = explore.build_parser().parse_args(
        ["--zoom-in", "10,20", "--drag", "1,2,3,4", "--zoom-out", "5.5,6"]
    )
    assert opt.gestures == [
        ("zoom-in", 10.0, 20.0),
        ("drag", 1.0, 2.0, 3.0, 4.0),
        ("zoom-out", 5.5, 6.0),
    ]


@pytest.mark.parametrize("args", [["--zoom-in", "10"], ["--drag", "1,2,3"], ["--zoom-out", "a,b"]])
def test_malformed_gestures_are_rejected(args):
    with pytest.raises(SystemExit):
        explore.build_parser().parse_args(args)


def test_default_output_is_single_image(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = _resolve([])
    assert config.modes == ("image",)
    assert config.image_path == (tmp_path / "mandelbrot.png").resolve()
    assert config.gif_path is None
    assert config.frame_dir is None


def test_output_suffix_is_added(tmp_path):
    config = _resolve(["--output", str(tmp_path / "view"), "--format", "jpg"])
    assert config.image_path == (tmp_path / "view.jpg").resolve()


@pytest.mark.parametrize(
    "args",
    [
        ["--mode", "movie"],
        ["--frame-dir", "somewhere"],
        ["--mode", "gif", "--output", "out.png"],
        ["--output", "out.jpg", "--format", "png"],
        ["--mode", "frames", "--output", "out.png"],
    ],
)
def test_invalid_output_options(args):
    with pytest.raises(SystemExit):
        _resolve(args)


@pytest.mark.parametrize("size", [["--width", "0"], ["--height", "-4"]])
def test_empty_canvas_is_rejected(tmp_path, size):
    with pytest.raises(SystemExit):
        explore.main([*size, "--output", str(tmp_path / "out.png")])


def test_unknown_colormap_is_rejected(tmp_path):
    with pytest.raises(SystemExit):
        explore.main([*SMALL, "--colormap", "not-a-colormap", "--output", str(tmp_path / "out.png")])


def test_renders_image(tmp_path):
    output = tmp_path / "render.png"
    viewport = explore.main([*SMALL, "--output", str(output)])
    assert viewport == Viewport(center_x=-0.6, center_y=0.0, zoom=1.0)
    with PIL.Image.open(output) as image:
        assert image.size == (40, 30)
        assert image.getpixel((20, 15))[:3] == (0, 0, 0)


def test_replayed_gestures_match_controller(tmp_path):
    viewport = explore.main([
        *SMALL,
        "--zoom-in", "30,10",
        "--zoom-in", "30,10",
        "--drag", "5,5,15,9",
        "--zoom-out", "2,28",
        "--output", str(tmp_path / "out.png"),
    ])

    controller = ViewportController(40, 30)
    controller.zoom_at(30, 10, zoom_in=True)
    controller.zoom_at(30, 10, zoom_in=True)
    controller.pointer_down(5, 5)
    controller.pointer_move(15, 9)
    controller.pointer_up()
    controller.zoom_at(2, 28, zoom_in=False)
    assert viewport == controller.viewport


def test_frames_mode_writes_one_image_per_state(tmp_path):
    frame_dir = tmp_path / "frames"
    explore.main([
        *SMALL,
        "--mode", "frames",
        "--frame-dir", str(frame_dir),
        "--zoom-in", "20,15",
        "--drag", "0,0,8,8",
    ])
    assert sorted(p.name for p in frame_dir.iterdir()) == ["frame000.png", "frame001.png", "frame002.png"]


def test_gif_and_image_modes(tmp_path):
    explore.main([
        *SMALL,
        "--mode", "gif",
        "--mode", "image",
        "--output", str(tmp_path),
        "--zoom-in", "20,15",
        "--show-coordinates",
        "--colormap", "viridis",
        "--inside-color", "#102030",
    ])
    assert (tmp_path / "explore.gif").exists()
    with PIL.Image.open(tmp_path / "mandelbrot.png") as image:
        assert image.size == (40, 30)


def test_invalid_inside_color_falls_back_to_black(tmp_path, capsys):
    output = tmp_path / "out.png"
    explore.main([*SMALL, "--inside-color", "purple", "--output", str(output)])
    assert "defaulting to black" in capsys.readouterr().out
    with PIL.Image.open(output) as image:
        assert image.getpixel((20, 15))[:3] == (0, 0, 0)


def test_non_positive_budget_is_coerced(tmp_path):
    output = tmp_path / "out.png"
    explore.main(["--width", "8", "--height", "6", "--max-iterations", "0", "--output", str(output)])
    assert output.exists()
