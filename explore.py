import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont
import imageio
from matplotlib import colormaps

from mandelbrot_explorer import ExplorerSession, Viewport, parse_hex_color
from mandelbrot_explorer.coloring import HSL_PALETTE

log("TensorFlow version: %s" % tf.__version__)

# Place the escape-time kernel on the first GPU when TensorFlow sees one.
gpus = tf.config.list_physical_devices('GPU')
if gpus:
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
        DEVICE = '/GPU:0'
        log("GPU found, using %s" % gpus[0].name)
    except RuntimeError as e:
        log(e)
        DEVICE = '/CPU:0'
else:
    DEVICE = '/CPU:0'
    log("No GPU found, using CPU")

from argparse import ArgumentParser, ArgumentTypeError


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Path | None
    image_path: Path | None
    frame_dir: Path | None
    image_format: str


def _parse_floats(value: str, count: int, usage: str) -> tuple[float, ...]:
    parts = [part.strip() for part in value.split(',')]
    if len(parts) != count:
        raise ArgumentTypeError(f"expected {usage}, got '{value}'")
    try:
        return tuple(float(part) for part in parts)
    except ValueError as exc:
        raise ArgumentTypeError(f"expected {usage}, got '{value}'") from exc


def zoom_in_gesture(value: str) -> tuple:
    return ("zoom-in", *_parse_floats(value, 2, "PX,PY"))


def zoom_out_gesture(value: str) -> tuple:
    return ("zoom-out", *_parse_floats(value, 2, "PX,PY"))


def drag_gesture(value: str) -> tuple:
    return ("drag", *_parse_floats(value, 4, "X0,Y0,X1,Y1"))


def build_parser():
    parser = ArgumentParser(description='Render the Mandelbrot set and replay zoom/pan gestures on it.')

    parser.add_argument('--width', type=int,
                        dest='width', help='canvas width in pixels',
                        metavar='WIDTH', default=800)

    parser.add_argument('--height', type=int,
                        dest='height', help='canvas height in pixels',
                        metavar='HEIGHT', default=600)

    parser.add_argument('--center-x', type=float,
                        dest='center_x', help='real part of the viewport center',
                        metavar='CENTER_X', default=-0.6)

    parser.add_argument('--center-y', type=float,
                        dest='center_y', help='imaginary part of the viewport center',
                        metavar='CENTER_Y', default=0.0)

    parser.add_argument('--zoom', type=float,
                        dest='zoom', help='zoom factor; the canvas width spans 4/ZOOM in the complex plane',
                        metavar='ZOOM', default=1.0)

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iteration budget per point (values below 1 become 1)',
                        metavar='MAX_ITERATIONS', default=100)

    parser.add_argument('--zoom-in', dest='gestures', action='append', type=zoom_in_gesture,
                        metavar='PX,PY', help='wheel one step in with the pointer at PX,PY. May be repeated.')

    parser.add_argument('--zoom-out', dest='gestures', action='append', type=zoom_out_gesture,
                        metavar='PX,PY', help='wheel one step out with the pointer at PX,PY. May be repeated.')

    parser.add_argument('--drag', dest='gestures', action='append', type=drag_gesture,
                        metavar='X0,Y0,X1,Y1', help='press at X0,Y0, move to X1,Y1 and release. May be repeated.')

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: image, gif, frames.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store one image per viewport state.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image-based outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='"hsl" for the hue sweep, or a matplotlib colormap name (e.g. "viridis")',
                        metavar='COLORMAP', default=HSL_PALETTE)

    parser.add_argument('--inside-color', type=str, default='#000000',
                        help='Hex color for points inside the Mandelbrot set.')

    parser.add_argument('--show-coordinates', dest='show_coordinates', action='store_true',
                        help='overlay the viewport center, zoom and iteration budget on each image')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    valid_modes = {"image", "gif", "frames"}
    modes = list(opt.modes or ["image"])

    normalized_modes: list[str] = []
    for mode in modes:
        if mode not in valid_modes:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(sorted(valid_modes))}.")
        if mode not in normalized_modes:
            normalized_modes.append(mode)

    modes_tuple = tuple(normalized_modes)
    modes_set = set(modes_tuple)

    frame_dir_value = getattr(opt, "frame_dir", None)
    frame_dir_path: Path | None = None
    if "frames" in modes_set:
        frame_dir_path = Path(frame_dir_value or "./frames").expanduser().resolve()
    elif frame_dir_value is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    image_format = (getattr(opt, "format", "png") or "png").lower().lstrip(".")
    if not image_format:
        image_format = "png"

    file_modes = [mode for mode in modes_tuple if mode in {"gif", "image"}]
    output_arg = getattr(opt, "output", None)
    gif_path: Path | None = None
    image_path: Path | None = None

    if not file_modes:
        if output_arg:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        mode = file_modes[0]
        if output_arg:
            output_path = Path(output_arg).expanduser()
            if output_path.exists() and output_path.is_dir():
                parser.error("--output must point to a file, not a directory, when a single file mode is active.")
            if mode == "gif":
                if output_path.suffix:
                    if output_path.suffix.lower() != ".gif":
                        parser.error("GIF outputs must end with .gif.")
                else:
                    output_path = output_path.with_suffix(".gif")
                gif_path = output_path.resolve()
            else:
                suffix = output_path.suffix
                expected_suffix = f".{image_format}"
                if suffix:
                    if suffix.lower() != expected_suffix.lower():
                        parser.error(f"--output extension {suffix} does not match --format {image_format}.")
                else:
                    output_path = output_path.with_suffix(expected_suffix)
                image_path = output_path.resolve()
        elif mode == "gif":
            gif_path = Path("explore.gif").resolve()
        else:
            image_path = Path(f"mandelbrot.{image_format}").resolve()
    else:
        base_dir = Path(output_arg).expanduser() if output_arg else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "explore.gif").resolve()
        image_path = (base_dir / f"mandelbrot.{image_format}").resolve()

    return OutputConfig(
        modes=modes_tuple,
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir_path,
        image_format=image_format,
    )


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if pil_format == "JPEG":
        image = image.convert("RGB")
    image.save(str(output_path), format=pil_format)


def write_frame_sequence(
    image: PIL.Image.Image,
    frame_dir: Path,
    index: int,
    digits: int,
    image_format: str,
) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    frame_path = frame_dir / f"frame{index:0{digits}d}.{image_format}"
    write_single_image(image, frame_path, image_format)
    return frame_path


_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
)


def _load_annotation_font(image: PIL.Image.Image) -> PIL.ImageFont.ImageFont:
    target_size = max(12, int(round(max(min(image.size), 1) * 0.028)))
    for path in _FONT_CANDIDATES:
        font_path = Path(path)
        if font_path.exists():
            try:
                return PIL.ImageFont.truetype(str(font_path), target_size)
            except OSError:
                continue
    return PIL.ImageFont.load_default()


def annotate_viewport(image: PIL.Image.Image, viewport: Viewport, max_iterations: int) -> PIL.Image.Image:
    """Overlay the viewport center, zoom and iteration budget on ``image``."""

    if image.mode != "RGBA":
        image = image.convert("RGBA")

    draw = PIL.ImageDraw.Draw(image, "RGBA")
    font = _load_annotation_font(image)
    text = "\n".join([
        f"Center: ({viewport.center_x:.10g}, {viewport.center_y:.10g})",
        f"Zoom: {viewport.zoom:.6g}",
        f"Iterations: {max_iterations}",
    ])

    left, top, right, bottom = draw.multiline_textbbox((0, 0), text, font=font, spacing=4)
    padding = 8
    box = [(8, 8), (8 + right - left + padding * 2, 8 + bottom - top + padding * 2)]
    draw.rectangle(box, fill=(10, 12, 24, 170), outline=(255, 255, 255, 45))
    position = (8 + padding - left, 8 + padding - top)
    draw.multiline_text((position[0] + 1, position[1] + 1), text, font=font, fill=(0, 0, 0, 170), spacing=4)
    draw.multiline_text(position, text, font=font, fill=(240, 244, 255, 255), spacing=4)
    return image


@dataclass
class OutputWriters:
    config: OutputConfig
    frame_digits: int

    def __post_init__(self) -> None:
        self._gif_writer = None
        if "gif" in self.config.modes and self.config.gif_path is not None:
            self.config.gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(str(self.config.gif_path), mode='I', duration=0.1, loop=0)

    def write_state(self, index: int, image: PIL.Image.Image) -> None:
        if self._gif_writer is not None:
            self._gif_writer.append_data(np.asarray(image))
        if "frames" in self.config.modes and self.config.frame_dir is not None:
            write_frame_sequence(image, self.config.frame_dir, index, self.frame_digits, self.config.image_format)

    def finalize(self, final_image: PIL.Image.Image | None) -> None:
        if "image" in self.config.modes and final_image is not None and self.config.image_path is not None:
            write_single_image(final_image, self.config.image_path, self.config.image_format)

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None


def apply_gesture(session: ExplorerSession, gesture: tuple) -> Any:
    """Replay one parsed gesture on ``session`` and return the new frame."""

    kind = gesture[0]
    if kind == "zoom-in":
        return session.zoom_at(gesture[1], gesture[2], zoom_in=True)
    if kind == "zoom-out":
        return session.zoom_at(gesture[1], gesture[2], zoom_in=False)
    if kind == "drag":
        _, x0, y0, x1, y1 = gesture
        session.pointer_down(x0, y0)
        frame = session.pointer_move(x1, y1)
        session.pointer_up()
        return frame
    raise ValueError(f"unknown gesture '{kind}'")


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    output_config = resolve_output_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    if opt.width <= 0 or opt.height <= 0:
        parser.error(f"--width and --height must be positive, got {opt.width}x{opt.height}.")

    max_iterations = opt.max_iterations
    if max_iterations < 1:
        log(f"max_iterations {max_iterations} is below 1, using 1")
        max_iterations = 1

    if opt.colormap != HSL_PALETTE and opt.colormap not in colormaps:
        parser.error(f"Unknown colormap '{opt.colormap}'.")

    try:
        inside_color = parse_hex_color(opt.inside_color)
    except ValueError:
        print(f"Invalid inside_color '{opt.inside_color}', defaulting to black.")
        inside_color = (0, 0, 0)

    session = ExplorerSession(
        opt.width,
        opt.height,
        max_iterations,
        Viewport(center_x=opt.center_x, center_y=opt.center_y, zoom=opt.zoom),
        colormap=opt.colormap,
        inside_color=inside_color,
        device=DEVICE,
    )

    gestures = opt.gestures or []
    total_states = len(gestures) + 1
    writers = OutputWriters(output_config, frame_digits=max(3, len(str(total_states - 1))))

    def to_image(frame) -> PIL.Image.Image:
        image = PIL.Image.fromarray(frame.pixels)
        if opt.show_coordinates:
            image = annotate_viewport(image, frame.viewport, frame.config.max_iterations)
        return image

    final_image = None
    try:
        frame = session.frame
        for i in range(total_states):
            print("frame {0} out of {1}".format(i, total_states), end='\r')
            if i > 0:
                frame = apply_gesture(session, gestures[i - 1])
                viewport = session.viewport
                log(f"Zoom: {viewport.zoom}, CenterX: {viewport.center_x}, CenterY: {viewport.center_y}")
            final_image = to_image(frame)
            writers.write_state(i, final_image)
    finally:
        writers.close()

    writers.finalize(final_image)

    viewport = session.viewport
    print(f"center=({viewport.center_x!r}, {viewport.center_y!r}) zoom={viewport.zoom!r}")
    return viewport


if __name__ == '__main__':
    main()
