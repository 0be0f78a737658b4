import os
import sys
import time
import warnings

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


from argparse import ArgumentParser, ArgumentTypeError

from mandelzoom import (
    FrameWriter,
    PrecisionExhaustedError,
    VideoAssemblyError,
    ZoomSpec,
    assemble_gif,
    assemble_video,
    get_color_policy,
    open_viewer,
    parse_hex_color,
    run_zoom,
)
from mandelzoom import config
from mandelzoom.renderer import TENSORFLOW_VERSION, quiet_tensorflow

if _suppress_messages:
    quiet_tensorflow()


class ZoomArgumentParser(ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise ArgumentTypeError(f"{value!r} is not an integer") from None
    if number <= 0:
        raise ArgumentTypeError(f"{value!r} must be a positive integer")
    return number


def frame_index(value):
    try:
        number = int(value)
    except ValueError:
        raise ArgumentTypeError(f"{value!r} is not an integer") from None
    if number < 0:
        raise ArgumentTypeError(f"{value!r} must not be negative")
    return number


def zoom_factor(value):
    try:
        number = float(value)
    except ValueError:
        raise ArgumentTypeError(f"{value!r} is not a float") from None
    if not number > 1.0:
        raise ArgumentTypeError(f"{value!r} must be greater than 1")
    return number


def build_parser():
    parser = ZoomArgumentParser(
        prog="mandelzoom",
        description="Render a zoom into the Mandelbrot set and assemble the frames into a video.",
        epilog="Every frame must still resolve in float64. Deep zooms first warn once pixels stop "
               "mapping to distinct coordinates, then abort with an error at the first frame whose "
               "viewport bounds collapse; frames already written are kept.",
    )

    parser.add_argument('max_iterations', type=positive_int, metavar='MAX_ITERATIONS',
                        help='maximum number of iterations per pixel')
    parser.add_argument('zoom_start', type=frame_index, metavar='ZOOM_START',
                        help='index of the first frame to render')
    parser.add_argument('zoom_end', type=frame_index, metavar='ZOOM_END',
                        help='index one past the last frame to render')
    parser.add_argument('zoom_factor', type=zoom_factor, metavar='ZOOM_FACTOR',
                        help='factor by which the viewport shrinks each frame (> 1)')

    parser.add_argument('--width', type=positive_int, default=config.WIDTH,
                        help='image width in pixels')
    parser.add_argument('--height', type=positive_int, default=config.HEIGHT,
                        help='image height in pixels')
    parser.add_argument('--x-center', type=float, dest='x_center', default=config.ZOOM_CENTER.re,
                        help='real coordinate of the zoom center')
    parser.add_argument('--y-center', type=float, dest='y_center', default=config.ZOOM_CENTER.im,
                        help='imaginary coordinate of the zoom center')
    parser.add_argument('--half-extent', type=float, dest='half_extent', default=config.HALF_EXTENT,
                        help='half the width of the viewport at frame 0')
    parser.add_argument('--policy', choices=['exponential', 'recenter'], default=config.ZOOM_POLICY,
                        help='"exponential" derives every viewport from its frame index; '
                             '"recenter" shrinks the previous viewport about its midpoint.')

    parser.add_argument('--colors', type=str, default=config.COLOR_POLICY, metavar='NAME',
                        help='"linear", "sinebow", "duotone" or any matplotlib colormap name (sampled cyclically)')
    parser.add_argument('--inside-color', type=str, dest='inside_color', default=None,
                        help='Hex color (#RRGGBB) for points inside the Mandelbrot set.')
    parser.add_argument('--no-invert', dest='invert', action='store_false',
                        help='Skip the photometric inversion applied to every frame.')

    parser.add_argument('--frame-dir', type=str, dest='frame_dir', default=config.FRAME_DIR,
                        help='Directory in which to store the numbered frames.')
    parser.add_argument('--prefix', type=str, default=config.FRAME_PREFIX,
                        help='File name prefix of every frame.')
    parser.add_argument('--format', type=str, default=config.IMAGE_FORMAT,
                        help='Frame file format; any extension supported by Pillow. Default: "png".')
    parser.add_argument('--output', type=str, default=config.VIDEO_PATH,
                        help='Path of the assembled video.')
    parser.add_argument('--no-video', dest='video', action='store_false',
                        help='Only render frames; do not run the video encoder.')
    parser.add_argument('--gif', type=str, default=None, metavar='PATH',
                        help='Also write an animated GIF preview of the frames.')
    parser.add_argument('--open', dest='open_viewer', action='store_true',
                        help='Open the last frame in an image viewer when done.')
    parser.add_argument('--workers', type=positive_int, default=None,
                        help='Worker threads per frame (default: number of CPUs).')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics.')

    return parser


def _fail(message):
    print(f"error: {message}", file=sys.stderr)
    return 1


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = VERBOSE or bool(opt.verbose)

    if opt.zoom_end <= opt.zoom_start:
        parser.error(f"ZOOM_END ({opt.zoom_end}) must be greater than ZOOM_START ({opt.zoom_start}).")

    try:
        color_policy = get_color_policy(opt.colors)
    except ValueError as exc:
        parser.error(str(exc))

    inside_rgb = None
    if opt.inside_color is not None:
        try:
            inside_rgb = parse_hex_color(opt.inside_color)
        except ValueError as exc:
            parser.error(f"--inside-color: {exc}")

    try:
        spec = ZoomSpec(
            center=(opt.x_center, opt.y_center),
            zoom_factor=opt.zoom_factor,
            start=opt.zoom_start,
            end=opt.zoom_end,
            half_extent=opt.half_extent,
            policy=opt.policy,
        )
    except ValueError as exc:
        parser.error(str(exc))

    writer = FrameWriter(opt.frame_dir, prefix=opt.prefix, image_format=opt.format)
    frame_count = len(spec.frames)

    log("TensorFlow version: %s" % TENSORFLOW_VERSION)
    log("Color policy: %r, zoom policy: %s, center: (%.17g, %.17g)" % (color_policy, spec.policy, *spec.center))
    log("Writing frames to %s" % writer.pattern)

    print(f"Rendering {frame_count} frames at {opt.width}x{opt.height}, max_iterations={opt.max_iterations}")
    start_time = time.perf_counter()
    try:
        reports = run_zoom(
            spec,
            opt.width,
            opt.height,
            opt.max_iterations,
            color_policy,
            writer,
            invert_frames=opt.invert,
            workers=opt.workers,
            inside_color=inside_rgb,
        )
    except OSError as exc:
        return _fail(f"Failed to save image: {exc}")
    except PrecisionExhaustedError as exc:
        return _fail(f"{exc} (frames before it were saved)")
    except ValueError as exc:
        return _fail(str(exc))

    elapsed = time.perf_counter() - start_time
    print(f"{frame_count} frames completed in {elapsed:.2f} s")
    print(f"Average time per frame: {elapsed * 1000.0 / frame_count:.1f} ms.")

    if opt.gif:
        try:
            gif_path = assemble_gif(writer.written, opt.gif)
        except OSError as exc:
            return _fail(f"Failed to write GIF: {exc}")
        print(f"GIF saved to {gif_path}")

    if opt.video:
        print("About to render video")
        try:
            result = assemble_video(writer.pattern, opt.output, start_number=spec.start)
        except VideoAssemblyError as exc:
            return _fail(str(exc))
        log("Encoder command: %s" % " ".join(result.command))
        print(f"Output: {result.stdout}")
        if result.returncode != 0:
            tail = result.stderr.strip().splitlines()[-1:] or [""]
            print(f"warning: encoder exited with status {result.returncode}: {tail[0]}", file=sys.stderr)

    if opt.open_viewer and reports:
        try:
            open_viewer(reports[-1].path)
        except OSError as exc:
            return _fail(f"Failed to open viewer: {exc}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
