"""Default configuration used when a value is not given on the command line."""

from __future__ import annotations

from .viewport import ComplexPoint

WIDTH = 1200
HEIGHT = 1200
MAX_ITERATIONS = 300

# Seahorse-valley tip near the real axis. The decimal expansions are longer
# than float64 can hold and are rounded to the nearest double.
ZOOM_CENTER_RE = "-1.74999841099374081749002483162428393452822172335808534616943930976364725846655540417646727085571962736578151132907961927190726789896685696750162524460775546580822744596887978637416593715319388030232414667046419863755743802804780843375"
ZOOM_CENTER_IM = "-0.00000000000000165712469295418692325810961981279189026504290127375760405334498110850956047368308707050735960323397389547038231194872482690340369921750514146922400928554011996123112902000856666847088788158433995358406779259404221904755"
ZOOM_CENTER = ComplexPoint(float(ZOOM_CENTER_RE), float(ZOOM_CENTER_IM))

HALF_EXTENT = 2.0
ZOOM_FACTOR = 1.02
ZOOM_START = 0
ZOOM_END = 100
ZOOM_POLICY = "exponential"

COLOR_POLICY = "sinebow"
INVERT = True

FRAME_DIR = "frames"
FRAME_PREFIX = "mandelbrot_set_"
FRAME_DIGITS = 4
IMAGE_FORMAT = "png"

VIDEO_PATH = "mandelbrot_zoom.mp4"
VIDEO_EXECUTABLE = "ffmpeg"
FRAMERATE = 30
VIDEO_CODEC = "libx264"
PIXEL_FORMAT = "yuv420p"
