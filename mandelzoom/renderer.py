"""Escape-time evaluation and frame rendering for the Mandelbrot set."""

from __future__ import annotations

import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Union

import numpy as np
import tensorflow as tf

from .colors import ColorPolicy, get_color_policy
from .viewport import ComplexPoint, Viewport, pixel_grid

HORIZON = 4.0
DEVICE = "/CPU:0"

# Chunks handed to the worker pool per worker.
CHUNKS_PER_WORKER = 4

PointLike = Union[ComplexPoint, complex, tuple]

TENSORFLOW_VERSION = tf.__version__


def quiet_tensorflow() -> None:
    """Only let TensorFlow's Python logger report errors."""

    tf.get_logger().setLevel("ERROR")


def _check_positive(name: str, value: int) -> int:
    if isinstance(value, bool) or int(value) != value or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _as_point(c: PointLike) -> tuple[float, float]:
    if isinstance(c, complex):
        return float(c.real), float(c.imag)
    re, im = c
    return float(re), float(im)


def escape_time(c: PointLike, max_iter: int) -> float:
    """Return the smoothed escape time of ``c``.

    Starting from ``z = 0`` the recurrence ``z <- z**2 + c`` is applied and
    ``|z|**2 > 4`` tested after every step. Escaping at zero-based step ``i``
    yields ``i - log2(log2(|z|**2)) / 2``; points that never escape yield
    ``max_iter``.
    """

    max_iter = _check_positive("max_iter", max_iter)
    cx, cy = _as_point(c)
    x = 0.0
    y = 0.0
    for i in range(max_iter):
        x, y = x * x - y * y + cx, 2.0 * x * y + cy
        magnitude = x * x + y * y
        if magnitude > HORIZON:
            return i - math.log2(math.log2(magnitude)) / 2.0
    return float(max_iter)


@tf.function
def _escape_step(
    i: tf.Tensor,
    zx: tf.Tensor,
    zy: tf.Tensor,
    cx: tf.Tensor,
    cy: tf.Tensor,
    escaped_at: tf.Tensor,
    active: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance the points that have not escaped by one iteration."""

    nx = zx * zx - zy * zy + cx
    ny = 2.0 * zx * zy + cy
    zx = tf.where(active, nx, zx)
    zy = tf.where(active, ny, zy)
    magnitude = zx * zx + zy * zy
    bailout = tf.logical_and(active, magnitude > tf.constant(HORIZON, dtype=magnitude.dtype))
    escaped_at = tf.where(bailout, tf.fill(tf.shape(escaped_at), i), escaped_at)
    active = tf.logical_and(active, tf.logical_not(bailout))
    return zx, zy, escaped_at, active


@tf.function(
    input_signature=[
        tf.TensorSpec(shape=[None], dtype=tf.float64),
        tf.TensorSpec(shape=[None], dtype=tf.float64),
        tf.TensorSpec(shape=[], dtype=tf.int32),
    ]
)
def _escape_kernel(cx: tf.Tensor, cy: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate a batch of points with a TensorFlow while loop."""

    i = tf.constant(0, dtype=tf.int32)
    zx = tf.zeros_like(cx)
    zy = tf.zeros_like(cy)
    escaped_at = tf.fill(tf.shape(cx), tf.constant(-1, dtype=tf.int32))
    active = tf.ones_like(cx, dtype=tf.bool)

    def cond(i, zx, zy, escaped_at, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, zx, zy, escaped_at, active):
        zx, zy, escaped_at, active = _escape_step(i, zx, zy, cx, cy, escaped_at, active)
        return i + 1, zx, zy, escaped_at, active

    _, zx, zy, escaped_at, _ = tf.while_loop(cond, body, (i, zx, zy, escaped_at, active))

    escaped = escaped_at >= 0
    magnitude = zx * zx + zy * zy
    # Interior points keep a small |z|; feed the logs a harmless value instead.
    magnitude = tf.where(escaped, magnitude, tf.fill(tf.shape(magnitude), tf.constant(16.0, dtype=tf.float64)))
    log2 = tf.math.log(tf.constant(2.0, dtype=tf.float64))
    log_log = tf.math.log(tf.math.log(magnitude) / log2) / log2
    smooth = tf.cast(escaped_at, tf.float64) - log_log / 2.0
    return tf.where(escaped, smooth, tf.fill(tf.shape(smooth), tf.cast(max_iterations, tf.float64)))


def escape_times(cx: np.ndarray, cy: np.ndarray, max_iter: int, *, device: Optional[str] = None) -> np.ndarray:
    """Batch version of :func:`escape_time` for 1-D coordinate arrays."""

    max_iter = _check_positive("max_iter", max_iter)
    cx = np.ascontiguousarray(cx, dtype=np.float64).reshape(-1)
    cy = np.ascontiguousarray(cy, dtype=np.float64).reshape(-1)
    if cx.shape != cy.shape:
        raise ValueError(f"coordinate arrays differ in size: {cx.shape} != {cy.shape}")

    with tf.device(device if device is not None else DEVICE):
        result = _escape_kernel(
            tf.convert_to_tensor(cx, dtype=tf.float64),
            tf.convert_to_tensor(cy, dtype=tf.float64),
            tf.constant(max_iter, dtype=tf.int32),
        )
    return result.numpy()


def _partition(width: int, height: int, workers: int) -> list[tuple[int, int]]:
    """Split the flat pixel index range into row-aligned ``[start, stop)`` chunks."""

    rows_per_chunk = max(1, math.ceil(height / (workers * CHUNKS_PER_WORKER)))
    step = rows_per_chunk * width
    total = width * height
    return [(start, min(start + step, total)) for start in range(0, total, step)]


def render_frame(
    width: int,
    height: int,
    max_iter: int,
    viewport: Viewport,
    color_policy: Union[ColorPolicy, str],
    *,
    workers: Optional[int] = None,
    inside_color: Optional[tuple[int, int, int]] = None,
) -> np.ndarray:
    """Render one frame into a ``(height, width, 3)`` ``uint8`` buffer.

    Pixels are evaluated in parallel: the flat index range is split into
    chunks and every worker writes only the bytes of its own chunk.
    """

    width = _check_positive("width", width)
    height = _check_positive("height", height)
    max_iter = _check_positive("max_iter", max_iter)
    if isinstance(color_policy, str):
        color_policy = get_color_policy(color_policy)
    workers = max(1, workers if workers is not None else (os.cpu_count() or 1))

    buffer = np.zeros((height, width, 3), dtype=np.uint8)
    flat = buffer.reshape(-1)

    def render_chunk(bounds: tuple[int, int]) -> None:
        start, stop = bounds
        cx, cy = pixel_grid(np.arange(start, stop, dtype=np.int64), width, height, viewport)
        smooth = escape_times(cx, cy, max_iter)
        colors = color_policy.colorize(smooth / max_iter)
        if inside_color is not None:
            colors[smooth >= max_iter] = inside_color
        flat[start * 3:stop * 3] = colors.reshape(-1)

    chunks = _partition(width, height, workers)
    if workers == 1 or len(chunks) == 1:
        for chunk in chunks:
            render_chunk(chunk)
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # Consuming the results re-raises the first worker exception.
            for _ in pool.map(render_chunk, chunks):
                pass

    return buffer


def invert(buffer: np.ndarray) -> np.ndarray:
    """Photometric inversion: every channel byte ``b`` becomes ``255 - b``."""

    return np.uint8(255) - np.asarray(buffer, dtype=np.uint8)
