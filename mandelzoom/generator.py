"""Utilities for managing Mandelbrot zoom sequences."""

from __future__ import annotations

import time
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

import numpy as np

from .colors import ColorPolicy, get_color_policy
from .config import FRAME_DIGITS
from .renderer import invert, render_frame
from .viewport import ComplexPoint, Viewport

POLICIES = ("exponential", "recenter")

FrameSink = Callable[[str, np.ndarray], Optional[Path]]


class PrecisionWarning(UserWarning):
    """Neighbouring pixels no longer map to distinct float64 coordinates."""


class PrecisionExhaustedError(ValueError):
    """A frame's viewport bounds collapse to the same float64 value."""

    def __init__(self, index: int):
        super().__init__(
            f"zoom exceeds float64 precision at frame {index}: the viewport bounds "
            "are no longer distinct; end the zoom range before this frame"
        )
        self.index = index


@dataclass(frozen=True)
class ZoomSpec:
    """Zoom centre, starting extent, per-frame factor and ``[start, end)`` frame range."""

    center: ComplexPoint
    zoom_factor: float
    start: int
    end: int
    half_extent: float = 2.0
    policy: str = "exponential"

    def __post_init__(self) -> None:
        re, im = self.center
        object.__setattr__(self, "center", ComplexPoint(float(re), float(im)))
        if not self.zoom_factor > 1.0:
            raise ValueError(f"zoom_factor must be greater than 1, got {self.zoom_factor}")
        if self.start < 0:
            raise ValueError(f"start frame must not be negative, got {self.start}")
        if self.end <= self.start:
            raise ValueError(f"end frame ({self.end}) must be greater than start frame ({self.start})")
        if not self.half_extent > 0.0:
            raise ValueError(f"half_extent must be positive, got {self.half_extent}")
        if self.policy not in POLICIES:
            raise ValueError(f"Unknown zoom policy '{self.policy}'. Valid choices: {', '.join(POLICIES)}.")

    @property
    def frames(self) -> range:
        return range(self.start, self.end)


def _centered(center: ComplexPoint, x_width: float, y_width: float, index: int) -> Viewport:
    try:
        return Viewport.from_center(center, x_width / 2.0, y_width / 2.0)
    except ValueError:
        raise PrecisionExhaustedError(index) from None


@dataclass(frozen=True)
class ZoomPlanner:
    """Compute the viewport of every frame of a zoom sequence."""

    spec: ZoomSpec

    def initial_viewport(self) -> Viewport:
        return Viewport.from_center(self.spec.center, self.spec.half_extent, self.spec.half_extent)

    def viewport_for_frame(self, index: int) -> Viewport:
        """Viewport of frame ``index``: the initial extent divided by ``zoom_factor ** index``."""

        initial = self.initial_viewport()
        divisor = np.float64(self.spec.zoom_factor) ** index
        x_width = initial.width / divisor
        y_width = initial.height / divisor
        return _centered(self.spec.center, x_width, y_width, index)

    def shrink(self, viewport: Viewport, index: int) -> Viewport:
        """Shrink ``viewport`` by one zoom step about its own midpoint, yielding frame ``index``."""

        x_width = viewport.width / self.spec.zoom_factor
        y_width = viewport.height / self.spec.zoom_factor
        return _centered(viewport.center, x_width, y_width, index)

    def viewports(self) -> Iterator[tuple[int, Viewport]]:
        if self.spec.policy == "exponential":
            for index in self.spec.frames:
                yield index, self.viewport_for_frame(index)
            return

        viewport = None
        for index in self.spec.frames:
            viewport = self.viewport_for_frame(index) if viewport is None else self.shrink(viewport, index)
            yield index, viewport


@dataclass(frozen=True)
class FrameReport:
    index: int
    frame_id: str
    viewport: Viewport
    elapsed: float
    path: Optional[Path] = None

    def describe(self) -> str:
        v = self.viewport
        return (
            f"Frame {self.index} saved in {self.elapsed:.2f} seconds. "
            f"x: [{v.x_min:.17g}, {v.x_max:.17g}] y: [{v.y_min:.17g}, {v.y_max:.17g}]"
        )


def frame_id(index: int, digits: int = FRAME_DIGITS) -> str:
    return f"{index:0{digits}d}"


def resolution_exhausted(viewport: Viewport, width: int, height: int) -> bool:
    """True once the pixel step drops below the float64 spacing of the viewport bounds."""

    scale_x, scale_y = viewport.scale(width, height)
    spacing_x = np.spacing(max(abs(viewport.x_min), abs(viewport.x_max)))
    spacing_y = np.spacing(max(abs(viewport.y_min), abs(viewport.y_max)))
    return bool(scale_x < spacing_x or scale_y < spacing_y)


def run_zoom(
    spec: ZoomSpec,
    width: int,
    height: int,
    max_iter: int,
    color_policy: Union[ColorPolicy, str],
    frame_sink: FrameSink,
    *,
    invert_frames: bool = True,
    workers: Optional[int] = None,
    inside_color: Optional[tuple[int, int, int]] = None,
    report: Optional[Callable[[str], None]] = print,
) -> list[FrameReport]:
    """Render every frame of ``spec`` in order and hand each buffer to ``frame_sink``.

    Frames are produced strictly one after another; any exception raised by
    the renderer or the sink aborts the sequence.
    """

    if isinstance(color_policy, str):
        color_policy = get_color_policy(color_policy)

    planner = ZoomPlanner(spec)
    reports: list[FrameReport] = []
    warned = False

    for index, viewport in planner.viewports():
        if not warned and resolution_exhausted(viewport, width, height):
            warnings.warn(
                f"Frame {index} exceeds float64 precision: pixels no longer map to distinct "
                "coordinates and the image will degrade.",
                PrecisionWarning,
                stacklevel=2,
            )
            warned = True

        start_time = time.perf_counter()
        buffer = render_frame(
            width,
            height,
            max_iter,
            viewport,
            color_policy,
            workers=workers,
            inside_color=inside_color,
        )
        if invert_frames:
            buffer = invert(buffer)

        name = frame_id(index)
        path = frame_sink(name, buffer)
        elapsed = time.perf_counter() - start_time

        frame_report = FrameReport(index=index, frame_id=name, viewport=viewport, elapsed=elapsed, path=path)
        reports.append(frame_report)
        if report is not None:
            report(frame_report.describe())

    return reports
