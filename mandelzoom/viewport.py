"""Mapping between pixel coordinates and the complex plane."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

import numpy as np


class ComplexPoint(NamedTuple):
    """A point of the complex plane in float64 coordinates."""

    re: float
    im: float


@dataclass(frozen=True)
class Viewport:
    """Rectangular region of the complex plane rendered into an image."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self) -> None:
        if not self.x_max > self.x_min:
            raise ValueError(f"x_max ({self.x_max}) must be greater than x_min ({self.x_min})")
        if not self.y_max > self.y_min:
            raise ValueError(f"y_max ({self.y_max}) must be greater than y_min ({self.y_min})")

    @classmethod
    def from_center(cls, center: ComplexPoint, half_width: float, half_height: float) -> "Viewport":
        re, im = center
        return cls(
            x_min=float(re - half_width),
            x_max=float(re + half_width),
            y_min=float(im - half_height),
            y_max=float(im + half_height),
        )

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def center(self) -> ComplexPoint:
        return ComplexPoint((self.x_min + self.x_max) / 2.0, (self.y_min + self.y_max) / 2.0)

    def scale(self, width: int, height: int) -> tuple[float, float]:
        """Complex-plane distance between neighbouring pixels along each axis."""

        return (self.x_max - self.x_min) / width, (self.y_max - self.y_min) / height


def pixel_to_point(x: int, y: int, width: int, height: int, viewport: Viewport) -> ComplexPoint:
    """Map pixel ``(x, y)`` to the complex plane.

    Pixel ``(0, 0)`` lands on ``(x_min, y_min)`` and pixel ``(width, height)``
    on ``(x_max, y_max)``; no half-pixel offset is applied.
    """

    scale_x, scale_y = viewport.scale(width, height)
    return ComplexPoint(x * scale_x + viewport.x_min, y * scale_y + viewport.y_min)


def pixel_grid(indices: np.ndarray, width: int, height: int, viewport: Viewport) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised :func:`pixel_to_point` over flat, row-major pixel indices."""

    scale_x, scale_y = viewport.scale(width, height)
    indices = np.asarray(indices, dtype=np.int64)
    xs = (indices % width).astype(np.float64)
    ys = (indices // width).astype(np.float64)
    cx = xs * np.float64(scale_x) + np.float64(viewport.x_min)
    cy = ys * np.float64(scale_y) + np.float64(viewport.y_min)
    return cx, cy
