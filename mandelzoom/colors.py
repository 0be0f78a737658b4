"""Policies that map normalised escape ratios to RGB bytes."""

from __future__ import annotations

from typing import Optional

import matplotlib
import numpy as np
from matplotlib.colors import Colormap


def sinebow(t: np.ndarray) -> np.ndarray:
    """Closed-form sinebow gradient: channel k is ``sin(pi * (1/2 - t) + k * pi / 3) ** 2``."""

    t = (0.5 - np.asarray(t, dtype=np.float64)) * np.pi
    return np.stack(
        (np.sin(t) ** 2, np.sin(t + np.pi / 3) ** 2, np.sin(t + 2 * np.pi / 3) ** 2),
        axis=-1,
    )


def to_bytes(values: np.ndarray) -> np.ndarray:
    """Convert channel values in ``[0, 255]`` to ``uint8`` by saturating truncation."""

    values = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(np.trunc(values), 0, 255).astype(np.uint8)


def round_to_bytes(values: np.ndarray) -> np.ndarray:
    """Convert channel values in ``[0, 255]`` to ``uint8`` rounding to the nearest byte."""

    values = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


class ColorPolicy:
    """Base class: ``colorize`` for arrays, calling the policy for a single ratio."""

    name = "policy"

    def colorize(self, ratios: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, ratio: float) -> tuple[int, int, int]:
        r, g, b = self.colorize(np.array([ratio], dtype=np.float64))[0]
        return int(r), int(g), int(b)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class LinearPolicy(ColorPolicy):
    """Red rises with the ratio while green and blue fall."""

    name = "linear"

    def colorize(self, ratios: np.ndarray) -> np.ndarray:
        ratios = np.asarray(ratios, dtype=np.float64)
        channels = np.stack(
            (255.0 * ratios, 255.0 * (1.0 - ratios), 255.0 * (1.0 - np.abs(ratios))),
            axis=-1,
        )
        return to_bytes(channels)


class DuotonePolicy(ColorPolicy):
    """Grey level ``t`` on red and green, ``255 - t`` on blue."""

    name = "duotone"

    def colorize(self, ratios: np.ndarray) -> np.ndarray:
        level = to_bytes(255.0 * np.asarray(ratios, dtype=np.float64))
        return np.stack((level, level, np.uint8(255) - level), axis=-1)


class CyclicPolicy(ColorPolicy):
    """Sample a gradient periodically at phase ``t = (ratio / period) mod 1``.

    Without a colormap the sinebow is evaluated directly and rounded to bytes;
    matplotlib colormaps go through their lookup table and are truncated.
    """

    def __init__(self, cmap: Optional[Colormap] = None, period: float = 0.25):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        self.cmap = cmap
        self.period = float(period)
        self.name = "sinebow" if cmap is None else cmap.name

    def colorize(self, ratios: np.ndarray) -> np.ndarray:
        phase = np.mod(np.asarray(ratios, dtype=np.float64) / self.period, 1.0)
        if self.cmap is None:
            return round_to_bytes(sinebow(phase) * 255.0)
        rgba = np.asarray(self.cmap(phase), dtype=np.float64)
        return to_bytes(rgba[..., :3] * 255.0)


def get_color_policy(name: str) -> ColorPolicy:
    """Resolve ``linear``, ``sinebow``, ``duotone`` or any matplotlib colormap name."""

    key = name.strip()
    if key.lower() == "linear":
        return LinearPolicy()
    if key.lower() == "duotone":
        return DuotonePolicy()
    if key.lower() == "sinebow":
        return CyclicPolicy()
    try:
        cmap = matplotlib.colormaps[key]
    except KeyError:
        raise ValueError(f"Unknown color policy or colormap '{name}'.") from None
    return CyclicPolicy(cmap)


def parse_hex_color(value: str) -> tuple[int, int, int]:
    """Parse ``#RRGGBB`` into a byte triple."""

    hex_color = value.strip().lstrip("#")
    if len(hex_color) != 6:
        raise ValueError("color must be in the form #RRGGBB.")
    try:
        return tuple(int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        raise ValueError("color must contain only hexadecimal digits.") from exc
