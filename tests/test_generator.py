import warnings

import numpy as np
import pytest

from mandelzoom.colors import LinearPolicy
from mandelzoom.generator import (
    PrecisionExhaustedError,
    PrecisionWarning,
    ZoomPlanner,
    ZoomSpec,
    frame_id,
    resolution_exhausted,
    run_zoom,
)
from mandelzoom.renderer import invert, render_frame
from mandelzoom.viewport import Viewport

CENTER = (-0.743643887037151, 0.131825904205330)


def test_zoom_spec_validation():
    with pytest.raises(ValueError):
        ZoomSpec(center=CENTER, zoom_factor=1.0, start=0, end=5)
    with pytest.raises(ValueError):
        ZoomSpec(center=CENTER, zoom_factor=1.5, start=5, end=5)
    with pytest.raises(ValueError):
        ZoomSpec(center=CENTER, zoom_factor=1.5, start=-1, end=5)
    with pytest.raises(ValueError):
        ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=5, half_extent=0.0)
    with pytest.raises(ValueError):
        ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=5, policy="spiral")


def test_zoom_spec_frame_range_is_half_open():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=2, end=6)
    assert list(spec.frames) == [2, 3, 4, 5]


def test_exponential_viewport_width_shrinks_by_factor():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=6)
    planner = ZoomPlanner(spec)
    initial = planner.initial_viewport()
    for index, viewport in planner.viewports():
        assert viewport.width == pytest.approx(initial.width / 1.5 ** index, rel=1e-12)
        assert viewport.height == pytest.approx(initial.height / 1.5 ** index, rel=1e-12)
        assert viewport.center == pytest.approx(CENTER, abs=1e-15)


def test_exponential_viewport_depends_only_on_index():
    from_zero = dict(ZoomPlanner(ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=6)).viewports())
    from_three = dict(ZoomPlanner(ZoomSpec(center=CENTER, zoom_factor=1.5, start=3, end=6)).viewports())
    for index in (3, 4, 5):
        assert from_zero[index] == from_three[index]


def test_initial_viewport_spans_half_extent():
    planner = ZoomPlanner(ZoomSpec(center=(0.0, 0.0), zoom_factor=2.0, start=0, end=1))
    assert planner.viewport_for_frame(0) == Viewport(-2.0, 2.0, -2.0, 2.0)
    assert planner.viewport_for_frame(2) == Viewport(-0.5, 0.5, -0.5, 0.5)


def test_recentering_walk_shrinks_previous_viewport():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=2, end=8, policy="recenter")
    planner = ZoomPlanner(spec)
    frames = list(planner.viewports())
    assert [index for index, _ in frames] == list(range(2, 8))
    assert frames[0][1] == planner.viewport_for_frame(2)
    for (_, previous), (index, current) in zip(frames, frames[1:]):
        assert current.width == pytest.approx(previous.width / 1.5, rel=1e-12)
        assert current.center == pytest.approx(previous.center, abs=1e-15)
        assert current.width == pytest.approx(planner.viewport_for_frame(index).width, rel=1e-12)


def test_frame_id_is_zero_padded():
    assert frame_id(7) == "0007"
    assert frame_id(120) == "0120"
    assert frame_id(12345) == "12345"


def test_resolution_exhausted():
    assert not resolution_exhausted(Viewport(-2.0, 2.0, -2.0, 2.0), 1200, 1200)
    assert resolution_exhausted(Viewport(-1.75 - 1e-15, -1.75 + 1e-15, -1.0, 1.0), 16, 16)


class RecordingSink:
    def __init__(self, fail_at=None):
        self.calls = []
        self.fail_at = fail_at

    def __call__(self, name, buffer):
        if name == self.fail_at:
            raise OSError(f"disk full while writing {name}")
        self.calls.append((name, buffer.copy()))
        return None


def test_run_zoom_hands_frames_to_sink_in_order():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=3, end=7)
    sink = RecordingSink()
    lines = []
    reports = run_zoom(spec, 8, 6, 20, LinearPolicy(), sink, workers=2, report=lines.append)

    assert [name for name, _ in sink.calls] == ["0003", "0004", "0005", "0006"]
    assert [r.index for r in reports] == [3, 4, 5, 6]
    assert all(buffer.shape == (6, 8, 3) for _, buffer in sink.calls)
    assert len(lines) == 4
    assert lines[0].startswith("Frame 3 saved in ")
    assert "x: [" in lines[0] and "y: [" in lines[0]
    assert all(r.elapsed >= 0.0 for r in reports)


def test_run_zoom_inverts_frames():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=1)
    viewport = ZoomPlanner(spec).viewport_for_frame(0)
    expected = render_frame(8, 8, 20, viewport, LinearPolicy())

    inverted_sink = RecordingSink()
    run_zoom(spec, 8, 8, 20, LinearPolicy(), inverted_sink, report=None)
    plain_sink = RecordingSink()
    run_zoom(spec, 8, 8, 20, LinearPolicy(), plain_sink, invert_frames=False, report=None)

    assert np.array_equal(inverted_sink.calls[0][1], invert(expected))
    assert np.array_equal(plain_sink.calls[0][1], expected)


def test_run_zoom_aborts_when_sink_fails():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=5)
    sink = RecordingSink(fail_at="0001")
    with pytest.raises(OSError):
        run_zoom(spec, 4, 4, 10, "linear", sink, report=None)
    assert [name for name, _ in sink.calls] == ["0000"]


def test_run_zoom_warns_past_float_precision():
    spec = ZoomSpec(center=(-1.75, 0.0), zoom_factor=1.5, start=0, end=2, half_extent=1e-15)
    with pytest.warns(PrecisionWarning):
        run_zoom(spec, 16, 16, 10, "linear", RecordingSink(), report=None)


def test_run_zoom_is_silent_at_shallow_depth():
    spec = ZoomSpec(center=CENTER, zoom_factor=1.5, start=0, end=2)
    with warnings.catch_warnings():
        warnings.simplefilter("error", PrecisionWarning)
        run_zoom(spec, 8, 8, 10, "linear", RecordingSink(), report=None)


@pytest.mark.parametrize("policy", ["exponential", "recenter"])
def test_run_zoom_stops_once_viewport_bounds_collapse(policy):
    spec = ZoomSpec(center=(-1.75, 0.0), zoom_factor=2.0, start=0, end=10, half_extent=1e-15, policy=policy)
    sink = RecordingSink()
    with pytest.warns(PrecisionWarning):
        with pytest.raises(PrecisionExhaustedError, match=r"exceeds float64 precision at frame \d+") as excinfo:
            run_zoom(spec, 16, 16, 10, "linear", sink, report=None)

    assert 0 < excinfo.value.index < 10
    assert [name for name, _ in sink.calls] == [frame_id(i) for i in range(excinfo.value.index)]


def test_planner_names_the_first_unrepresentable_frame():
    spec = ZoomSpec(center=(-1.75, 0.0), zoom_factor=2.0, start=60, end=62)
    with pytest.raises(PrecisionExhaustedError, match="at frame 60"):
        list(ZoomPlanner(spec).viewports())


def test_recentering_walk_does_not_look_past_the_last_frame():
    deep = ZoomSpec(center=(-1.75, 0.0), zoom_factor=2.0, start=0, end=10, half_extent=1e-15, policy="recenter")
    with pytest.raises(PrecisionExhaustedError) as excinfo:
        list(ZoomPlanner(deep).viewports())
    last = excinfo.value.index

    spec = ZoomSpec(center=(-1.75, 0.0), zoom_factor=2.0, start=0, end=last, half_extent=1e-15, policy="recenter")
    assert [index for index, _ in ZoomPlanner(spec).viewports()] == list(range(last))
