import numpy as np
import pytest
from matplotlib.colors import ListedColormap

from mandelzoom.colors import (
    CyclicPolicy,
    DuotonePolicy,
    LinearPolicy,
    get_color_policy,
    parse_hex_color,
    round_to_bytes,
    sinebow,
    to_bytes,
)


def test_linear_endpoints():
    policy = LinearPolicy()
    assert policy(0.0) == (0, 255, 255)
    assert policy(1.0) == (255, 0, 0)


def test_linear_truncates_instead_of_rounding():
    policy = LinearPolicy()
    assert policy(0.5) == (127, 127, 127)
    assert policy(0.999) == (254, 0, 0)


def test_linear_saturates_out_of_range_ratios():
    policy = LinearPolicy()
    assert policy(-0.5) == (0, 255, 127)
    assert policy(2.0) == (255, 0, 0)
    assert policy(float("nan")) == (0, 0, 0)


def test_duotone():
    assert DuotonePolicy()(0.5) == (127, 127, 128)
    assert DuotonePolicy()(1.0) == (255, 255, 0)


def test_sinebow_known_phases():
    policy = CyclicPolicy()
    assert policy(0.0) == (255, 64, 64)
    # Phase 1/6: sin(pi/3)**2 = sin(2pi/3)**2 = 0.75 and sin(pi)**2 = 0.
    assert policy(1.0 / 24.0) == (191, 191, 0)


def test_sinebow_matches_closed_form_rounded():
    ratios = np.linspace(0.0, 1.0, 2001)
    colors = CyclicPolicy().colorize(ratios)
    expected = np.rint(sinebow(np.mod(4.0 * ratios, 1.0)) * 255.0).astype(int)
    assert np.array_equal(colors.astype(int), expected)


def test_cyclic_policy_repeats_every_quarter():
    policy = get_color_policy("sinebow")
    assert policy(0.125) == policy(0.375) == policy(0.875)
    assert policy(0.0) == policy(0.25) == policy(1.0)


def test_cyclic_policy_discards_alpha():
    colors = CyclicPolicy().colorize(np.linspace(0.0, 1.0, 12).reshape(3, 4))
    assert colors.shape == (3, 4, 3)
    assert colors.dtype == np.uint8


def test_sinebow_is_the_default_cyclic_gradient():
    policy = get_color_policy("sinebow")
    assert policy.cmap is None
    assert policy.name == "sinebow"


def test_colormap_policies_truncate():
    policy = CyclicPolicy(ListedColormap([[0.5, 0.5, 0.5]], name="mid-gray"))
    # 0.5 * 255 = 127.5 truncates to 127.
    assert policy(0.3) == (127, 127, 127)
    assert policy.name == "mid-gray"


def test_get_color_policy_resolves_names():
    assert isinstance(get_color_policy("linear"), LinearPolicy)
    assert isinstance(get_color_policy("Duotone"), DuotonePolicy)
    twilight = get_color_policy("twilight")
    assert isinstance(twilight, CyclicPolicy)
    assert twilight.name == "twilight"


def test_get_color_policy_rejects_unknown_names():
    with pytest.raises(ValueError):
        get_color_policy("no-such-colormap")


def test_to_bytes_truncates_and_clamps():
    values = np.array([-3.0, 0.9, 127.99, 255.0, 300.0, np.inf])
    assert to_bytes(values).tolist() == [0, 0, 127, 255, 255, 255]


def test_round_to_bytes_rounds_and_clamps():
    values = np.array([-3.0, 0.4, 63.75, 254.6, 300.0, np.nan])
    assert round_to_bytes(values).tolist() == [0, 0, 64, 255, 255, 0]


def test_parse_hex_color():
    assert parse_hex_color("#0a3ba0") == (10, 59, 160)
    assert parse_hex_color("FFFFFF") == (255, 255, 255)
    with pytest.raises(ValueError):
        parse_hex_color("#12345")
    with pytest.raises(ValueError):
        parse_hex_color("#zzzzzz")
