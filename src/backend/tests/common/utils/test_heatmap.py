# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import cv2
import numpy as np
import pytest

from common.utils.heatmap import depth_nearness, encode_png, heat_colors, render_heatmap


@pytest.mark.parametrize(
    "nearness, expected",
    [
        (0.0, (0, 0, 255)),
        (0.25, (0, 255, 255)),
        (0.5, (0, 255, 0)),
        (0.75, (255, 255, 0)),
        (1.0, (255, 0, 0)),
    ],
    ids=["blue", "cyan", "green", "yellow", "red"],
)
def test_ramp_stops(nearness: float, expected: tuple[int, int, int]) -> None:
    color = heat_colors(np.array([[nearness]]))[0, 0]
    assert tuple(int(c) for c in color) == expected


def test_nearness_is_monotonic_in_depth() -> None:
    depth = np.array([[0.1, 1.0, 2.0, 3.9, 4.0, 10.0]], dtype=np.float32)
    nearness = depth_nearness(depth, max_depth=4.0)[0]
    assert (np.diff(nearness) <= 0).all()
    assert nearness[-1] == 0.0
    assert nearness[-2] == 0.0


def test_missing_readings_render_as_far() -> None:
    depth = np.array([[0.0, np.nan, np.inf]], dtype=np.float32)
    assert (depth_nearness(depth) == 0.0).all()


def test_render_heatmap_shape_and_alpha() -> None:
    depth = np.linspace(0.1, 5.0, 12, dtype=np.float32).reshape(3, 4)
    rgba = render_heatmap(depth, max_depth=4.0, alpha=180)
    assert rgba.shape == (3, 4, 4)
    assert rgba.dtype == np.uint8
    assert (rgba[..., 3] == 180).all()
    # nearest sample is reddest, farthest is blue
    assert rgba[0, 0, 0] > rgba[2, 3, 0]
    assert tuple(rgba[2, 3, :3]) == (0, 0, 255)


def test_encode_png_keeps_alpha() -> None:
    rgba = render_heatmap(np.full((2, 3), 0.5, dtype=np.float32))
    png = encode_png(rgba)
    assert png.startswith(b"\x89PNG")
    decoded = cv2.imdecode(np.frombuffer(png, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    assert decoded.shape == (2, 3, 4)
    assert np.array_equal(cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA), rgba)
