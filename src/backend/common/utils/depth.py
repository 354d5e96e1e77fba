# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Optional

import numpy as np

from common.typing import NearestObstacle, Rect
from common.utils.geometry import (
    landscape_to_portrait_point,
    portrait_to_landscape_rect,
)


def valid_depth_mask(depth_map: np.ndarray) -> np.ndarray:
    """Return a boolean mask of samples that carry a reading (finite and > 0)."""
    return np.isfinite(depth_map) & (depth_map > 0)


def region_nearest_depth(
    depth_map: np.ndarray, rect: Rect, top_n: int = 20
) -> Optional[float]:
    """Estimate the distance to the nearest surface inside a portrait rectangle.

    The rectangle is mapped into the grid's native landscape coordinates and
    the mean of the ``top_n`` smallest valid samples is returned. Averaging
    only the nearest samples biases the estimate toward the object in front
    rather than the background visible around it.

    Args:
        depth_map: Landscape depth grid (H x W) in metres.
        rect: Portrait-normalized rectangle.
        top_n: Number of nearest samples to average.

    Returns:
        Distance in metres, or None when the window holds no valid sample.
    """
    h, w = depth_map.shape[:2]
    x_start, x_end, y_start, y_end = _calculate_region_bounds(rect, w, h)
    window = depth_map[y_start:y_end, x_start:x_end]
    samples = window[valid_depth_mask(window)]
    if samples.size == 0:
        return None

    k = min(max(top_n, 1), samples.size)
    nearest = np.sort(samples, axis=None)[:k]
    return float(nearest.mean())


def nearest_cluster(
    depth_map: np.ndarray, band_m: float = 0.03
) -> Optional[NearestObstacle]:
    """Locate the nearest surface in a depth grid.

    Every valid sample within ``band_m`` metres of the global minimum belongs
    to the cluster. The reported depth is the cluster median and the location
    is the cluster centroid, converted to portrait-normalized coordinates.

    Args:
        depth_map: Landscape depth grid (H x W) in metres.
        band_m: Width of the depth band above the minimum.

    Returns:
        The nearest obstacle, or None when the grid holds no valid sample.
    """
    valid = valid_depth_mask(depth_map)
    if not valid.any():
        return None

    min_depth = depth_map[valid].min()
    cluster = valid & (depth_map <= min_depth + band_m)
    rows, cols = np.nonzero(cluster)
    values = np.sort(depth_map[rows, cols])
    median = float(values[values.size // 2])

    h, w = depth_map.shape[:2]
    location = landscape_to_portrait_point(
        float(cols.mean()) / w, float(rows.mean()) / h
    )
    return NearestObstacle(depth=median, location=location)


def _calculate_region_bounds(
    rect: Rect, frame_width: int, frame_height: int
) -> tuple[int, int, int, int]:
    """Map a portrait rectangle to a pixel window of the landscape grid.

    Returns:
        Tuple of (x_start, x_end, y_start, y_end) in pixels, clamped to the grid.
    """
    native = portrait_to_landscape_rect(rect)
    x_start = max(int(native.x * frame_width), 0)
    x_end = min(int(native.max_x * frame_width), frame_width)
    y_start = max(int(native.y * frame_height), 0)
    y_end = min(int(native.max_y * frame_height), frame_height)
    return x_start, x_end, y_start, y_end
