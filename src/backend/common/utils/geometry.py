# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Coordinate conversions between the sensor's landscape grid and portrait display space.

The sensor delivers buffers in landscape orientation; the display is portrait,
rotated 90° from the sensor. For normalized coordinates the mapping is::

    portrait_x = 1 - landscape_y
    portrait_y = landscape_x
"""

from __future__ import annotations

from common.typing import Detection, Point, Rect


def normalize_bbox(det: Detection, width: int, height: int) -> Rect:
    """Convert a pixel bounding box to a normalized landscape rectangle.

    Args:
        det: Detection in pixel coordinates of a ``width`` x ``height`` frame.
        width: Frame width in pixels.
        height: Frame height in pixels.

    Returns:
        Rectangle in [0, 1] x [0, 1], clamped to the frame.
    """
    w = max(float(width), 1.0)
    h = max(float(height), 1.0)
    x1, x2 = sorted((det.x1, det.x2))
    y1, y2 = sorted((det.y1, det.y2))
    return Rect(x1 / w, y1 / h, (x2 - x1) / w, (y2 - y1) / h).clamped()


def landscape_to_portrait_rect(rect: Rect) -> Rect:
    """Rotate a normalized landscape rectangle into portrait display space."""
    return Rect(1.0 - rect.max_y, rect.x, rect.height, rect.width)


def portrait_to_landscape_rect(rect: Rect) -> Rect:
    """Inverse of :func:`landscape_to_portrait_rect`."""
    return Rect(rect.y, 1.0 - rect.max_x, rect.height, rect.width)


def landscape_to_portrait_point(x_frac: float, y_frac: float) -> Point:
    """Rotate a normalized landscape point (x along width) into portrait space."""
    return Point(1.0 - y_frac, x_frac)


def portrait_to_landscape_point(point: Point) -> tuple[float, float]:
    """Return ``(x_frac, y_frac)`` in landscape space for a portrait point."""
    return point.y, 1.0 - point.x
