# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional


@dataclass
class Detection:
    """Raw detection from object detector, in the model's native pixel space."""

    x1: int
    y1: int
    x2: int
    y2: int
    cls_id: int
    confidence: float


class Point(NamedTuple):
    """Normalized point in portrait display space."""

    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned normalized rectangle (origin top-left)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.max_x and self.y <= point.y <= self.max_y

    def clamped(self) -> Rect:
        """Return the intersection of this rectangle with the unit square."""
        x0 = min(max(self.x, 0.0), 1.0)
        y0 = min(max(self.y, 0.0), 1.0)
        x1 = min(max(self.max_x, x0), 1.0)
        y1 = min(max(self.max_y, y0), 1.0)
        return Rect(x0, y0, x1 - x0, y1 - y0)


@dataclass(frozen=True)
class DetectionRegion:
    """Labeled detection with its portrait rectangle and nearest-surface distance."""

    label: str
    confidence: float
    rect: Rect
    distance: Optional[float] = None
    """Mean of the nearest depth samples inside ``rect`` in metres, if any."""


@dataclass(frozen=True)
class NearestObstacle:
    """Median depth and portrait centroid of the nearest-surface cluster."""

    depth: float
    location: Point
