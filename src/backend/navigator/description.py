# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from common.typing import DetectionRegion, NearestObstacle, Point
from common.utils.geometry import portrait_to_landscape_point

SOURCE_DETECTED = "detected"
SOURCE_CLASSIFIED = "classified"
GENERIC_LABEL = "obstacle"
NO_OBSTACLE = "no obstacle"

# Segmentation classes that do not name a thing the user can walk into.
_IGNORED_MASK_LABELS = frozenset({"__background__", "background", "unlabeled"})


def mask_label_at(
    point: Point, mask: np.ndarray, labels: Sequence[str]
) -> Optional[str]:
    """Look up the segmentation label under a portrait point.

    The mask is in the sensor's landscape orientation, like the depth grid.
    Background classes (`__background__`, `background`, `unlabeled`) read as
    no label, so the caller falls back to the generic noun.
    """
    grid = np.asarray(mask)
    if grid.ndim == 3:
        grid = grid[0]
    if grid.ndim != 2 or grid.size == 0:
        return None

    h, w = grid.shape
    x_frac, y_frac = portrait_to_landscape_point(point)
    col = min(max(int(x_frac * w), 0), w - 1)
    row = min(max(int(y_frac * h), 0), h - 1)
    idx = int(grid[row, col])
    if idx < 0 or idx >= len(labels):
        return None
    label = labels[idx]
    return None if label in _IGNORED_MASK_LABELS else label


def resolve_label(
    point: Point,
    regions: Sequence[DetectionRegion],
    mask: Optional[np.ndarray],
    labels: Sequence[str],
) -> tuple[Optional[str], Optional[str]]:
    """Name the thing at ``point``: detected region first, then the mask.

    Returns:
        ``(label, source)``, or ``(None, None)`` when nothing names it.
    """
    for region in regions:
        if region.rect.contains(point):
            return region.label, SOURCE_DETECTED

    if mask is not None:
        label = mask_label_at(point, mask, labels)
        if label is not None:
            return label, SOURCE_CLASSIFIED

    return None, None


def compose_description(
    nearest: Optional[NearestObstacle],
    regions: Sequence[DetectionRegion],
    mask: Optional[np.ndarray],
    labels: Sequence[str],
) -> str:
    """Build the one-line status text, e.g. ``"detected chair – 0.84 m"``."""
    if nearest is None:
        return NO_OBSTACLE

    label, source = resolve_label(nearest.location, regions, mask, labels)
    distance = f"{nearest.depth:.2f} m"
    if label is None or source is None:
        return f"{GENERIC_LABEL} – {distance}"
    return f"{source} {label} – {distance}"
