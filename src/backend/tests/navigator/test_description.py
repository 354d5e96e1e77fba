# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import numpy as np
import pytest

from common.typing import DetectionRegion, NearestObstacle, Point, Rect
from navigator.description import compose_description, mask_label_at, resolve_label

LABELS = ("__background__", "wall", "door")


@pytest.fixture
def chair() -> DetectionRegion:
    return DetectionRegion("chair", 0.9, Rect(0.2, 0.2, 0.4, 0.4), distance=0.9)


def test_no_obstacle() -> None:
    assert compose_description(None, (), None, LABELS) == "no obstacle"


def test_detected_region_wins(chair) -> None:
    nearest = NearestObstacle(0.84, Point(0.4, 0.4))
    mask = np.full((4, 4), 1, dtype=np.int32)
    assert compose_description(nearest, (chair,), mask, LABELS) == "detected chair – 0.84 m"


def test_mask_label_when_no_region_contains_point(chair) -> None:
    nearest = NearestObstacle(1.5, Point(0.9, 0.9))
    mask = np.full((4, 4), 2, dtype=np.int32)
    assert compose_description(nearest, (chair,), mask, LABELS) == "classified door – 1.50 m"


def test_generic_label_when_nothing_names_the_point() -> None:
    nearest = NearestObstacle(2.0, Point(0.5, 0.5))
    assert compose_description(nearest, (), None, LABELS) == "obstacle – 2.00 m"

    background = np.zeros((4, 4), dtype=np.int32)
    assert compose_description(nearest, (), background, LABELS) == "obstacle – 2.00 m"


def test_mask_lookup_uses_landscape_orientation() -> None:
    # Landscape mask 2 rows x 4 cols; "door" covers the top landscape row,
    # which is the right half of the portrait view.
    mask = np.array([[2, 2, 2, 2], [1, 1, 1, 1]], dtype=np.int32)
    assert mask_label_at(Point(0.9, 0.5), mask, LABELS) == "door"
    assert mask_label_at(Point(0.1, 0.5), mask, LABELS) == "wall"


def test_mask_lookup_handles_edges_and_unknown_ids() -> None:
    mask = np.array([[[7, 1], [1, 1]]], dtype=np.int32)
    assert mask_label_at(Point(1.0, 0.0), mask, LABELS) is None
    assert mask_label_at(Point(0.0, 1.0), mask, LABELS) == "wall"


def test_resolve_label_reports_source(chair) -> None:
    assert resolve_label(Point(0.3, 0.3), (chair,), None, LABELS) == ("chair", "detected")
    assert resolve_label(Point(0.9, 0.9), (chair,), None, LABELS) == (None, None)


@pytest.mark.parametrize("name", ["__background__", "background", "unlabeled"])
def test_background_classes_read_as_unlabeled(name) -> None:
    mask = np.zeros((4, 4), dtype=np.int32)
    assert mask_label_at(Point(0.5, 0.5), mask, (name, "wall")) is None
