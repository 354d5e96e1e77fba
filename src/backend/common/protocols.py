# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Protocol, Sequence, runtime_checkable

import numpy as np

from common.typing import Detection


@runtime_checkable
class ObjectDetectionBackend(Protocol):
    """Synchronous interface implemented by model-specific adapters."""

    labels: Sequence[str]

    def predict(self, frame_rgb: np.ndarray) -> list[Detection]:
        """Run inference on an RGB frame and return parsed detections."""
        ...


@runtime_checkable
class ObjectDetector(Protocol):
    """Asynchronous detector wrapper used by the fusion engine."""

    labels: Sequence[str]
    """Class-id to label-name table reported by the model."""

    async def infer(self, frame_rgb: np.ndarray) -> list[Detection]:
        """Run inference and return detections in the frame's pixel space."""
        ...


@runtime_checkable
class SegmentationBackend(Protocol):
    """Synchronous dense-labeling model adapter."""

    labels: Sequence[str]

    def predict(self, frame_rgb: np.ndarray) -> np.ndarray:
        """Return a 2-D grid of integer label indices."""
        ...


@runtime_checkable
class SemanticClassifier(Protocol):
    """Asynchronous fallback classifier used when the detector finds nothing."""

    labels: Sequence[str]
    """Label-index to label-name table, read once from model metadata."""

    async def classify(self, frame_rgb: np.ndarray) -> np.ndarray:
        """Return a dense label grid in the frame's native orientation."""
        ...
