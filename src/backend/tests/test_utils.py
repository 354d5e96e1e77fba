# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
from typing import Optional, Sequence

import numpy as np

from common.typing import Detection
from navigator.alerts import PulseIntensity


class DummyResult:
    def __init__(self, boxes):
        self.boxes = boxes
        self.masks = None  # No masks for simplicity


class DummyArray:
    def __init__(self, arr):
        self._arr = np.array(arr)

    def cpu(self):
        return self

    def numpy(self):
        return self._arr


class DummyBoxes:
    def __init__(self, xyxy, cls, conf):
        self.xyxy = DummyArray(xyxy)
        self.cls = DummyArray(cls)
        self.conf = DummyArray(conf)

    def __len__(self):
        arr = self.xyxy.numpy()
        return 0 if arr.size == 0 else arr.shape[0]


class FakeDetector:
    """Returns canned detections; can block until released or raise."""

    def __init__(
        self,
        detections: Optional[list[Detection]] = None,
        labels: Sequence[str] = ("person", "bicycle", "chair"),
        error: Optional[Exception] = None,
    ) -> None:
        self.detections = detections or []
        self.labels = labels
        self.error = error
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def infer(self, frame_rgb: np.ndarray) -> list[Detection]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.detections)


class FakeClassifier:
    def __init__(
        self,
        mask: Optional[np.ndarray] = None,
        labels: Sequence[str] = ("__background__", "wall", "door"),
        error: Optional[Exception] = None,
    ) -> None:
        self.mask = mask
        self.labels = labels
        self.error = error
        self.calls = 0

    async def classify(self, frame_rgb: np.ndarray) -> np.ndarray:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.mask


class RecordingActuator:
    def __init__(self) -> None:
        self.events: list[tuple[str, Optional[PulseIntensity]]] = []

    def pulse(self, intensity: PulseIntensity) -> None:
        self.events.append(("pulse", intensity))

    def play_cue(self) -> None:
        self.events.append(("cue", None))


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def color_frame(height: int = 4, width: int = 6) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)
