# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from common.typing import DetectionRegion, NearestObstacle
from navigator.alerts import AlertTier
from navigator.description import NO_OBSTACLE


@dataclass(frozen=True)
class PerformanceCounters:
    """Diagnostics published alongside each state; never read by the pipeline."""

    fps: Optional[float] = None
    detection_latency_ms: Optional[float] = None
    frame_latency_ms: Optional[float] = None
    frames_processed: int = 0
    frames_dropped: int = 0


@dataclass(frozen=True)
class PublishedState:
    """Everything the display layer may read about the latest completed frame."""

    frame_id: int = 0
    timestamp: float = 0.0
    regions: tuple[DetectionRegion, ...] = ()
    nearest: Optional[NearestObstacle] = None
    heatmap: Optional[np.ndarray] = field(default=None, compare=False)
    """RGBA heat-map rendered from the frame's own depth snapshot."""
    heatmap_age_ms: Optional[float] = None
    description: str = NO_OBSTACLE
    alert_tier: AlertTier = AlertTier.NONE
    classifier_used: bool = False
    counters: PerformanceCounters = PerformanceCounters()


class StateStore:
    """Single-writer, multi-reader hand-off of the published state.

    Readers always see a complete state object; the writer replaces the
    reference in one step. Subscribers get a queue that holds only the
    latest state, so a slow reader skips states instead of piling them up.
    """

    def __init__(self, initial: Optional[PublishedState] = None) -> None:
        self._state = initial or PublishedState()
        self._lock = threading.Lock()
        self._subscribers: set[asyncio.Queue[PublishedState]] = set()

    @property
    def current(self) -> PublishedState:
        with self._lock:
            return self._state

    def publish(self, state: PublishedState) -> None:
        """Replace the published state and notify subscribers (event-loop thread only)."""
        with self._lock:
            self._state = state
            subscribers = list(self._subscribers)
        for queue in subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(state)

    def subscribe(self) -> asyncio.Queue[PublishedState]:
        queue: asyncio.Queue[PublishedState] = asyncio.Queue(maxsize=1)
        with self._lock:
            self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[PublishedState]) -> None:
        with self._lock:
            self._subscribers.discard(queue)
