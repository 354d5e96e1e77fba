# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from common.config import config
from common.metrics import (
    get_detection_duration,
    get_dropped_frames,
    get_frame_duration,
    get_published_frames,
)
from common.typing import NearestObstacle
from common.utils.depth import nearest_cluster
from common.utils.heatmap import render_heatmap
from navigator.alerts import AlertPolicy, AlertTier
from navigator.description import compose_description
from navigator.fusion import DetectionFusionEngine, FusionConfig, FusionResult
from navigator.snapshot import FrameSnapshot, take_snapshot
from navigator.state import PerformanceCounters, PublishedState, StateStore

logger = logging.getLogger(__name__)


class FrameRateWindow:
    """Sliding-window frame-rate estimate over the last ``sample_size`` timestamps."""

    def __init__(self, sample_size: int = 30) -> None:
        self._timestamps: deque[float] = deque(maxlen=max(sample_size, 2))

    def tick(self, now: float) -> None:
        self._timestamps.append(now)

    @property
    def fps(self) -> Optional[float]:
        """Frames per second once the window is full, else None."""
        if len(self._timestamps) < (self._timestamps.maxlen or 0):
            return None
        duration = self._timestamps[-1] - self._timestamps[0]
        if duration <= 0:
            return None
        return (len(self._timestamps) - 1) / duration


@dataclass
class PipelineStats:
    """Tracks counters across frames."""

    frame_id: int = 0
    frames_processed: int = 0
    frames_dropped: int = 0


@dataclass(frozen=True)
class DepthAnalysis:
    nearest: Optional[NearestObstacle]
    heatmap: Optional[np.ndarray]


def analyze_depth(
    depth: Optional[np.ndarray], band_m: float, max_depth: float, alpha: int
) -> DepthAnalysis:
    """Nearest-cluster and heat-map for one depth snapshot."""
    if depth is None:
        return DepthAnalysis(nearest=None, heatmap=None)
    return DepthAnalysis(
        nearest=nearest_cluster(depth, band_m),
        heatmap=render_heatmap(depth, max_depth, alpha),
    )


class FramePipeline:
    """Owns per-frame sequencing, the in-flight gate, and state publication.

    ``on_frame`` may be called from the sensor thread at sensor cadence. At
    most one frame is processed at a time; frames arriving meanwhile are
    dropped, not queued. Processing runs on the bound event loop.
    """

    def __init__(
        self,
        fusion: DetectionFusionEngine,
        alerts: AlertPolicy,
        store: StateStore,
        fusion_config: FusionConfig,
        *,
        fps_sample_size: int = config.FPS_SAMPLE_SIZE,
        cluster_band_m: float = config.CLUSTER_BAND_M,
        heatmap_max_depth_m: float = config.HEATMAP_MAX_DEPTH_M,
        heatmap_alpha: int = config.HEATMAP_ALPHA,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._fusion = fusion
        self._alerts = alerts
        self._store = store
        self._fusion_config = fusion_config
        self._cluster_band_m = cluster_band_m
        self._heatmap_max_depth_m = heatmap_max_depth_m
        self._heatmap_alpha = heatmap_alpha
        self._clock = clock

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._gate = threading.Lock()
        self._in_flight = False
        self._pending: Optional[concurrent.futures.Future[None]] = None
        self._rate = FrameRateWindow(fps_sample_size)
        self.stats = PipelineStats()

        self._detection_duration = get_detection_duration()
        self._frame_duration = get_frame_duration()
        self._dropped_frames = get_dropped_frames()
        self._published_frames = get_published_frames()

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def alerts(self) -> AlertPolicy:
        return self._alerts

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def fps(self) -> Optional[float]:
        return self._rate.fps

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the event loop that runs frame processing."""
        self._loop = loop

    async def start(self) -> None:
        self.bind(asyncio.get_running_loop())

    def on_frame(self, color: np.ndarray, depth: Optional[np.ndarray] = None) -> bool:
        """Accept a sensor frame unless one is already in flight.

        Returns:
            True if the frame was dispatched for processing.
        """
        now = self._clock()
        with self._gate:
            self._rate.tick(now)
            if self._in_flight:
                self.stats.frames_dropped += 1
                self._dropped_frames.add(1)
                return False
            self._in_flight = True
            self.stats.frame_id += 1
            frame_id = self.stats.frame_id

        snapshot = take_snapshot(color, depth, captured_at=now, frame_id=frame_id)
        if snapshot is None:
            self._release()
            return False

        try:
            if self._loop is None or self._loop.is_closed():
                raise RuntimeError("pipeline is not bound to a running event loop")
            self._pending = asyncio.run_coroutine_threadsafe(
                self._process(snapshot), self._loop
            )
        except RuntimeError as err:
            logger.warning(
                "Frame dispatch failed", extra={"frame_id": frame_id, "error": str(err)}
            )
            self._release()
            return False
        return True

    async def wait_idle(self) -> None:
        """Wait until the frame in flight (if any) has finalized."""
        pending = self._pending
        if pending is not None:
            await asyncio.wrap_future(pending)

    async def shutdown(self) -> None:
        await self.wait_idle()
        self._alerts.clear()

    async def _process(self, snapshot: FrameSnapshot) -> None:
        try:
            fusion = await self._fusion.fuse(snapshot)
            if fusion is None:
                return
            self._detection_duration.record(
                fusion.detection_latency_ms / 1000.0,
                attributes={"backend": config.DETECTOR_BACKEND},
            )
            await self._finalize(snapshot, fusion)
        except Exception as err:
            logger.error(
                "Frame processing failed; keeping previous state",
                extra={"frame_id": snapshot.frame_id, "error": str(err)},
            )
        finally:
            self._release()

    async def _finalize(self, snapshot: FrameSnapshot, fusion: FusionResult) -> None:
        """Depth analysis, alert, description, then one atomic publish."""
        loop = asyncio.get_running_loop()
        analysis = await loop.run_in_executor(
            None,
            analyze_depth,
            snapshot.depth,
            self._cluster_band_m,
            self._heatmap_max_depth_m,
            self._heatmap_alpha,
        )

        alert_tier = AlertTier.NONE
        if analysis.nearest is not None:
            alert_tier = self._alerts.evaluate(analysis.nearest.depth).tier

        description = compose_description(
            analysis.nearest,
            fusion.regions,
            fusion.mask,
            self._fusion_config.segmentation_labels,
        )

        finished = self._clock()
        elapsed_ms = (finished - snapshot.captured_at) * 1000.0
        self.stats.frames_processed += 1
        counters = PerformanceCounters(
            fps=self._rate.fps,
            detection_latency_ms=fusion.detection_latency_ms,
            frame_latency_ms=elapsed_ms,
            frames_processed=self.stats.frames_processed,
            frames_dropped=self.stats.frames_dropped,
        )
        self._store.publish(
            PublishedState(
                frame_id=snapshot.frame_id,
                timestamp=time.time(),
                regions=fusion.regions,
                nearest=analysis.nearest,
                heatmap=analysis.heatmap,
                heatmap_age_ms=elapsed_ms if analysis.heatmap is not None else None,
                description=description,
                alert_tier=alert_tier,
                classifier_used=fusion.classifier_used,
                counters=counters,
            )
        )
        self._frame_duration.record(elapsed_ms / 1000.0)
        self._published_frames.add(1)

    def _release(self) -> None:
        with self._gate:
            self._in_flight = False
