# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import base64
from typing import Optional

from pydantic import BaseModel

from common.utils.heatmap import encode_png
from navigator.state import PublishedState


class PointPayload(BaseModel):
    x: float
    y: float


class BoxPayload(BaseModel):
    x: float
    y: float
    width: float
    height: float


class RegionPayload(BaseModel):
    label: str
    confidence: float
    box: BoxPayload
    distance: Optional[float] = None


class NearestPayload(BaseModel):
    depth: float
    location: PointPayload


class CountersPayload(BaseModel):
    fps: Optional[float] = None
    detection_latency_ms: Optional[float] = None
    frame_latency_ms: Optional[float] = None
    frames_processed: int = 0
    frames_dropped: int = 0


class StateMessage(BaseModel):
    """Published state as sent to display clients. Geometry is portrait-normalized."""

    frame_id: int
    timestamp: float
    description: str
    alert_tier: str
    classifier_used: bool
    regions: list[RegionPayload]
    nearest: Optional[NearestPayload] = None
    heatmap_png: Optional[str] = None
    """Base64-encoded RGBA PNG."""
    heatmap_age_ms: Optional[float] = None
    counters: CountersPayload

    @classmethod
    def from_state(cls, state: PublishedState, include_heatmap: bool = True) -> StateMessage:
        nearest = None
        if state.nearest is not None:
            nearest = NearestPayload(
                depth=state.nearest.depth,
                location=PointPayload(
                    x=state.nearest.location.x, y=state.nearest.location.y
                ),
            )

        heatmap_png = None
        if include_heatmap and state.heatmap is not None:
            heatmap_png = base64.b64encode(encode_png(state.heatmap)).decode("ascii")

        counters = state.counters
        return cls(
            frame_id=state.frame_id,
            timestamp=state.timestamp,
            description=state.description,
            alert_tier=state.alert_tier.value,
            classifier_used=state.classifier_used,
            regions=[
                RegionPayload(
                    label=region.label,
                    confidence=region.confidence,
                    box=BoxPayload(
                        x=region.rect.x,
                        y=region.rect.y,
                        width=region.rect.width,
                        height=region.rect.height,
                    ),
                    distance=region.distance,
                )
                for region in state.regions
            ],
            nearest=nearest,
            heatmap_png=heatmap_png,
            heatmap_age_ms=state.heatmap_age_ms,
            counters=CountersPayload(
                fps=counters.fps,
                detection_latency_ms=counters.detection_latency_ms,
                frame_latency_ms=counters.frame_latency_ms,
                frames_processed=counters.frames_processed,
                frames_dropped=counters.frames_dropped,
            ),
        )
