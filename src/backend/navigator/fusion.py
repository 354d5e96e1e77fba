# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from common.config import Config, config
from common.data import label_for
from common.metrics import get_fallback_classifications
from common.protocols import ObjectDetector, SemanticClassifier
from common.typing import Detection, DetectionRegion
from common.utils.depth import region_nearest_depth
from common.utils.geometry import landscape_to_portrait_rect, normalize_bbox
from navigator.snapshot import FrameSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FusionConfig:
    """Fusion settings and label tables, fixed at startup."""

    confidence_threshold: float = 0.51
    region_top_n: int = 20
    detection_labels: tuple[str, ...] = ()
    segmentation_labels: tuple[str, ...] = ()

    @classmethod
    def from_config(
        cls,
        settings: Config = config,
        detection_labels: Sequence[str] = (),
        segmentation_labels: Sequence[str] = (),
    ) -> FusionConfig:
        return cls(
            confidence_threshold=settings.DETECTOR_CONF_THRESHOLD,
            region_top_n=settings.REGION_TOP_N,
            detection_labels=tuple(detection_labels),
            segmentation_labels=tuple(segmentation_labels),
        )

    def detection_label(self, cls_id: int) -> str:
        if not self.detection_labels:
            return label_for(cls_id)
        return label_for(cls_id, self.detection_labels)


@dataclass(frozen=True)
class FusionResult:
    """Outcome of the detection stage for one frame."""

    regions: tuple[DetectionRegion, ...]
    mask: Optional[np.ndarray]
    """Most recent segmentation mask; may come from an earlier frame."""
    classifier_used: bool
    detection_latency_ms: float


class DetectionFusionEngine:
    """Runs the fast detector, falls back to the classifier and binds depth to regions."""

    def __init__(
        self,
        detector: ObjectDetector,
        classifier: Optional[SemanticClassifier],
        fusion_config: FusionConfig,
    ) -> None:
        self._detector = detector
        self._classifier = classifier
        self._config = fusion_config
        self._latest_mask: Optional[np.ndarray] = None
        self._fallback_count = get_fallback_classifications()

    @property
    def fallback_available(self) -> bool:
        return self._classifier is not None

    @property
    def latest_mask(self) -> Optional[np.ndarray]:
        return self._latest_mask

    async def fuse(self, snapshot: FrameSnapshot) -> Optional[FusionResult]:
        """Detect regions in the snapshot, running the fallback when none survive.

        Returns:
            The fusion result, or None when the detector failed and the frame
            must be abandoned. Classifier errors are logged and leave the
            previous mask in place.
        """
        start = time.perf_counter()
        try:
            detections = await self._detector.infer(snapshot.color)
        except Exception as err:
            logger.warning(
                "Detector failed; abandoning frame",
                extra={"frame_id": snapshot.frame_id, "error": str(err)},
            )
            return None
        detection_latency_ms = (time.perf_counter() - start) * 1000.0

        regions = self.build_regions(detections, snapshot)
        classifier_used = False
        if not regions and self._classifier is not None:
            classifier_used = await self._run_fallback(self._classifier, snapshot)

        return FusionResult(
            regions=regions,
            mask=self._latest_mask,
            classifier_used=classifier_used,
            detection_latency_ms=detection_latency_ms,
        )

    def build_regions(
        self, detections: list[Detection], snapshot: FrameSnapshot
    ) -> tuple[DetectionRegion, ...]:
        """Filter detections by confidence and convert them to portrait regions."""
        h, w = snapshot.color.shape[:2]
        regions: list[DetectionRegion] = []
        for det in detections:
            if det.confidence < self._config.confidence_threshold:
                continue
            rect = landscape_to_portrait_rect(normalize_bbox(det, w, h)).clamped()
            distance = None
            if snapshot.depth is not None:
                distance = region_nearest_depth(
                    snapshot.depth, rect, self._config.region_top_n
                )
            regions.append(
                DetectionRegion(
                    label=self._config.detection_label(det.cls_id),
                    confidence=float(det.confidence),
                    rect=rect,
                    distance=distance,
                )
            )
        return tuple(regions)

    async def _run_fallback(
        self, classifier: SemanticClassifier, snapshot: FrameSnapshot
    ) -> bool:
        self._fallback_count.add(1)
        try:
            mask = await classifier.classify(snapshot.color)
        except Exception as err:
            logger.warning(
                "Fallback classifier failed; keeping previous mask",
                extra={"frame_id": snapshot.frame_id, "error": str(err)},
            )
            return False
        self._latest_mask = np.asarray(mask)
        return True
