# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from common.config import config
from common.core.detector import get_detector
from common.core.segmenter import load_segmenter
from navigator.alerts import AlertActuator, AlertPolicy, LoggingAlertActuator
from navigator.fusion import DetectionFusionEngine, FusionConfig
from navigator.pipeline import FramePipeline
from navigator.replay import ReplaySource
from navigator.state import StateStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Objects that live for the whole service lifetime."""

    pipeline: FramePipeline
    replay: Optional[ReplaySource] = None

    @property
    def store(self) -> StateStore:
        return self.pipeline.store

    async def start(self) -> None:
        await self.pipeline.start()
        if self.replay is not None:
            self.replay.start(self.pipeline)

    async def stop(self) -> None:
        if self.replay is not None:
            self.replay.stop()
        await self.pipeline.shutdown()


def build_runtime(
    detector_model_path: Optional[Path] = None,
    segmenter_model_path: Optional[Path] = None,
    replay_dir: Optional[Path] = None,
    replay_fps: Optional[float] = None,
    actuator: Optional[AlertActuator] = None,
) -> Runtime:
    """Load the models and wire the pipeline.

    A detector that cannot be loaded is fatal; a classifier that cannot be
    loaded only disables the fallback path.
    """
    detector = get_detector(detector_model_path)
    classifier = load_segmenter(segmenter_model_path)
    fusion_config = FusionConfig.from_config(
        config,
        detection_labels=detector.labels,
        segmentation_labels=classifier.labels if classifier is not None else (),
    )
    pipeline = FramePipeline(
        fusion=DetectionFusionEngine(detector, classifier, fusion_config),
        alerts=AlertPolicy.from_config(actuator or LoggingAlertActuator()),
        store=StateStore(),
        fusion_config=fusion_config,
    )

    replay_dir = replay_dir or config.REPLAY_DIR
    replay = None
    if replay_dir is not None:
        replay = ReplaySource(replay_dir, fps=replay_fps or config.REPLAY_FPS)
    logger.info(
        "Runtime ready",
        extra={
            "fallback_available": classifier is not None,
            "replay_dir": str(replay_dir) if replay_dir else None,
        },
    )
    return Runtime(pipeline=pipeline, replay=replay)
