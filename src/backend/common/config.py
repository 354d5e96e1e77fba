# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import os
from typing import Optional
from pathlib import Path


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Application configuration."""

    # Detector settings
    MODEL_PATH: Path = Path(os.getenv("MODEL_PATH", "models/yolo11n.pt")).resolve()
    ONNX_MODEL_PATH: Path = Path(
        os.getenv("ONNX_MODEL_PATH", str(MODEL_PATH.with_suffix(".onnx")))
    ).resolve()
    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "torch").lower()
    DETECTOR_IMAGE_SIZE: int = int(os.getenv("DETECTOR_IMAGE_SIZE", "640"))
    DETECTOR_CONF_THRESHOLD: float = float(os.getenv("DETECTOR_CONF_THRESHOLD", "0.51"))
    DETECTOR_IOU_THRESHOLD: float = float(os.getenv("DETECTOR_IOU_THRESHOLD", "0.7"))
    DETECTOR_MAX_DETECTIONS: int = int(os.getenv("DETECTOR_MAX_DETECTIONS", "100"))
    DETECTOR_NUM_CLASSES: int = int(os.getenv("DETECTOR_NUM_CLASSES", "80"))
    TORCH_DEVICE: Optional[str] = os.getenv("TORCH_DEVICE")
    TORCH_HALF_PRECISION: str = os.getenv("TORCH_HALF_PRECISION", "auto")
    ONNX_PROVIDERS: list[str] = _env_list("ONNX_PROVIDERS")

    # Fallback segmentation classifier
    SEGMENTER_ENABLED: bool = _env_flag("SEGMENTER_ENABLED", "true")
    SEGMENTER_BACKEND: str = os.getenv("SEGMENTER_BACKEND", "torch").lower()
    SEGMENTER_MODEL_NAME: str = os.getenv(
        "SEGMENTER_MODEL_NAME", "deeplabv3_mobilenet_v3_large"
    )
    SEGMENTER_ONNX_MODEL_PATH: Path = Path(
        os.getenv("SEGMENTER_ONNX_MODEL_PATH", "models/segmenter.onnx")
    ).resolve()
    SEGMENTER_IMAGE_SIZE: int = int(os.getenv("SEGMENTER_IMAGE_SIZE", "520"))
    SEGMENTER_ONNX_PROVIDERS: list[str] = _env_list("SEGMENTER_ONNX_PROVIDERS")

    # Depth analysis
    REGION_TOP_N: int = int(
        os.getenv("REGION_TOP_N", "20")
    )  # number of nearest samples averaged per region
    CLUSTER_BAND_M: float = float(
        os.getenv("CLUSTER_BAND_M", "0.03")
    )  # depth band above the global minimum that forms the nearest cluster

    # Heat-map rendering
    HEATMAP_MAX_DEPTH_M: float = float(os.getenv("HEATMAP_MAX_DEPTH_M", "4.0"))
    HEATMAP_ALPHA: int = int(os.getenv("HEATMAP_ALPHA", "180"))

    # Alert policy
    ALERT_REPEAT_BELOW_M: float = float(os.getenv("ALERT_REPEAT_BELOW_M", "0.20"))
    ALERT_STRONG_BELOW_M: float = float(os.getenv("ALERT_STRONG_BELOW_M", "0.50"))
    ALERT_LIGHT_BELOW_M: float = float(os.getenv("ALERT_LIGHT_BELOW_M", "1.00"))
    ALERT_THROTTLE_S: float = float(os.getenv("ALERT_THROTTLE_S", "0.5"))
    ALERT_REPEAT_INTERVAL_S: float = float(os.getenv("ALERT_REPEAT_INTERVAL_S", "0.5"))

    # Diagnostics
    FPS_SAMPLE_SIZE: int = int(
        os.getenv("FPS_SAMPLE_SIZE", "30")
    )  # timestamps kept in the sliding frame-rate window

    # Replay frame source
    REPLAY_DIR: Optional[Path] = (
        Path(os.environ["REPLAY_DIR"]).resolve() if os.getenv("REPLAY_DIR") else None
    )
    REPLAY_FPS: float = float(os.getenv("REPLAY_FPS", "30.0"))

    # CORS settings
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")


config = Config()
