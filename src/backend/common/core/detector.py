# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import logging

from pathlib import Path
from typing import Any, Optional, Callable, Sequence

import cv2
import numpy as np
import torch
from ultralytics import YOLO  # type: ignore[import-untyped]

from common.config import config
from common.core import onnx_session
from common.data import COCO_LABELS
from common.protocols import ObjectDetectionBackend, ObjectDetector
from common.typing import Detection
from common.utils.image import letterbox, scale_boxes
from common.utils.math import non_maximum_supression, xywh_to_xyxy

logger = logging.getLogger(__name__)

BackendFactory = Callable[[Optional[Path]], ObjectDetectionBackend]
_backend_registry: dict[str, BackendFactory] = {}


def register_detector_backend(name: str, factory: BackendFactory) -> None:
    """Register a detector backend factory by name."""
    normalized = name.strip().lower()
    if not normalized:
        raise ValueError("Detector backend name cannot be empty")
    _backend_registry[normalized] = factory


def available_detector_backends() -> list[str]:
    """Return the list of known detector backends."""
    return sorted(_backend_registry)


def _build_engine(
    model_path: Optional[Path], backend: Optional[str]
) -> ObjectDetectionBackend:
    backend_name = (backend or config.DETECTOR_BACKEND).lower()
    try:
        factory = _backend_registry[backend_name]
    except KeyError:
        known = ", ".join(available_detector_backends())
        raise ValueError(
            f"Unsupported DETECTOR_BACKEND '{backend_name}'. Known backends: {known or 'none'}."
        ) from None
    logger.info("Initializing detector", extra={"backend": backend_name})
    return factory(model_path)


def get_detections(inference_results: list[Any]) -> list[Detection]:
    """Convert ultralytics inference output into detections."""
    if not inference_results:
        return []

    result = inference_results[0]
    if result.boxes is None or len(result.boxes) == 0:
        return []

    bbox_coords = result.boxes.xyxy.cpu().numpy().astype(int)
    class_ids = result.boxes.cls.cpu().numpy().astype(int)
    confidences = result.boxes.conf.cpu().numpy()

    return [
        Detection(int(x1), int(y1), int(x2), int(y2), int(class_id), float(confidence))
        for (x1, y1, x2, y2), class_id, confidence in zip(
            bbox_coords, class_ids, confidences
        )
    ]


class _Detector(ObjectDetector):
    def __init__(
        self, model_path: Optional[Path] = None, backend: Optional[str] = None
    ) -> None:
        """Initialize the object detector for the chosen backend.

        Args:
            model_path: Optional path to a model file to override config.
            backend: Optional backend name ('torch' or 'onnx'). If None, uses config.DETECTOR_BACKEND.
        """
        self._engine: ObjectDetectionBackend = _build_engine(model_path, backend)
        self._lock = asyncio.Lock()

    @property
    def labels(self) -> Sequence[str]:
        return self._engine.labels

    async def infer(self, frame_rgb: np.ndarray) -> list[Detection]:
        """Run detection on a single frame without blocking the event loop.

        Inference calls are serialized; the sync backend runs in the default
        executor.
        """
        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._engine.predict, frame_rgb)


_detector_instance: Optional[_Detector] = None


def get_detector(model_path: Optional[Path] = None) -> _Detector:
    """Get or create the singleton detector instance.

    Args:
        model_path: Path to the model file. Only used on first call.
    """
    global _detector_instance
    if _detector_instance is None:
        _detector_instance = _Detector(model_path=model_path)
    return _detector_instance


class _DetectorEngine:
    """Base class for synchronous detector backends."""

    labels: Sequence[str] = COCO_LABELS

    def predict(self, frame_rgb: np.ndarray) -> list[Detection]:
        """Run inference on an RGB frame and return parsed detections."""
        raise NotImplementedError


class _TorchDetector(_DetectorEngine):
    def __init__(self, model_path: Optional[Path] = None) -> None:
        if model_path is None:
            model_path = config.MODEL_PATH
        else:
            model_path = Path(model_path).resolve()

        self._model = YOLO(str(model_path))
        names = getattr(self._model, "names", None)
        if isinstance(names, dict) and names:
            self.labels = [str(names[key]) for key in sorted(names)]
        self._device = self._resolve_device(config.TORCH_DEVICE)
        self._half = self._resolve_half_precision(config.TORCH_HALF_PRECISION)
        self._imgsz = config.DETECTOR_IMAGE_SIZE
        self._conf = config.DETECTOR_CONF_THRESHOLD

    def predict(self, frame_rgb: np.ndarray) -> list[Detection]:
        """Run a single-frame inference with the torch-backed YOLO model.

        ultralytics treats numpy input as BGR, so the RGB frame is converted first.
        """
        frame_bgr = cv2.cvtColor(frame_rgb, cv2.COLOR_RGB2BGR)
        inference_results = self._model.predict(
            frame_bgr,
            imgsz=self._imgsz,
            conf=self._conf,
            verbose=False,
            device=self._device,
            half=self._half,
        )
        return get_detections(inference_results)

    def _resolve_device(self, override: Optional[str]) -> str:
        """Pick the torch device, favoring explicit override, then CUDA/MPS, else CPU."""
        if override:
            return override
        if torch.cuda.is_available():
            return "cuda:0"
        if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            return "mps"
        return "cpu"

    def _resolve_half_precision(self, pref: Optional[str]) -> bool:
        """Return whether to run the model in FP16."""
        pref = (pref or "auto").lower()
        if pref in ("true", "1", "yes"):
            return True
        if pref in ("false", "0", "no"):
            return False
        return self._device.startswith("cuda")


class _OnnxRuntimeDetector(_DetectorEngine):
    def __init__(self, model_path: Optional[Path] = None) -> None:
        if model_path is None:
            model_path = config.ONNX_MODEL_PATH
        else:
            model_path = Path(model_path).resolve()

        self._session = onnx_session.create_session(
            model_path, config.ONNX_PROVIDERS, purpose="detector"
        )
        self.labels = onnx_session.metadata_labels(self._session) or COCO_LABELS
        self._input_name = self._session.get_inputs()[0].name
        self._output_names = [node.name for node in self._session.get_outputs()]
        self._imgsz = config.DETECTOR_IMAGE_SIZE
        self._conf = config.DETECTOR_CONF_THRESHOLD
        self._iou = config.DETECTOR_IOU_THRESHOLD
        self._max_det = config.DETECTOR_MAX_DETECTIONS
        self._num_classes = config.DETECTOR_NUM_CLASSES

    def predict(self, frame_rgb: np.ndarray) -> list[Detection]:
        """Run ONNX Runtime inference and return scaled, filtered detections."""
        input_tensor, ratio, dwdh = self._prepare_input(frame_rgb)
        outputs = self._session.run(self._output_names, {self._input_name: input_tensor})[0]
        h, w = frame_rgb.shape[:2]
        return self._postprocess(outputs, (h, w), ratio, dwdh)

    def _prepare_input(
        self, frame_rgb: np.ndarray
    ) -> tuple[np.ndarray, float, tuple[float, float]]:
        """Letterbox, normalize, and batch the input frame."""
        resized, ratio, dwdh = letterbox(frame_rgb, self._imgsz)
        img = resized.astype(np.float32) / 255.0
        img = np.transpose(img, (2, 0, 1))
        img = np.expand_dims(img, axis=0)
        return np.ascontiguousarray(img), ratio, dwdh

    def _postprocess(
        self,
        output: np.ndarray,
        original_hw: tuple[int, int],
        ratio: float,
        dwdh: tuple[float, float],
    ) -> list[Detection]:
        """Decode raw YOLO output rows, apply the confidence cut and per-class NMS."""
        preds = np.squeeze(output, axis=0)
        if preds.ndim == 1:
            preds = np.expand_dims(preds, 0)
        elif preds.ndim > 2:
            preds = preds.reshape(-1, preds.shape[-1])

        expected_no_obj = 4 + self._num_classes
        expected_with_obj = expected_no_obj + 1
        if preds.shape[-1] not in (expected_no_obj, expected_with_obj):
            preds = preds.T

        cols = preds.shape[-1]
        if cols not in (expected_no_obj, expected_with_obj):
            raise RuntimeError(
                f"Unexpected ONNX output shape {preds.shape}, expected "
                f"last dimension to be {expected_no_obj} or {expected_with_obj}"
            )

        boxes = scale_boxes(xywh_to_xyxy(preds[:, :4]), ratio, dwdh, original_hw)
        if cols == expected_with_obj:
            class_scores = preds[:, 5:] * preds[:, 4:5]
        else:
            class_scores = preds[:, 4:]

        confidences = np.max(class_scores, axis=1)
        class_ids = np.argmax(class_scores, axis=1)

        mask = confidences >= self._conf
        boxes, confidences, class_ids = boxes[mask], confidences[mask], class_ids[mask]
        if boxes.size == 0:
            return []

        detections: list[Detection] = []
        for cls in np.unique(class_ids):
            cls_mask = class_ids == cls
            cls_boxes = boxes[cls_mask]
            cls_scores = confidences[cls_mask]
            for idx in non_maximum_supression(cls_boxes, cls_scores, self._iou):
                x1, y1, x2, y2 = (int(round(v)) for v in cls_boxes[idx][:4])
                detections.append(
                    Detection(x1, y1, x2, y2, int(cls), float(cls_scores[idx]))
                )

        detections.sort(key=lambda det: det.confidence, reverse=True)
        return detections[: self._max_det]


# Register built-in backends
register_detector_backend("torch", _TorchDetector)
register_detector_backend("onnx", _OnnxRuntimeDetector)
