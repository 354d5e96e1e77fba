# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from pathlib import Path
from typing import Optional

import numpy as np
import pytest
from tests.test_utils import DummyBoxes, DummyResult

import common.core.detector as det
import common.core.onnx_session as onnx_session
from common.data import COCO_LABELS
from common.typing import Detection
from .conftest import DummySession, dummy_ort


@pytest.fixture
def torch_detector(monkeypatch, tmp_path):
    weights = tmp_path / "dummy.pt"
    weights.write_text("fake")

    class DummyYOLO:
        def __init__(self, *_args, **_kwargs):
            self.calls = 0
            self.names = {0: "person", 1: "bicycle"}
            self.frames = []

        def predict(self, source, *_args, **_kwargs):
            self.calls += 1
            self.frames.append(source)
            boxes = DummyBoxes(
                xyxy=[[10, 20, 50, 60]],
                cls=[1],
                conf=[0.9],
            )
            return [DummyResult(boxes)]

    monkeypatch.setattr(det, "YOLO", DummyYOLO)
    monkeypatch.setattr(det.config, "MODEL_PATH", weights)
    monkeypatch.setattr(det.config, "TORCH_DEVICE", "cpu")
    monkeypatch.setattr(det.config, "TORCH_HALF_PRECISION", "false")
    monkeypatch.setattr(det.config, "DETECTOR_BACKEND", "torch")

    detector = det._Detector(backend="torch")
    return detector


@pytest.mark.asyncio
async def test_infer_returns_detections(torch_detector):
    """infer() should return pixel-space Detection objects with correct types."""
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    detections = await torch_detector.infer(frame)
    assert isinstance(detections, list)
    assert len(detections) == 1
    detection = detections[0]

    assert (detection.x1, detection.y1, detection.x2, detection.y2) == (10, 20, 50, 60)
    assert detection.cls_id == 1
    assert pytest.approx(detection.confidence, rel=1e-3) == 0.9


@pytest.mark.asyncio
async def test_infer_runs_model_every_frame(torch_detector):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    await torch_detector.infer(frame)
    await torch_detector.infer(frame)
    assert torch_detector._engine._model.calls == 2


@pytest.mark.asyncio
async def test_torch_detector_feeds_bgr_to_yolo(torch_detector):
    frame = np.zeros((4, 6, 3), dtype=np.uint8)
    frame[..., 0] = 200  # red in RGB
    frame[..., 2] = 10

    await torch_detector.infer(frame)

    (received,) = torch_detector._engine._model.frames
    assert received.shape == frame.shape
    assert (received[..., 2] == 200).all()
    assert (received[..., 0] == 10).all()
    # the caller's buffer is left untouched
    assert (frame[..., 0] == 200).all()


def test_torch_detector_labels_come_from_model(torch_detector):
    assert list(torch_detector.labels) == ["person", "bicycle"]


def test_get_detections_handles_empty_results():
    assert det.get_detections([]) == []
    empty = DummyResult(DummyBoxes(xyxy=np.zeros((0, 4)), cls=[], conf=[]))
    assert det.get_detections([empty]) == []


def _dummy_ort(dummy_output):
    return dummy_ort(DummySession(dummy_output, input_name="images"))


@pytest.fixture
def onnx_settings(monkeypatch, tmp_path):
    onnx_path = tmp_path / "dummy.onnx"
    onnx_path.write_text("fake")
    monkeypatch.setattr(det.config, "DETECTOR_BACKEND", "onnx")
    monkeypatch.setattr(det.config, "ONNX_MODEL_PATH", onnx_path)
    monkeypatch.setattr(det.config, "DETECTOR_IMAGE_SIZE", 4)
    monkeypatch.setattr(det.config, "DETECTOR_CONF_THRESHOLD", 0.5)
    monkeypatch.setattr(det.config, "DETECTOR_IOU_THRESHOLD", 0.5)
    monkeypatch.setattr(det.config, "DETECTOR_MAX_DETECTIONS", 10)
    monkeypatch.setattr(det.config, "DETECTOR_NUM_CLASSES", 1)
    monkeypatch.setattr(det.config, "ONNX_PROVIDERS", [])
    return onnx_path


@pytest.mark.asyncio
async def test_infer_with_onnx_backend(monkeypatch, onnx_settings):
    dummy_output = np.array([[[2.0, 2.0, 2.0, 2.0, 0.95]]], dtype=np.float32)
    monkeypatch.setattr(onnx_session, "ort", _dummy_ort(dummy_output))

    detector = det._Detector(backend="onnx")
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    detections = await detector.infer(frame)

    assert detections == [Detection(1, 1, 3, 3, 0, pytest.approx(0.95, rel=1e-3))]
    # No label metadata in the model: fall back to COCO names.
    assert detector.labels == COCO_LABELS


@pytest.mark.asyncio
async def test_onnx_backend_suppresses_overlapping_boxes(monkeypatch, onnx_settings):
    dummy_output = np.array(
        [[[2.0, 2.0, 2.0, 2.0, 0.95], [2.0, 2.0, 2.0, 2.2, 0.7], [2.0, 2.0, 2.0, 2.0, 0.2]]],
        dtype=np.float32,
    )
    monkeypatch.setattr(onnx_session, "ort", _dummy_ort(dummy_output))

    detector = det._Detector(backend="onnx")
    detections = await detector.infer(np.zeros((4, 4, 3), dtype=np.uint8))

    assert len(detections) == 1
    assert detections[0].confidence == pytest.approx(0.95, rel=1e-3)


def test_onnx_backend_requires_onnxruntime(monkeypatch, onnx_settings):
    monkeypatch.setattr(onnx_session, "ort", None)
    with pytest.raises(RuntimeError, match="onnxruntime is required"):
        det._Detector(backend="onnx")


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError, match="Unsupported DETECTOR_BACKEND"):
        det._Detector(backend="does-not-exist")


@pytest.mark.asyncio
async def test_register_detector_backend():
    class DummyBackend(det._DetectorEngine):
        def __init__(self, model_path: Optional[Path] = None) -> None:
            pass

        def predict(self, frame_rgb):
            return [Detection(1, 2, 3, 4, 5, 0.8)]

    det.register_detector_backend("dummy", DummyBackend)
    assert "dummy" in det.available_detector_backends()
    detector = det._Detector(backend="dummy")

    detections = await detector.infer(np.zeros((2, 2, 3), dtype=np.uint8))
    assert detections == [Detection(1, 2, 3, 4, 5, 0.8)]
