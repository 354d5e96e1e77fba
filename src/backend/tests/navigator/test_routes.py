# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import base64
import json

import numpy as np
import pytest
from fastapi.testclient import TestClient
from tests.test_utils import FakeDetector, RecordingActuator

from common.typing import Detection
from navigator.alerts import AlertPolicy
from navigator.fusion import DetectionFusionEngine, FusionConfig
from navigator.main import create_app
from navigator.pipeline import FramePipeline
from navigator.runtime import Runtime
from navigator.state import StateStore


def _runtime() -> Runtime:
    detector = FakeDetector([Detection(8, 4, 32, 16, 2, 0.88)])
    fusion_config = FusionConfig(detection_labels=detector.labels)
    pipeline = FramePipeline(
        fusion=DetectionFusionEngine(detector, None, fusion_config),
        alerts=AlertPolicy(RecordingActuator()),
        store=StateStore(),
        fusion_config=fusion_config,
    )
    return Runtime(pipeline=pipeline)


@pytest.fixture
def runtime() -> Runtime:
    return _runtime()


@pytest.fixture
def client(runtime):
    app = create_app(runtime_factory=lambda: runtime)
    with TestClient(app) as test_client:
        yield test_client


def _frame(near: float) -> tuple[np.ndarray, np.ndarray]:
    depth = np.full((40, 80), 3.0, dtype=np.float32)
    depth[5:15, 10:30] = near
    return np.zeros((40, 80, 3), dtype=np.uint8), depth


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "navigator"}


def test_state_before_first_frame(client) -> None:
    response = client.get("/state")
    assert response.status_code == 200
    body = response.json()
    assert body["frame_id"] == 0
    assert body["description"] == "no obstacle"
    assert body["alert_tier"] == "none"
    assert body["regions"] == []
    assert body["heatmap_png"] is None


def test_websocket_ping_and_state_stream(client, runtime) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.send_text(json.dumps({"type": "ping"}))
        assert json.loads(ws.receive_text()) == {"type": "pong"}

        ws.send_text("not json")
        color, depth = _frame(0.9)
        assert runtime.pipeline.on_frame(color, depth)

        message = json.loads(ws.receive_text())
        assert message["frame_id"] == 1
        assert message["description"] == "detected chair – 0.90 m"
        assert message["alert_tier"] == "light"
        assert message["regions"][0]["label"] == "chair"
        assert message["regions"][0]["box"]["x"] == pytest.approx(0.6)
        assert message["nearest"]["depth"] == pytest.approx(0.9)
        png = base64.b64decode(message["heatmap_png"])
        assert png.startswith(b"\x89PNG")

    body = client.get("/state").json()
    assert body["frame_id"] == 1
    assert body["counters"]["frames_processed"] == 1


def test_state_without_runtime_is_unavailable() -> None:
    from fastapi import FastAPI

    from navigator.routes import router

    app = FastAPI()
    app.include_router(router)
    with TestClient(app) as test_client:
        assert test_client.get("/state").status_code == 503
