# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import threading

import numpy as np
import pytest

from navigator.replay import ReplaySource


class CollectingPipeline:
    def __init__(self, expected: int) -> None:
        self.frames: list[tuple[np.ndarray, object]] = []
        self._expected = expected
        self.done = threading.Event()

    def on_frame(self, color, depth=None) -> bool:
        self.frames.append((color, depth))
        if len(self.frames) >= self._expected:
            self.done.set()
        return True


@pytest.fixture
def recording(tmp_path):
    color = np.zeros((2, 3, 3), dtype=np.uint8)
    np.savez(tmp_path / "000.npz", color=color, depth=np.full((2, 3), 1.0, dtype=np.float32))
    np.savez(tmp_path / "001.npz", color=color + 1)
    return tmp_path


def test_read_frame_loops_in_name_order(recording) -> None:
    source = ReplaySource(recording, fps=30)
    first = source.read_frame()
    second = source.read_frame()
    third = source.read_frame()

    assert first[1] is not None and (first[1] == 1.0).all()
    assert second[1] is None
    assert (second[0] == 1).all()
    assert (third[0] == first[0]).all()


def test_replay_feeds_pipeline_from_thread(recording) -> None:
    source = ReplaySource(recording, fps=0)
    pipeline = CollectingPipeline(expected=4)

    source.start(pipeline)
    try:
        assert pipeline.done.wait(timeout=5.0)
    finally:
        source.stop()

    assert len(pipeline.frames) >= 4


def test_empty_directory_is_rejected(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        ReplaySource(tmp_path)


def test_missing_directory_is_rejected(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        ReplaySource(tmp_path / "missing")
