# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import numpy as np

if TYPE_CHECKING:
    from navigator.pipeline import FramePipeline

logger = logging.getLogger(__name__)


class ReplaySource:
    """
    Feeds recorded frames to a pipeline from its own thread, like a sensor callback.

    Each ``*.npz`` file in ``directory`` holds a ``color`` array (H x W x 3,
    RGB) and optionally a ``depth`` array (H x W, metres). Files are played in
    name order and the recording loops when it reaches the end.
    """

    def __init__(self, directory: Path, fps: float = 30.0) -> None:
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Replay directory not found: {self.directory}")
        self.files = sorted(self.directory.glob("*.npz"))
        if not self.files:
            raise FileNotFoundError(f"No .npz frames in replay directory: {self.directory}")
        self.interval = 1.0 / fps if fps > 0 else 0.0
        self._index = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def read_frame(self) -> tuple[np.ndarray, Optional[np.ndarray]]:
        """Return the next (color, depth) pair, looping at the end."""
        path = self.files[self._index]
        self._index = (self._index + 1) % len(self.files)
        with np.load(path) as data:
            color = data["color"]
            depth = data["depth"] if "depth" in data.files else None
        return color, depth

    def start(self, pipeline: FramePipeline) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(pipeline,), name="replay-source", daemon=True
        )
        self._thread.start()
        logger.info(
            "Replay started",
            extra={"directory": str(self.directory), "frames": len(self.files)},
        )

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self, pipeline: FramePipeline) -> None:
        next_due = time.monotonic()
        while not self._stop.is_set():
            try:
                color, depth = self.read_frame()
            except (OSError, KeyError, ValueError) as err:
                logger.warning("Replay frame unreadable, skipping", extra={"error": str(err)})
            else:
                pipeline.on_frame(color, depth)
            next_due += self.interval
            self._stop.wait(max(next_due - time.monotonic(), 0.0))
