# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameSnapshot:
    """Read-only copies of one sensor frame's buffers."""

    frame_id: int
    captured_at: float
    color: np.ndarray
    depth: Optional[np.ndarray] = None
    """Landscape depth grid in metres, absent when the sensor had no depth."""


def _owned_copy(buffer: np.ndarray, dtype: Optional[type] = None) -> np.ndarray:
    copy = np.array(buffer, dtype=dtype, copy=True, order="C")
    copy.flags.writeable = False
    return copy


def take_snapshot(
    color: np.ndarray,
    depth: Optional[np.ndarray],
    captured_at: float,
    frame_id: int,
) -> Optional[FrameSnapshot]:
    """Copy the sensor buffers so the driver may reuse its memory immediately.

    Returns:
        The snapshot, or None when the buffers cannot be copied.
    """
    try:
        color_copy = _owned_copy(color)
        if color_copy.ndim not in (2, 3) or color_copy.size == 0:
            raise ValueError(f"unsupported color buffer shape {color_copy.shape}")

        depth_copy = None
        if depth is not None:
            depth_copy = _owned_copy(depth, dtype=np.float32)
            if depth_copy.ndim == 3 and depth_copy.shape[-1] == 1:
                depth_copy = depth_copy[..., 0]
            if depth_copy.ndim != 2 or depth_copy.size == 0:
                raise ValueError(f"unsupported depth buffer shape {depth_copy.shape}")
    except (TypeError, ValueError, MemoryError) as err:
        logger.warning(
            "Frame snapshot failed", extra={"frame_id": frame_id, "error": str(err)}
        )
        return None

    return FrameSnapshot(
        frame_id=frame_id, captured_at=captured_at, color=color_copy, depth=depth_copy
    )
