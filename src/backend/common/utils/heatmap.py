# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import cv2
import numpy as np

# blue -> cyan -> green -> yellow -> red, indexed by nearness in [0, 1]
_RAMP_STOPS = np.array([0.0, 0.25, 0.5, 0.75, 1.0])
_RAMP_RED = np.array([0.0, 0.0, 0.0, 255.0, 255.0])
_RAMP_GREEN = np.array([0.0, 255.0, 255.0, 255.0, 0.0])
_RAMP_BLUE = np.array([255.0, 255.0, 0.0, 0.0, 0.0])


def depth_nearness(depth_map: np.ndarray, max_depth: float = 4.0) -> np.ndarray:
    """Map depth in metres to nearness in [0, 1] (1 = touching, 0 = max_depth or beyond).

    Samples without a reading are treated as ``max_depth`` and render as far.
    """
    depth = np.asarray(depth_map, dtype=np.float32)
    effective = np.where(np.isfinite(depth) & (depth > 0), depth, max_depth)
    return np.clip((max_depth - effective) / max_depth, 0.0, 1.0)


def heat_colors(nearness: np.ndarray) -> np.ndarray:
    """Apply the five-stop color ramp to a nearness grid.

    Returns:
        (H, W, 3) uint8 RGB image.
    """
    n = np.clip(nearness, 0.0, 1.0)
    channels = [np.interp(n, _RAMP_STOPS, ramp) for ramp in (_RAMP_RED, _RAMP_GREEN, _RAMP_BLUE)]
    return np.stack(channels, axis=-1).astype(np.uint8)


def render_heatmap(
    depth_map: np.ndarray, max_depth: float = 4.0, alpha: int = 180
) -> np.ndarray:
    """Render a depth grid as a translucent heat-map, one pixel per depth sample.

    Args:
        depth_map: Depth grid (H x W) in metres.
        max_depth: Depth mapped to the far end of the ramp.
        alpha: Constant alpha applied to every pixel.

    Returns:
        (H, W, 4) uint8 RGBA image.
    """
    rgb = heat_colors(depth_nearness(depth_map, max_depth))
    a = np.full(rgb.shape[:2] + (1,), np.clip(alpha, 0, 255), dtype=np.uint8)
    return np.concatenate([rgb, a], axis=-1)


def encode_png(rgba: np.ndarray) -> bytes:
    """Encode an RGBA image as PNG, keeping the alpha channel."""
    ok, buf = cv2.imencode(".png", cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()
