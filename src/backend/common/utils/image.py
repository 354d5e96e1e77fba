# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

import numpy as np
import cv2

_IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
_IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


def letterbox(
    image: np.ndarray,
    new_size: int,
    color: tuple[int, int, int] = (114, 114, 114),
) -> tuple[np.ndarray, float, tuple[float, float]]:
    """Fit an image into a new_size x new_size square, padding the short side.

    Returns:
        padded: Square image.
        scale: Resize factor applied to the source image.
        offset: Padding offset (dw/2, dh/2) in pixels.
    """
    h, w = image.shape[:2]
    scale = min(new_size / h, new_size / w)
    unpadded = (int(round(w * scale)), int(round(h * scale)))
    resized = cv2.resize(image, unpadded, interpolation=cv2.INTER_LINEAR)

    dw = new_size - unpadded[0]
    dh = new_size - unpadded[1]
    top, bottom = dh // 2, dh - dh // 2
    left, right = dw // 2, dw - dw // 2

    padded = cv2.copyMakeBorder(
        resized, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color
    )
    return padded, scale, (dw / 2, dh / 2)


def scale_boxes(
    boxes: np.ndarray,
    ratio: float,
    dwdh: tuple[float, float],
    original_hw: tuple[int, int],
) -> np.ndarray:
    """Map xyxy boxes from letterboxed coordinates back onto the source image."""
    boxes = boxes.copy()
    boxes[:, [0, 2]] -= dwdh[0]
    boxes[:, [1, 3]] -= dwdh[1]
    boxes[:, :4] /= max(ratio, 1e-6)

    h, w = original_hw
    boxes[:, [0, 2]] = np.clip(boxes[:, [0, 2]], 0, max(w - 1, 0))
    boxes[:, [1, 3]] = np.clip(boxes[:, [1, 3]], 0, max(h - 1, 0))
    return boxes


def prepare_segmentation_input(frame_rgb: np.ndarray, size: int) -> np.ndarray:
    """Resize and ImageNet-normalize an RGB frame into a (1, 3, size, size) batch."""
    resized = cv2.resize(frame_rgb, (size, size), interpolation=cv2.INTER_LINEAR)
    img = resized.astype(np.float32) / 255.0
    img = (img - _IMAGENET_MEAN) / _IMAGENET_STD
    img = np.transpose(img, (2, 0, 1))
    return np.ascontiguousarray(np.expand_dims(img, axis=0))
