# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

import numpy as np


def xywh_to_xyxy(xywh: np.ndarray) -> np.ndarray:
    """Convert bounding boxes from center-size format to corner format."""
    half = xywh[:, 2:4] / 2
    return np.concatenate([xywh[:, :2] - half, xywh[:, :2] + half], axis=1)


def non_maximum_supression(
    boxes: np.ndarray, scores: np.ndarray, iou_thres: float
) -> list[int]:
    """Return indices of boxes kept after greedy non-maximum suppression."""
    if boxes.size == 0:
        return []
    order = scores.argsort()[::-1]
    keep: list[int] = []
    while order.size > 0:
        best = int(order[0])
        keep.append(best)
        rest = order[1:]
        if rest.size == 0:
            break
        overlaps = intersection_over_union(boxes[best], boxes[rest])
        order = rest[overlaps <= iou_thres]
    return keep


def intersection_over_union(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """Compute IoU between one xyxy box and an (N, 4) array of xyxy boxes."""
    if boxes.size == 0:
        return np.empty(0, dtype=np.float32)
    top_left = np.maximum(box[:2], boxes[:, :2])
    bottom_right = np.minimum(box[2:4], boxes[:, 2:4])
    inter = np.clip(bottom_right - top_left, 0.0, None).prod(axis=1)

    box_area = max(float((box[2] - box[0]) * (box[3] - box[1])), 0.0)
    sizes = np.clip(boxes[:, 2:4] - boxes[:, :2], 0.0, None)
    union = box_area + sizes.prod(axis=1) - inter + 1e-6
    return inter / union
