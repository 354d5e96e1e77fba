# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from common.utils.depth import (
    nearest_cluster,
    region_nearest_depth,
    valid_depth_mask,
)

from common.utils.geometry import (
    landscape_to_portrait_point,
    landscape_to_portrait_rect,
    normalize_bbox,
    portrait_to_landscape_point,
    portrait_to_landscape_rect,
)

from common.utils.heatmap import (
    depth_nearness,
    encode_png,
    heat_colors,
    render_heatmap,
)

from common.utils.image import (
    letterbox,
    prepare_segmentation_input,
    scale_boxes,
)

from common.utils.math import (
    intersection_over_union,
    non_maximum_supression,
    xywh_to_xyxy,
)

__all__ = [
    "nearest_cluster",
    "region_nearest_depth",
    "valid_depth_mask",
    "landscape_to_portrait_point",
    "landscape_to_portrait_rect",
    "normalize_bbox",
    "portrait_to_landscape_point",
    "portrait_to_landscape_rect",
    "depth_nearness",
    "encode_png",
    "heat_colors",
    "render_heatmap",
    "letterbox",
    "prepare_segmentation_input",
    "scale_boxes",
    "intersection_over_union",
    "non_maximum_supression",
    "xywh_to_xyxy",
]
