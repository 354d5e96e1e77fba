# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Label tables shared by the model adapters."""

from .coco_labels import COCO_LABELS, label_for  # noqa: F401
