# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Per-frame obstacle perception pipeline for the assistive navigation device."""
