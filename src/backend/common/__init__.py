# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Shared configuration, model adapters and numeric helpers."""

__version__ = "0.1.0"
