# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from navigator.cli import main

if __name__ == "__main__":
    main()
