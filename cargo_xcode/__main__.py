# SPDX-License-Identifier: MIT
"""Allow running cargo-xcode as `python -m cargo_xcode`."""

import sys

from cargo_xcode.cli import main

sys.exit(main())
