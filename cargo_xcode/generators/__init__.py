# SPDX-License-Identifier: MIT
"""Project file generators for cargo-xcode."""

from cargo_xcode.generators.generator import BaseGenerator, Generator
from cargo_xcode.generators.xcode import XcodeGenerator

__all__ = [
    "BaseGenerator",
    "Generator",
    "XcodeGenerator",
]
