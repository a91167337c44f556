# SPDX-License-Identifier: MIT
"""Utility modules for cargo-xcode."""
