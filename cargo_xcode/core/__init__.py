# SPDX-License-Identifier: MIT
"""Workspace model, target selection and the Xcode object graph."""
