# SPDX-License-Identifier: MIT
"""
cargo-xcode: generate Xcode projects for cargo workspaces.

The generated project builds the workspace's binaries, static libraries
and C-ABI dynamic libraries through cargo, so they can be added to an
app's Xcode project as a subproject.
"""

from __future__ import annotations

from pathlib import Path

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
# These imports must be after __version__ is defined
from cargo_xcode.config import XcodeConfig  # noqa: E402
from cargo_xcode.core.errors import CargoXcodeError  # noqa: E402
from cargo_xcode.core.loader import load_workspace  # noqa: E402
from cargo_xcode.core.workspace import Workspace  # noqa: E402
from cargo_xcode.generators.xcode import XcodeGenerator  # noqa: E402


def generate_project(
    root: Path | str = ".",
    *,
    output_dir: Path | str | None = None,
    archs: tuple[str, ...] | None = None,
    project_name: str | None = None,
    cargo: str | None = None,
    offline: bool = False,
) -> Path | None:
    """Load a workspace and write its Xcode project.

    Args:
        root: Workspace directory or path to its Cargo.toml.
        output_dir: Where to put the .xcodeproj (default: workspace root).
        archs: Architectures to build, overriding all configuration.
        project_name: Name of the .xcodeproj.
        cargo: Cargo executable to query.
        offline: Run cargo without network access.

    Returns:
        Path of the written project.pbxproj, or None if the workspace
        has nothing to build.

    Raises:
        CargoXcodeError: If the workspace cannot be loaded or translated.
    """
    workspace = load_workspace(root, cargo=cargo, offline=offline)
    generator = XcodeGenerator(archs=archs, project_name=project_name)
    return generator.generate(workspace, Path(output_dir) if output_dir else None)


__all__ = [
    # Version
    "__version__",
    # Entry point
    "generate_project",
    # Core classes
    "CargoXcodeError",
    "Workspace",
    "XcodeConfig",
    "load_workspace",
    # Generators
    "XcodeGenerator",
]
