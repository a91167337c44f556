# SPDX-License-Identifier: MIT
"""Generator protocol and the output layout shared by generators.

Generators take a loaded Workspace and write an IDE project bundle
next to it (or into an explicit output directory). Where the bundle
goes and what it is called is the same for every generator; only the
bundle's extension and contents differ.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cargo_xcode.core.workspace import Workspace


@runtime_checkable
class Generator(Protocol):
    """Protocol for project file generators."""

    @property
    def name(self) -> str:
        """Generator name (e.g., 'xcode')."""
        ...

    def generate(self, workspace: Workspace, output_dir: Path | None = None) -> Path | None:
        """Generate project files for a workspace.

        Args:
            workspace: The workspace to generate for.
            output_dir: Directory to write output files to.

        Returns:
            Path of the generated project, or None if nothing was written.
        """
        ...


class BaseGenerator:
    """Base class that decides where a generator's bundle is written.

    Attributes:
        bundle_suffix: Extension of the bundle directory, e.g. ".xcodeproj".
    """

    bundle_suffix = ""

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def output_dir_for(self, workspace: Workspace, output_dir: Path | None = None) -> Path:
        """Absolute directory the bundle is written into.

        Defaults to the workspace root, so the bundle sits beside the
        workspace's Cargo.toml.
        """
        return Path(output_dir or workspace.root).resolve()

    def project_name(self, workspace: Workspace) -> str:
        """Bundle name without the extension.

        The root package's name, or the workspace directory's name for a
        virtual workspace.
        """
        root_package = workspace.root_package
        if root_package is not None:
            return root_package.name
        return workspace.root.name

    def bundle_path(self, workspace: Workspace, output_dir: Path | None = None) -> Path:
        """Absolute path of the bundle directory."""
        directory = self.output_dir_for(workspace, output_dir)
        return directory / f"{self.project_name(workspace)}{self.bundle_suffix}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
