# SPDX-License-Identifier: MIT
"""Generator configuration.

Settings come from, lowest to highest precedence:

1. Built-in defaults
2. `[workspace.metadata.xcode]` in the workspace manifest
3. `[package.metadata.xcode]` in a package manifest (per-package settings)
4. The CARGO_XCODE_ARCHS environment variable
5. Command-line options

Example manifest table:

    [package.metadata.xcode]
    archs = ["arm64", "x86_64"]
    deployment-target = "11.0"
    skip = false
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from cargo_xcode.core.errors import ManifestError

if TYPE_CHECKING:
    from cargo_xcode.core.workspace import Package, Workspace

# Xcode architecture name -> Rust target triple architecture
RUST_ARCHS = {
    "arm64": "aarch64",
    "arm64e": "arm64e",
    "i386": "i686",
    "x86_64": "x86_64",
}

DEFAULT_ARCHS = ("arm64", "x86_64")
DEFAULT_DEPLOYMENT_TARGET = "11.0"

ARCHS_ENV_VAR = "CARGO_XCODE_ARCHS"


@dataclass(frozen=True)
class XcodeConfig:
    """Settings that shape the generated project.

    Attributes:
        archs: Xcode architectures to build. More than one makes
            every product a universal binary.
        deployment_target: MACOSX_DEPLOYMENT_TARGET for the project.
        project_name: Name of the .xcodeproj (workspace level only).
        skip: Leave this package out of the project (package level only).
    """

    archs: tuple[str, ...] = DEFAULT_ARCHS
    deployment_target: str = DEFAULT_DEPLOYMENT_TARGET
    project_name: str | None = None
    skip: bool = False

    @property
    def universal(self) -> bool:
        return len(self.archs) > 1

    def merge_table(
        self, table: Mapping[str, Any], *, package: str | None = None
    ) -> XcodeConfig:
        """Return a copy updated from a `[metadata.xcode]` table.

        Raises:
            ManifestError: If a value has the wrong type or an
                architecture is not supported.
        """
        changes: dict[str, Any] = {}
        if "archs" in table:
            changes["archs"] = parse_archs(table["archs"], package=package)
        if "deployment-target" in table:
            value = table["deployment-target"]
            if not isinstance(value, str) or not value:
                raise ManifestError(
                    "xcode deployment-target must be a string", package=package
                )
            changes["deployment_target"] = value
        if "project-name" in table:
            value = table["project-name"]
            if not isinstance(value, str) or not value:
                raise ManifestError(
                    "xcode project-name must be a string", package=package
                )
            changes["project_name"] = value
        if "skip" in table:
            value = table["skip"]
            if not isinstance(value, bool):
                raise ManifestError("xcode skip must be true or false", package=package)
            changes["skip"] = value
        return replace(self, **changes)

    def with_overrides(
        self,
        *,
        archs: tuple[str, ...] | None = None,
        project_name: str | None = None,
    ) -> XcodeConfig:
        """Apply command-line overrides; None leaves a setting unchanged."""
        changes: dict[str, Any] = {}
        if archs is not None:
            changes["archs"] = archs
        if project_name is not None:
            changes["project_name"] = project_name
        return replace(self, **changes)


def parse_archs(value: Any, *, package: str | None = None) -> tuple[str, ...]:
    """Parse an architecture list.

    Accepts a list of names or a whitespace/comma separated string.
    Order is preserved and duplicates are dropped.

    Raises:
        ManifestError: If the value is malformed, empty, or names an
            architecture with no Rust equivalent.
    """
    if isinstance(value, str):
        names = value.replace(",", " ").split()
    elif isinstance(value, list) and all(isinstance(v, str) for v in value):
        names = list(value)
    else:
        raise ManifestError("xcode archs must be a list of strings", package=package)

    archs: list[str] = []
    for name in names:
        if name not in RUST_ARCHS:
            raise ManifestError(f"unsupported architecture {name!r}", package=package)
        if name not in archs:
            archs.append(name)
    if not archs:
        raise ManifestError("xcode archs must not be empty", package=package)
    return tuple(archs)


def _environment_archs(environ: Mapping[str, str] | None) -> tuple[str, ...] | None:
    environ = os.environ if environ is None else environ
    value = environ.get(ARCHS_ENV_VAR)
    if not value:
        return None
    return parse_archs(value)


def workspace_config(
    workspace: Workspace,
    *,
    overrides: XcodeConfig | None = None,
    archs: tuple[str, ...] | None = None,
    project_name: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> XcodeConfig:
    """Project-wide settings for a workspace.

    Args:
        workspace: The loaded workspace.
        overrides: Starting point instead of the defaults.
        archs: Command-line architecture override.
        project_name: Command-line project name override.
        environ: Environment to read (default: os.environ).
    """
    config = (overrides or XcodeConfig()).merge_table(workspace.metadata)
    env_archs = _environment_archs(environ)
    return config.with_overrides(archs=archs or env_archs, project_name=project_name)


def package_config(
    base: XcodeConfig,
    package: Package,
    *,
    archs: tuple[str, ...] | None = None,
    environ: Mapping[str, str] | None = None,
) -> XcodeConfig:
    """Settings for one package, layered over the workspace settings.

    Environment and command-line architecture overrides still win over
    the package table.
    """
    config = base.merge_table(package.metadata, package=package.name)
    env_archs = _environment_archs(environ)
    return config.with_overrides(archs=archs or env_archs)
