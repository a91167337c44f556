# SPDX-License-Identifier: MIT
"""Shared fixtures for cargo-xcode tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from cargo_xcode.config import ARCHS_ENV_VAR
from cargo_xcode.core.loader import parse_metadata
from cargo_xcode.core.workspace import Workspace


class MetadataBuilder:
    """Builds `cargo metadata --format-version 1` documents for tests.

    Example:
        builder = MetadataBuilder(tmp_path)
        builder.package("app", [("app", ["bin"])], root_package=True)
        builder.package("core", [("core", ["lib", "staticlib"])])
        builder.depend("app", "core")
        workspace = builder.workspace()
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.packages: dict[str, dict[str, Any]] = {}
        self.deps: dict[str, list[tuple[str, str | None]]] = {}
        self.workspace_metadata: dict[str, Any] | None = None

    def package(
        self,
        name: str,
        targets: list[tuple[str, list[str]]],
        *,
        version: str = "0.1.0",
        root_package: bool = False,
        xcode: dict[str, Any] | None = None,
        required_features: dict[str, list[str]] | None = None,
    ) -> str:
        """Add a workspace member and return its package id."""
        pkg_root = self.root if root_package else self.root / name
        package_id = f"path+file://{pkg_root}#{name}@{version}"
        required_features = required_features or {}
        self.packages[name] = {
            "name": name,
            "version": version,
            "id": package_id,
            "manifest_path": str(pkg_root / "Cargo.toml"),
            "dependencies": [],
            "targets": [
                {
                    "name": target_name,
                    "kind": kinds,
                    "crate_types": kinds,
                    "src_path": str(pkg_root / "src" / "lib.rs"),
                    "required-features": required_features.get(target_name, []),
                }
                for target_name, kinds in targets
            ],
            "metadata": {"xcode": xcode} if xcode is not None else None,
        }
        return package_id

    def depend(self, dependent: str, dependency: str, kind: str | None = None) -> None:
        """Declare that `dependent` depends on `dependency`."""
        self.deps.setdefault(dependent, []).append((dependency, kind))
        self.packages[dependent]["dependencies"].append(
            {
                "name": dependency,
                "kind": kind,
                "path": str(Path(self.packages[dependency]["manifest_path"]).parent),
            }
        )

    def build(self, resolve: bool = True) -> dict[str, Any]:
        """Return the metadata document."""
        ids = {name: pkg["id"] for name, pkg in self.packages.items()}
        nodes = [
            {
                "id": ids[name],
                "deps": [
                    {
                        "name": dep.replace("-", "_"),
                        "pkg": ids[dep],
                        "dep_kinds": [{"kind": kind, "target": None}],
                    }
                    for dep, kind in self.deps.get(name, [])
                ],
                "dependencies": [ids[dep] for dep, _ in self.deps.get(name, [])],
                "features": [],
            }
            for name in self.packages
        ]
        return {
            "packages": list(self.packages.values()),
            "workspace_members": list(ids.values()),
            "resolve": {"nodes": nodes, "root": None} if resolve else None,
            "target_directory": str(self.root / "target"),
            "version": 1,
            "workspace_root": str(self.root),
            "metadata": (
                {"xcode": self.workspace_metadata}
                if self.workspace_metadata is not None
                else None
            ),
        }

    def workspace(self, resolve: bool = True) -> Workspace:
        """Parse the metadata document into a Workspace."""
        return parse_metadata(self.build(resolve), manifest_path=self.root / "Cargo.toml")


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of generated settings."""
    monkeypatch.delenv(ARCHS_ENV_VAR, raising=False)
    monkeypatch.delenv("CARGO", raising=False)


@pytest.fixture
def metadata(tmp_path: Path) -> MetadataBuilder:
    """A metadata builder rooted at a temporary workspace."""
    return MetadataBuilder(tmp_path)
