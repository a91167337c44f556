# SPDX-License-Identifier: MIT
"""Load a cargo workspace through `cargo metadata`.

The JSON printed by `cargo metadata --format-version 1` is treated as an
external, versioned protocol: it is validated here into Workspace records
and nothing else in cargo-xcode looks at it.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any

from cargo_xcode.core.errors import ManifestError
from cargo_xcode.core.workspace import (
    AUXILIARY_KINDS,
    DependencyEdge,
    Package,
    Target,
    TargetKind,
    Version,
    Workspace,
    check_acyclic,
)

logger = logging.getLogger(__name__)

METADATA_FORMAT_VERSION = 1


def find_manifest(root: Path | str) -> Path:
    """Locate the manifest for a workspace root.

    Args:
        root: A directory containing Cargo.toml, or the manifest itself.

    Returns:
        Absolute path to the manifest.

    Raises:
        ManifestError: If no manifest exists.
    """
    path = Path(root)
    if path.is_dir():
        path = path / "Cargo.toml"
    if not path.is_file():
        raise ManifestError(f"no Cargo.toml found at {path}")
    return path.resolve()


def query_metadata(
    manifest_path: Path,
    *,
    cargo: str | None = None,
    offline: bool = False,
) -> dict[str, Any]:
    """Run `cargo metadata` and decode its output.

    Blocks until cargo exits; no timeout is applied.

    Args:
        manifest_path: Path to the workspace manifest.
        cargo: Cargo executable (default: $CARGO, then "cargo").
        offline: Pass --offline to cargo.

    Returns:
        The decoded JSON document.

    Raises:
        ManifestError: If cargo cannot run, fails, or prints invalid JSON.
    """
    cargo = cargo or os.environ.get("CARGO") or "cargo"
    cmd = [
        cargo,
        "metadata",
        "--format-version",
        str(METADATA_FORMAT_VERSION),
        "--manifest-path",
        str(manifest_path),
    ]
    if offline:
        cmd.append("--offline")

    logger.info("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=manifest_path.parent,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise ManifestError(f"failed to run {cargo}: {e}") from e

    if result.returncode != 0:
        raise ManifestError(
            f"cargo metadata exited with status {result.returncode}",
            stderr=result.stderr,
        )

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ManifestError(f"cargo metadata printed invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError("cargo metadata output is not a JSON object")
    return data


def load_workspace(
    root: Path | str,
    *,
    cargo: str | None = None,
    offline: bool = False,
) -> Workspace:
    """Query cargo for a workspace and build the in-memory model.

    Args:
        root: Workspace directory or manifest path.
        cargo: Cargo executable override.
        offline: Run cargo without network access.

    Raises:
        ManifestError: If the metadata query fails or is malformed.
        CycleError: If the target dependency graph has a cycle.
    """
    manifest_path = find_manifest(root)
    data = query_metadata(manifest_path, cargo=cargo, offline=offline)
    workspace = parse_metadata(data, manifest_path=manifest_path)
    logger.info(
        "Loaded %d package(s) from %s", len(workspace.packages), manifest_path
    )
    return workspace


def _require(
    mapping: dict[str, Any],
    key: str,
    expected: type | tuple[type, ...],
    context: str,
    *,
    package: str | None = None,
) -> Any:
    """Fetch a field from a metadata object and check its type."""
    if key not in mapping:
        raise ManifestError(f"{context} has no {key!r} field", package=package)
    value = mapping[key]
    if not isinstance(value, expected):
        raise ManifestError(f"{context} field {key!r} is malformed", package=package)
    return value


def _xcode_table(raw: Any, context: str, package: str | None = None) -> dict[str, Any]:
    """Extract the `xcode` table from a `metadata` value."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ManifestError(f"{context} metadata is malformed", package=package)
    table = raw.get("xcode", {})
    if not isinstance(table, dict):
        raise ManifestError(f"{context} [metadata.xcode] must be a table", package=package)
    return table


def _parse_target(raw: Any, package: str) -> Target:
    if not isinstance(raw, dict):
        raise ManifestError("target entry is malformed", package=package)
    name = _require(raw, "name", str, "target", package=package)
    kinds = _require(raw, "kind", list, f"target {name!r}", package=package)
    if not kinds or not all(isinstance(k, str) for k in kinds):
        raise ManifestError("target kind list is malformed", package=package, target=name)
    features = raw.get("required-features") or []
    if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
        raise ManifestError(
            "required-features is malformed", package=package, target=name
        )
    return Target(
        package=package,
        name=name,
        kinds=tuple(TargetKind.from_cargo(k) for k in kinds),
        cargo_kinds=tuple(kinds),
        src_path=Path(_require(raw, "src_path", str, f"target {name!r}", package=package)),
        required_features=tuple(features),
    )


def _parse_package(raw: Any) -> tuple[str, Package, dict[str, Any]]:
    if not isinstance(raw, dict):
        raise ManifestError("package entry is malformed")
    name = _require(raw, "name", str, "package")
    package_id = _require(raw, "id", str, "package", package=name)
    version_text = _require(raw, "version", str, "package", package=name)
    try:
        version = Version.parse(version_text)
    except ValueError as e:
        raise ManifestError(str(e), package=name) from e
    targets = _require(raw, "targets", list, "package", package=name)
    package = Package(
        name=name,
        version=version,
        manifest_path=Path(_require(raw, "manifest_path", str, "package", package=name)),
        targets=tuple(_parse_target(t, name) for t in targets),
        metadata=_xcode_table(raw.get("metadata"), "package", name),
    )
    return package_id, package, raw


def _resolved_package_edges(
    resolve: dict[str, Any], members: dict[str, Package]
) -> set[tuple[str, str]]:
    """Package-level normal dependencies from the resolve graph."""
    nodes = _require(resolve, "nodes", list, "resolve")
    edges: set[tuple[str, str]] = set()
    for node in nodes:
        if not isinstance(node, dict):
            raise ManifestError("resolve node is malformed")
        node_id = _require(node, "id", str, "resolve node")
        if node_id not in members:
            continue
        if "deps" in node:
            for dep in _require(node, "deps", list, "resolve node"):
                if not isinstance(dep, dict):
                    raise ManifestError("resolve dependency is malformed")
                dep_id = _require(dep, "pkg", str, "resolve dependency")
                dep_kinds = dep.get("dep_kinds") or [{"kind": None}]
                if not isinstance(dep_kinds, list) or not all(
                    isinstance(k, dict) for k in dep_kinds
                ):
                    raise ManifestError(
                        "resolve dependency is malformed", package=members[node_id].name
                    )
                if any(k.get("kind") is None for k in dep_kinds) and dep_id in members:
                    edges.add((members[node_id].name, members[dep_id].name))
        else:
            # Older cargo: no kind information, every edge counts
            for dep_id in _require(node, "dependencies", list, "resolve node"):
                if dep_id in members:
                    edges.add((members[node_id].name, members[dep_id].name))
    return edges


def _declared_package_edges(
    raw_packages: dict[str, dict[str, Any]], members: dict[str, Package]
) -> set[tuple[str, str]]:
    """Package-level edges from declared path dependencies (no resolve graph)."""
    names = {p.name for p in members.values()}
    edges: set[tuple[str, str]] = set()
    for package_id, package in members.items():
        deps = raw_packages[package_id].get("dependencies") or []
        for dep in deps:
            if not isinstance(dep, dict):
                raise ManifestError("dependency entry is malformed", package=package.name)
            if dep.get("kind") is None and dep.get("path") and dep.get("name") in names:
                edges.add((package.name, dep["name"]))
    return edges


def _target_edges(
    package_edges: set[tuple[str, str]], packages: dict[str, Package]
) -> list[DependencyEdge]:
    """Expand package edges into edges between their targets."""
    edges: set[DependencyEdge] = set()
    for dependent_name, dependency_name in package_edges:
        if dependent_name == dependency_name:
            continue
        dependent = packages[dependent_name]
        dependency = packages[dependency_name]
        for target in dependent.targets:
            if all(k in AUXILIARY_KINDS for k in target.cargo_kinds):
                continue
            for lib in dependency.targets:
                if lib.is_library:
                    edges.add(DependencyEdge(target.key, lib.key))
    return sorted(edges)


def parse_metadata(
    data: dict[str, Any], *, manifest_path: Path | None = None
) -> Workspace:
    """Validate `cargo metadata` output into a Workspace.

    Args:
        data: Decoded metadata JSON.
        manifest_path: The manifest cargo was pointed at. Defaults to
            Cargo.toml in the workspace root.

    Raises:
        ManifestError: If the structure is not what cargo documents.
        CycleError: If the target dependency graph has a cycle.
    """
    if not isinstance(data, dict):
        raise ManifestError("cargo metadata output is not a JSON object")
    version = data.get("version", METADATA_FORMAT_VERSION)
    if version != METADATA_FORMAT_VERSION:
        raise ManifestError(f"unsupported cargo metadata format version {version!r}")

    workspace_root = Path(_require(data, "workspace_root", str, "metadata"))
    raw_packages = _require(data, "packages", list, "metadata")
    member_ids = _require(data, "workspace_members", list, "metadata")

    members: dict[str, Package] = {}
    raw_by_id: dict[str, dict[str, Any]] = {}
    for raw in raw_packages:
        package_id, package, raw_dict = _parse_package(raw)
        if package_id in member_ids:
            members[package_id] = package
            raw_by_id[package_id] = raw_dict

    missing = [m for m in member_ids if m not in members]
    if missing:
        raise ManifestError(f"workspace member {missing[0]!r} is not in packages")

    by_name = {p.name: p for p in members.values()}
    if len(by_name) != len(members):
        raise ManifestError("workspace members have duplicate package names")

    resolve = data.get("resolve")
    if resolve is None:
        logger.debug("No resolve graph; using declared path dependencies")
        package_edges = _declared_package_edges(raw_by_id, members)
    elif isinstance(resolve, dict):
        package_edges = _resolved_package_edges(resolve, members)
    else:
        raise ManifestError("metadata field 'resolve' is malformed")

    edges = _target_edges(package_edges, by_name)
    packages = tuple(sorted(members.values(), key=lambda p: p.name))
    check_acyclic([t.key for p in packages for t in p.targets], edges)

    return Workspace(
        root=workspace_root,
        manifest_path=manifest_path or workspace_root / "Cargo.toml",
        packages=packages,
        edges=tuple(edges),
        metadata=_xcode_table(data.get("metadata"), "workspace"),
    )
