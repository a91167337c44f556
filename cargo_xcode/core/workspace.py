# SPDX-License-Identifier: MIT
"""Workspace model: packages, targets and the dependency edges between them.

These records are produced by the loader once per run and never mutated.
Everything downstream of the loader works only with these types, never
with the raw `cargo metadata` JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from cargo_xcode.core.errors import CycleError


# Cargo kinds with Rust-only linkage, unusable from other languages
RUST_ONLY_KINDS = frozenset({"lib", "rlib", "dylib", "proc-macro"})

# Kinds of targets that never take part in dependency edges
AUXILIARY_KINDS = frozenset({"example", "test", "bench", "custom-build"})


class TargetKind(Enum):
    """Kinds of cargo targets, as far as Xcode is concerned."""

    BINARY = "bin"
    STATIC_LIBRARY = "staticlib"
    DYNAMIC_LIBRARY = "cdylib"
    RUST_LIBRARY = "lib"  # Rust-only linkage: lib, rlib, dylib, proc-macro
    OTHER = "other"

    @classmethod
    def from_cargo(cls, kind: str) -> TargetKind:
        """Map a cargo kind string to a TargetKind."""
        if kind in RUST_ONLY_KINDS:
            return cls.RUST_LIBRARY
        try:
            return cls(kind)
        except ValueError:
            return cls.OTHER

    @property
    def is_library(self) -> bool:
        return self in (TargetKind.STATIC_LIBRARY, TargetKind.DYNAMIC_LIBRARY)


@dataclass(frozen=True)
class Version:
    """Semantic version of a package."""

    major: int
    minor: int
    patch: int
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse "1.2.3" or "1.2.3-beta.1+build" into a Version.

        Raises:
            ValueError: If the text is not a semantic version.
        """
        core, _, _build = text.partition("+")
        core, _, pre = core.partition("-")
        parts = core.split(".")
        if len(parts) != 3:
            raise ValueError(f"invalid version: {text!r}")
        major, minor, patch = (int(p) for p in parts)
        return cls(major, minor, patch, pre)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        return text


@dataclass(frozen=True)
class Target:
    """A buildable unit inside a package.

    Attributes:
        package: Name of the owning package.
        name: Target name as declared in the manifest.
        kinds: Kinds of artifact the target produces.
        cargo_kinds: The raw cargo kind strings, in manifest order.
        src_path: Root source file of the target.
        required_features: Features that must be enabled to build it.
    """

    package: str
    name: str
    kinds: tuple[TargetKind, ...]
    cargo_kinds: tuple[str, ...]
    src_path: Path
    required_features: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Workspace-unique key of this target."""
        return f"{self.package}/{self.name}"

    @property
    def is_library(self) -> bool:
        return any(k is TargetKind.RUST_LIBRARY or k.is_library for k in self.kinds)


@dataclass(frozen=True)
class Package:
    """A named unit from the workspace manifest.

    Attributes:
        name: Package name.
        version: Package version.
        manifest_path: Absolute path to the package's Cargo.toml.
        targets: Targets declared by the package.
        metadata: The package's `[package.metadata.xcode]` table.
    """

    name: str
    version: Version
    manifest_path: Path
    targets: tuple[Target, ...]
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def root(self) -> Path:
        """Directory containing the package manifest."""
        return self.manifest_path.parent


@dataclass(frozen=True, order=True)
class DependencyEdge:
    """Directed edge: `dependent` must be built after and link `dependency`.

    Both ends are target keys (see Target.key).
    """

    dependent: str
    dependency: str


@dataclass(frozen=True)
class Workspace:
    """A resolved cargo workspace.

    Attributes:
        root: Workspace root directory.
        manifest_path: The root Cargo.toml.
        packages: Workspace member packages, sorted by name.
        edges: Deduplicated, sorted dependency edges between targets.
        metadata: The `[workspace.metadata.xcode]` table.
    """

    root: Path
    manifest_path: Path
    packages: tuple[Package, ...]
    edges: tuple[DependencyEdge, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def root_package(self) -> Package | None:
        """The package whose manifest is the workspace manifest, if any."""
        for package in self.packages:
            if package.manifest_path == self.manifest_path:
                return package
        return None

    def get_package(self, name: str) -> Package | None:
        for package in self.packages:
            if package.name == name:
                return package
        return None

    def targets(self) -> list[Target]:
        """All targets of all packages, in package then manifest order."""
        return [t for p in self.packages for t in p.targets]

    def dependencies_of(self, target_key: str) -> list[str]:
        """Target keys that `target_key` directly depends on, sorted."""
        return sorted(e.dependency for e in self.edges if e.dependent == target_key)


def find_cycle(nodes: list[str], edges: list[DependencyEdge]) -> list[str] | None:
    """Find one dependency cycle in a directed graph.

    Args:
        nodes: Node keys.
        edges: Edges between nodes.

    Returns:
        The cycle as a list of keys (first repeated at the end), or None
        if the graph is acyclic.
    """
    successors: dict[str, list[str]] = {node: [] for node in nodes}
    for edge in edges:
        successors.setdefault(edge.dependent, []).append(edge.dependency)
        successors.setdefault(edge.dependency, [])

    visiting: set[str] = set()
    done: set[str] = set()
    stack: list[str] = []

    def visit(node: str) -> list[str] | None:
        visiting.add(node)
        stack.append(node)
        for succ in sorted(successors[node]):
            if succ in visiting:
                return stack[stack.index(succ):] + [succ]
            if succ not in done:
                cycle = visit(succ)
                if cycle:
                    return cycle
        stack.pop()
        visiting.discard(node)
        done.add(node)
        return None

    for node in sorted(successors):
        if node not in done:
            cycle = visit(node)
            if cycle:
                return cycle
    return None


def check_acyclic(nodes: list[str], edges: list[DependencyEdge]) -> None:
    """Raise CycleError if the edges contain a cycle."""
    cycle = find_cycle(nodes, edges)
    if cycle:
        raise CycleError(cycle)


def topological_order(nodes: list[str], edges: list[DependencyEdge]) -> list[str]:
    """Order nodes so that dependencies come before dependents.

    Ties are broken by name so the order is stable between runs.

    Raises:
        CycleError: If the graph contains a cycle.
    """
    check_acyclic(nodes, edges)
    node_set = set(nodes)
    pending: dict[str, set[str]] = {node: set() for node in nodes}
    for edge in edges:
        if edge.dependent in node_set and edge.dependency in node_set:
            pending[edge.dependent].add(edge.dependency)

    order: list[str] = []
    while pending:
        ready = sorted(node for node, deps in pending.items() if not deps)
        node = ready[0]
        order.append(node)
        del pending[node]
        for deps in pending.values():
            deps.discard(node)
    return order
