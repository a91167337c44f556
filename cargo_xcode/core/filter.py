# SPDX-License-Identifier: MIT
"""Select the targets that become Xcode targets.

Only artifacts a host application can consume are kept: executables,
static libraries and C-ABI dynamic libraries. Targets that only expose
Rust linkage (rlib, dylib, proc-macro) are left out.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cargo_xcode.core.errors import UnsupportedTargetError
from cargo_xcode.core.ids import canonical_key
from cargo_xcode.core.workspace import AUXILIARY_KINDS, RUST_ONLY_KINDS, TargetKind

if TYPE_CHECKING:
    from cargo_xcode.core.workspace import Package, Target, Workspace

logger = logging.getLogger(__name__)

# Map cargo target kinds to Xcode product types
PRODUCT_TYPE_MAP = {
    TargetKind.BINARY: "com.apple.product-type.tool",
    TargetKind.STATIC_LIBRARY: "com.apple.product-type.library.static",
    TargetKind.DYNAMIC_LIBRARY: "com.apple.product-type.library.dynamic",
}

# Map cargo target kinds to explicit file types
EXPLICIT_FILE_TYPE_MAP = {
    TargetKind.BINARY: "compiled.mach-o.executable",
    TargetKind.STATIC_LIBRARY: "archive.ar",
    TargetKind.DYNAMIC_LIBRARY: "compiled.mach-o.dylib",
}

STATIC_LIBRARY_PLATFORMS = (
    "macosx iphonesimulator iphoneos appletvsimulator appletvos"
)


@dataclass(frozen=True)
class Product:
    """One Xcode target generated for a (target, kind) pair.

    Attributes:
        package: The owning package.
        target: The cargo target.
        kind: Which of the target's artifacts this product builds.
        xcode_name: Name of the Xcode target.
    """

    package: Package
    target: Target
    kind: TargetKind
    xcode_name: str

    @property
    def key(self) -> str:
        """Canonical key prefix for every object belonging to this product."""
        return canonical_key(self.package.name, self.target.name, self.kind.value)

    @property
    def product_type(self) -> str:
        return PRODUCT_TYPE_MAP[self.kind]

    @property
    def file_type(self) -> str:
        return EXPLICIT_FILE_TYPE_MAP[self.kind]

    @property
    def is_library(self) -> bool:
        return self.kind.is_library

    @property
    def cargo_file_name(self) -> str:
        """File name cargo gives the artifact."""
        crate_name = self.target.name.replace("-", "_")
        if self.kind is TargetKind.STATIC_LIBRARY:
            return f"lib{crate_name}.a"
        if self.kind is TargetKind.DYNAMIC_LIBRARY:
            return f"lib{crate_name}.dylib"
        return self.target.name

    @property
    def product_name(self) -> str:
        """Xcode PRODUCT_NAME.

        Static libraries get a _static suffix so they don't clash with a
        dynamic library built from the same target.
        """
        if self.kind is TargetKind.STATIC_LIBRARY:
            return f"{self.target.name}_static"
        return self.target.name

    @property
    def file_name(self) -> str:
        """File name of the product as Xcode sees it."""
        if self.kind is TargetKind.STATIC_LIBRARY:
            return f"lib{self.product_name}.a"
        if self.kind is TargetKind.DYNAMIC_LIBRARY:
            return f"lib{self.product_name}.dylib"
        return self.product_name

    @property
    def cargo_flags(self) -> str:
        """Target selection flags passed to `cargo build`."""
        if self.kind is not TargetKind.BINARY:
            return "--lib"
        flags = f"--bin {self.target.name}"
        if self.target.required_features:
            flags += f" --features {','.join(self.target.required_features)}"
        return flags

    @property
    def supported_platforms(self) -> str:
        if self.kind is TargetKind.STATIC_LIBRARY:
            return STATIC_LIBRARY_PLATFORMS
        return "macosx"


@dataclass
class FilterResult:
    """Output of select_products.

    Attributes:
        products: Qualifying products, sorted by package, target and kind.
        skipped: Targets whose kind could not be mapped.
    """

    products: list[Product] = field(default_factory=list)
    skipped: list[UnsupportedTargetError] = field(default_factory=list)

    def for_target(self, target_key: str) -> list[Product]:
        """Products built from the target with the given key."""
        return [p for p in self.products if p.target.key == target_key]


def product_kind(target: Target, cargo_kind: str) -> TargetKind | None:
    """Map one cargo kind of a target to a product kind.

    Returns:
        The product kind, or None if the kind is deliberately not built.

    Raises:
        UnsupportedTargetError: If the kind is unknown.
    """
    kind = TargetKind.from_cargo(cargo_kind)
    if kind in PRODUCT_TYPE_MAP:
        return kind
    if cargo_kind in RUST_ONLY_KINDS or cargo_kind in AUXILIARY_KINDS:
        return None
    raise UnsupportedTargetError(cargo_kind, package=target.package, target=target.name)


def select_products(workspace: Workspace, skip: set[str] | None = None) -> FilterResult:
    """Pick the products to generate from a workspace.

    Args:
        workspace: The loaded workspace.
        skip: Names of packages to leave out entirely.

    Returns:
        Products and skipped-target diagnostics. A workspace, or a
        package, with no qualifying targets simply yields no products.
    """
    result = FilterResult()
    selected: list[tuple[Package, Target, TargetKind]] = []

    for package in workspace.packages:
        if skip and package.name in skip:
            logger.info("Skipping package %s", package.name)
            continue
        for target in package.targets:
            for cargo_kind in dict.fromkeys(target.cargo_kinds):
                try:
                    kind = product_kind(target, cargo_kind)
                except UnsupportedTargetError as e:
                    logger.warning("Skipping target: %s", e)
                    result.skipped.append(e)
                    continue
                if kind is None:
                    logger.debug(
                        "Ignoring %s target %s/%s", cargo_kind, package.name, target.name
                    )
                    continue
                selected.append((package, target, kind))

    names = Counter(f"{t.name}-{k.value}" for _, t, k in selected)
    for package, target, kind in selected:
        name = f"{target.name}-{kind.value}"
        if names[name] > 1:
            name = f"{package.name}-{name}"
        result.products.append(Product(package, target, kind, name))

    result.products.sort(key=lambda p: p.key)
    return result
