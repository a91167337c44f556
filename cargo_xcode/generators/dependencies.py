# SPDX-License-Identifier: MIT
"""Mirror workspace dependency edges as Xcode target dependencies.

Xcode's own scheduler decides what builds in parallel; the generated
project only has to declare every edge so that a target never starts
before the targets it depends on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cargo_xcode.core.ids import Identifier, canonical_key
from cargo_xcode.core.workspace import DependencyEdge, TargetKind, topological_order

if TYPE_CHECKING:
    from cargo_xcode.core.filter import FilterResult, Product
    from cargo_xcode.core.graph import ObjectGraph
    from cargo_xcode.core.workspace import Workspace


@dataclass(frozen=True)
class ProductDependency:
    """An edge between two generated products.

    Attributes:
        dependent: Product that must build second.
        dependency: Product that must build first.
        link: Whether the dependency's artifact goes into the
            dependent's link phase.
    """

    dependent: Product
    dependency: Product
    link: bool

    @property
    def key(self) -> str:
        return canonical_key(self.dependent.key, "depends-on", self.dependency.key)


def _link_product(products: list[Product]) -> Product | None:
    """The product to link when a target offers several library kinds.

    Static libraries are preferred over dynamic ones.
    """
    for kind in (TargetKind.STATIC_LIBRARY, TargetKind.DYNAMIC_LIBRARY):
        for product in products:
            if product.kind is kind:
                return product
    return None


def product_dependencies(
    workspace: Workspace, result: FilterResult
) -> list[ProductDependency]:
    """Translate target edges into edges between qualifying products.

    Edges touching a target that produced no product are dropped.

    Returns:
        Deduplicated dependencies sorted by dependent and dependency
        Xcode target name.
    """
    found: dict[tuple[str, str], ProductDependency] = {}
    for edge in workspace.edges:
        dependents = result.for_target(edge.dependent)
        dependencies = result.for_target(edge.dependency)
        linked = _link_product(dependencies)
        for dependent in dependents:
            for dependency in dependencies:
                dep = ProductDependency(dependent, dependency, dependency is linked)
                found[(dependent.key, dependency.key)] = dep
    return sorted(
        found.values(),
        key=lambda d: (d.dependent.xcode_name, d.dependency.xcode_name),
    )


def build_order(
    products: list[Product], dependencies: list[ProductDependency]
) -> list[Product]:
    """Products ordered so that dependencies come first.

    Raises:
        CycleError: If the dependencies contain a cycle.
    """
    by_key = {p.key: p for p in products}
    edges = [DependencyEdge(d.dependent.key, d.dependency.key) for d in dependencies]
    return [by_key[key] for key in topological_order(list(by_key), edges)]


def links_static_library(
    product: Product, dependencies: list[ProductDependency]
) -> bool:
    """Whether a product links any static library artifact."""
    return any(
        d.link and d.dependency.kind is TargetKind.STATIC_LIBRARY
        for d in dependencies
        if d.dependent.key == product.key
    )


class DependencyWirer:
    """Emits dependency objects into a project graph.

    Each dependency becomes a PBXContainerItemProxy pointing at the
    dependency's target, a PBXTargetDependency using that proxy, and,
    for linked libraries, a PBXBuildFile for the dependent's link phase.
    """

    def __init__(self, graph: ObjectGraph, project_id: Identifier) -> None:
        self._graph = graph
        self._project_id = project_id

    def wire(
        self,
        dependency: ProductDependency,
        target_ids: dict[str, Identifier],
        product_refs: dict[str, Identifier],
    ) -> tuple[Identifier, Identifier | None]:
        """Create the objects for one dependency.

        Args:
            dependency: The edge to wire.
            target_ids: Product key -> PBXNativeTarget identifier.
            product_refs: Product key -> product PBXFileReference identifier.

        Returns:
            The PBXTargetDependency identifier, and the PBXBuildFile
            identifier for the link phase (None if nothing is linked).
        """
        graph = self._graph
        ids = graph.ids
        dep_product = dependency.dependency

        proxy_id = ids.allocate(canonical_key(dependency.key, "proxy"))
        graph.add(
            proxy_id,
            "PBXContainerItemProxy",
            containerPortal=self._project_id,
            proxyType="1",
            remoteGlobalIDString=target_ids[dep_product.key],
            remoteInfo=dep_product.xcode_name,
        )

        target_dep_id = ids.allocate(canonical_key(dependency.key, "target-dependency"))
        graph.add(
            target_dep_id,
            "PBXTargetDependency",
            target=target_ids[dep_product.key],
            targetProxy=proxy_id,
        )

        build_file_id = None
        if dependency.link:
            build_file_id = ids.allocate(canonical_key(dependency.key, "link"))
            graph.add(
                build_file_id,
                "PBXBuildFile",
                fileRef=product_refs[dep_product.key],
            )
        return target_dep_id, build_file_id
