# SPDX-License-Identifier: MIT
"""Tests for cargo_xcode.generators.dependencies."""

from __future__ import annotations

import pytest

from cargo_xcode.core.errors import CycleError
from cargo_xcode.core.filter import select_products
from cargo_xcode.core.graph import ObjectGraph
from cargo_xcode.core.ids import IdentifierAllocator
from cargo_xcode.generators.dependencies import (
    DependencyWirer,
    ProductDependency,
    build_order,
    links_static_library,
    product_dependencies,
)


def layered(metadata):
    """app -> core -> sys, where core offers both library kinds."""
    metadata.package("app", [("app", ["bin"])])
    metadata.package("core", [("core", ["lib", "staticlib", "cdylib"])])
    metadata.package("sys", [("sys", ["staticlib"])])
    metadata.depend("app", "core")
    metadata.depend("core", "sys")
    workspace = metadata.workspace()
    return workspace, select_products(workspace)


def pairs(dependencies: list[ProductDependency]) -> list[tuple[str, str, bool]]:
    return [(d.dependent.xcode_name, d.dependency.xcode_name, d.link) for d in dependencies]


class TestProductDependencies:
    """Tests for translating target edges into product edges."""

    def test_edges(self, metadata) -> None:
        """Test that each product pair gets an edge and static is linked."""
        workspace, result = layered(metadata)
        assert pairs(product_dependencies(workspace, result)) == [
            ("app-bin", "core-cdylib", False),
            ("app-bin", "core-staticlib", True),
            ("core-cdylib", "sys-staticlib", True),
            ("core-staticlib", "sys-staticlib", True),
        ]

    def test_dynamic_linked_without_static(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])])
        metadata.package("ffi", [("ffi", ["cdylib"])])
        metadata.depend("app", "ffi")
        workspace = metadata.workspace()
        deps = product_dependencies(workspace, select_products(workspace))
        assert pairs(deps) == [("app-bin", "ffi-cdylib", True)]

    def test_rust_only_dependency_dropped(self, metadata) -> None:
        """Test that edges to targets without products disappear."""
        metadata.package("app", [("app", ["bin"])])
        metadata.package("util", [("util", ["lib"])])
        metadata.depend("app", "util")
        workspace = metadata.workspace()
        assert product_dependencies(workspace, select_products(workspace)) == []

    def test_links_static_library(self, metadata) -> None:
        workspace, result = layered(metadata)
        deps = product_dependencies(workspace, result)
        by_name = {p.xcode_name: p for p in result.products}
        assert links_static_library(by_name["app-bin"], deps)
        assert links_static_library(by_name["core-cdylib"], deps)
        assert not links_static_library(by_name["sys-staticlib"], deps)


class TestBuildOrder:
    """Tests for deterministic target ordering."""

    def test_dependencies_first(self, metadata) -> None:
        workspace, result = layered(metadata)
        deps = product_dependencies(workspace, result)
        order = [p.xcode_name for p in build_order(result.products, deps)]
        assert order.index("sys-staticlib") < order.index("core-staticlib")
        assert order.index("core-staticlib") < order.index("app-bin")
        assert order.index("core-cdylib") < order.index("app-bin")

    def test_cycle(self, metadata) -> None:
        metadata.package("a", [("a", ["staticlib"])])
        metadata.package("b", [("b", ["staticlib"])])
        products = select_products(metadata.workspace()).products
        a, b = products
        deps = [ProductDependency(a, b, True), ProductDependency(b, a, True)]
        with pytest.raises(CycleError):
            build_order(products, deps)


class TestDependencyWirer:
    """Tests for emitting dependency objects."""

    def test_wire(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])])
        metadata.package("core", [("core", ["staticlib"])])
        metadata.depend("app", "core")
        workspace = metadata.workspace()
        result = select_products(workspace)
        (dependency,) = product_dependencies(workspace, result)

        ids = IdentifierAllocator()
        graph = ObjectGraph(ids)
        project = ids.allocate("project")
        target_ids = {p.key: ids.allocate(p.key + "/target") for p in result.products}
        refs = {p.key: ids.allocate(p.key + "/product") for p in result.products}

        target_dep, build_file = DependencyWirer(graph, project).wire(
            dependency, target_ids, refs
        )

        core_key = dependency.dependency.key
        dep_obj = graph.get(target_dep)
        assert dep_obj["isa"] == "PBXTargetDependency"
        assert dep_obj["target"] == target_ids[core_key]
        proxy = graph.get(dep_obj["targetProxy"])
        assert proxy == {
            "isa": "PBXContainerItemProxy",
            "containerPortal": project,
            "proxyType": "1",
            "remoteGlobalIDString": target_ids[core_key],
            "remoteInfo": "core-staticlib",
        }
        assert build_file is not None
        assert graph.get(build_file) == {"isa": "PBXBuildFile", "fileRef": refs[core_key]}

    def test_unlinked_dependency(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])])
        metadata.package("tool", [("tool", ["bin"])])
        products = select_products(metadata.workspace()).products
        app, tool = products

        ids = IdentifierAllocator()
        graph = ObjectGraph(ids)
        project = ids.allocate("project")
        target_ids = {p.key: ids.allocate(p.key + "/target") for p in products}

        _, build_file = DependencyWirer(graph, project).wire(
            ProductDependency(app, tool, False), target_ids, {}
        )
        assert build_file is None
        assert len(graph.objects_of_type("PBXBuildFile")) == 0
