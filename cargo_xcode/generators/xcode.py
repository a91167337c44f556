# SPDX-License-Identifier: MIT
"""Xcode project generator.

Generates a .xcodeproj bundle whose targets build a cargo workspace.
Each qualifying cargo target becomes a PBXNativeTarget that runs cargo
from a shell script phase, so the project can be added to a host app's
project as a subproject and its products linked like any other library.

All objects are created in an ObjectGraph with identifiers derived from
canonical keys, then rendered with the pbxproj library.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cargo_xcode.config import XcodeConfig, package_config, workspace_config
from cargo_xcode.core.filter import select_products
from cargo_xcode.core.graph import ObjectGraph
from cargo_xcode.core.ids import Identifier, IdentifierAllocator, canonical_key
from cargo_xcode.core.workspace import TargetKind
from cargo_xcode.generators.dependencies import (
    DependencyWirer,
    build_order,
    links_static_library,
    product_dependencies,
)
from cargo_xcode.generators.generator import BaseGenerator
from cargo_xcode.generators.settings import (
    CONFIGURATIONS,
    DEFAULT_CONFIGURATION,
    PRODUCT_PATH,
    RESOLV_LIBRARY,
    RESOLV_LIBRARY_PATH,
    build_script,
    merge_script,
    project_settings,
    target_settings,
)
from cargo_xcode.util.files import write_project

if TYPE_CHECKING:
    from cargo_xcode.core.filter import Product
    from cargo_xcode.core.workspace import Workspace

logger = logging.getLogger(__name__)

BUILD_ACTION_MASK = "2147483647"
LAST_UPGRADE_CHECK = "1510"
COMPATIBILITY_VERSION = "Xcode 14.0"


def _relpath(path: Path, start: Path) -> str:
    try:
        return Path(os.path.relpath(path, start)).as_posix()
    except ValueError:
        # On Windows, relpath fails for paths on different drives
        return path.as_posix()


class XcodeGenerator(BaseGenerator):
    """Generator for Xcode project files.

    Creates a complete .xcodeproj bundle with:
    - One PBXNativeTarget per buildable cargo product
    - A cargo build phase, a lipo merge phase for universal products,
      and a link phase
    - Target dependencies mirroring the workspace dependency graph
    - Debug and Release configurations mapped to cargo profiles

    Example:
        workspace = load_workspace("path/to/workspace")
        XcodeGenerator(archs=("arm64",)).generate(workspace)

    Attributes:
        archs: Architecture override for every product, or None.
        project_name_override: Name of the .xcodeproj, or None.
        environ: Environment to read overrides from (default: os.environ).
    """

    bundle_suffix = ".xcodeproj"

    def __init__(
        self,
        *,
        archs: tuple[str, ...] | None = None,
        project_name: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__("xcode")
        self.archs = archs
        self.project_name_override = project_name
        self.environ = environ

    def config_for(self, workspace: Workspace) -> XcodeConfig:
        """Project-wide settings for a workspace."""
        return workspace_config(
            workspace,
            archs=self.archs,
            project_name=self.project_name_override,
            environ=self.environ,
        )

    def project_name(self, workspace: Workspace) -> str:
        """Name of the generated .xcodeproj, without the extension.

        Taken from the command line or the workspace's xcode metadata
        before falling back to the root package or workspace directory.
        """
        config = self.config_for(workspace)
        if config.project_name:
            return config.project_name
        return super().project_name(workspace)

    def generate(self, workspace: Workspace, output_dir: Path | None = None) -> Path | None:
        """Generate the .xcodeproj bundle.

        Args:
            workspace: The loaded workspace.
            output_dir: Directory to write the .xcodeproj into
                (default: the workspace root).

        Returns:
            Path of the project.pbxproj, or None if the workspace has no
            buildable targets and nothing was written.

        Raises:
            CargoXcodeError: If the project cannot be generated. Nothing
                is written in that case.
        """
        output_dir = self.output_dir_for(workspace, output_dir)
        graph = self.build_graph(workspace, output_dir)

        if not graph.objects_of_type("PBXNativeTarget"):
            logger.warning(
                "No binary, staticlib or cdylib targets in %s; nothing to generate",
                workspace.manifest_path,
            )
            return None

        tree = graph.to_tree()
        path = self.bundle_path(workspace, output_dir) / "project.pbxproj"
        write_project(tree, path)
        return path

    def build_graph(self, workspace: Workspace, output_dir: Path | None = None) -> ObjectGraph:
        """Build the complete object graph for a workspace.

        Args:
            workspace: The loaded workspace.
            output_dir: Directory the .xcodeproj will live in. Paths in
                the project are relative to it.

        Raises:
            CycleError: If the product dependencies contain a cycle.
            IdentifierCollisionError: If two objects get the same identifier.
            ArchitectureMismatchError: If a universal product's
                architectures cannot be merged.
        """
        return _ProjectBuilder(self, workspace, self.output_dir_for(workspace, output_dir)).build()


class _ProjectBuilder:
    """Builds the object graph of one generation run."""

    def __init__(self, generator: XcodeGenerator, workspace: Workspace, output_dir: Path) -> None:
        self.workspace = workspace
        self.output_dir = output_dir.resolve()
        self.config = generator.config_for(workspace)
        self.package_configs = {
            p.name: package_config(
                self.config, p, archs=generator.archs, environ=generator.environ
            )
            for p in workspace.packages
        }
        self.ids = IdentifierAllocator()
        self.graph = ObjectGraph(self.ids)
        self.target_ids: dict[str, Identifier] = {}
        self.product_refs: dict[str, Identifier] = {}

    def _id(self, *parts: str) -> Identifier:
        return self.ids.allocate(canonical_key(*parts))

    def build(self) -> ObjectGraph:
        workspace = self.workspace
        graph = self.graph

        skip = {name for name, config in self.package_configs.items() if config.skip}
        result = select_products(workspace, skip)
        dependencies = product_dependencies(workspace, result)
        ordered = build_order(result.products, dependencies)
        has_static = any(p.kind is TargetKind.STATIC_LIBRARY for p in result.products)

        project_id = self._id("project")
        graph.root = project_id

        resolv_ref = None
        if has_static:
            resolv_ref = graph.add(
                self._id("framework", RESOLV_LIBRARY),
                "PBXFileReference",
                lastKnownFileType="sourcecode.text-based-dylib-definition",
                name=RESOLV_LIBRARY,
                path=RESOLV_LIBRARY_PATH,
                sourceTree="SDKROOT",
            )

        for product in result.products:
            self.target_ids[product.key] = self._id(product.key, "target")
            self.product_refs[product.key] = graph.add(
                self._id(product.key, "product"),
                "PBXFileReference",
                explicitFileType=product.file_type,
                includeInIndex="0",
                name=product.file_name,
                path=product.file_name,
                sourceTree="BUILT_PRODUCTS_DIR",
            )

        wirer = DependencyWirer(graph, project_id)
        target_deps: dict[str, list[Identifier]] = {p.key: [] for p in result.products}
        link_files: dict[str, list[Identifier]] = {p.key: [] for p in result.products}
        for dependency in dependencies:
            target_dep, build_file = wirer.wire(dependency, self.target_ids, self.product_refs)
            target_deps[dependency.dependent.key].append(target_dep)
            if build_file is not None:
                link_files[dependency.dependent.key].append(build_file)

        for product in result.products:
            links_static = links_static_library(product, dependencies)
            if links_static and resolv_ref is not None:
                link_files[product.key].append(
                    graph.add(
                        self._id(product.key, "link", RESOLV_LIBRARY),
                        "PBXBuildFile",
                        fileRef=resolv_ref,
                    )
                )
            self._add_target(
                product,
                links_static=links_static,
                dependencies=target_deps[product.key],
                link_files=link_files[product.key],
            )

        main_group = self._add_groups(result.products, resolv_ref)
        products_group = self.ids.allocate(canonical_key("group", "products"))

        graph.add(
            project_id,
            "PBXProject",
            attributes={
                "LastUpgradeCheck": LAST_UPGRADE_CHECK,
                "TargetAttributes": {
                    self.target_ids[p.key]: {
                        "CreatedOnToolsVersion": "9.2",
                        "ProvisioningStyle": "Automatic",
                    }
                    for p in result.products
                },
            },
            buildConfigurationList=self._add_project_configurations(),
            compatibilityVersion=COMPATIBILITY_VERSION,
            developmentRegion="en",
            hasScannedForEncodings="0",
            knownRegions=["en", "Base"],
            mainGroup=main_group,
            productRefGroup=products_group,
            projectDirPath="",
            projectRoot="",
            targets=[self.target_ids[p.key] for p in ordered],
        )

        logger.debug(
            "Built project graph: %d targets, %d objects", len(result.products), len(graph)
        )
        return graph

    def _add_configuration_list(
        self, key: str, settings: Mapping[str, dict[str, Any]]
    ) -> Identifier:
        configs = [
            self.graph.add(
                self._id(key, "config", name),
                "XCBuildConfiguration",
                buildSettings=settings[name],
                name=name,
            )
            for name in CONFIGURATIONS
        ]
        return self.graph.add(
            self._id(key, "config-list"),
            "XCConfigurationList",
            buildConfigurations=configs,
            defaultConfigurationIsVisible="0",
            defaultConfigurationName=DEFAULT_CONFIGURATION,
        )

    def _add_project_configurations(self) -> Identifier:
        workspace_dir = _relpath(self.workspace.root, self.output_dir)
        settings = {
            name: project_settings(self.config, name, workspace_dir)
            for name in CONFIGURATIONS
        }
        return self._add_configuration_list("project", settings)

    def _add_target(
        self,
        product: Product,
        *,
        links_static: bool,
        dependencies: list[Identifier],
        link_files: list[Identifier],
    ) -> Identifier:
        """Create a native target with its configurations and phases."""
        graph = self.graph
        config = self.package_configs[product.package.name]
        manifest_path = _relpath(product.package.manifest_path, self.workspace.root)

        settings = {
            name: target_settings(
                product,
                config,
                name,
                manifest_path=manifest_path,
                links_static=links_static,
            )
            for name in CONFIGURATIONS
        }
        config_list = self._add_configuration_list(product.key, settings)

        phases = [
            graph.add(
                self._id(product.key, "phase", "build"),
                "PBXShellScriptBuildPhase",
                alwaysOutOfDate="1",
                buildActionMask=BUILD_ACTION_MASK,
                files=[],
                inputFileListPaths=[],
                inputPaths=[],
                name=f"Cargo build {product.xcode_name}",
                outputFileListPaths=[],
                outputPaths=[] if config.universal else [PRODUCT_PATH],
                runOnlyForDeploymentPostprocessing="0",
                shellPath="/bin/sh",
                shellScript=build_script(),
            )
        ]
        if config.universal:
            phases.append(
                graph.add(
                    self._id(product.key, "phase", "merge"),
                    "PBXShellScriptBuildPhase",
                    alwaysOutOfDate="1",
                    buildActionMask=BUILD_ACTION_MASK,
                    files=[],
                    inputFileListPaths=[],
                    inputPaths=[],
                    name="Universal binary lipo",
                    outputFileListPaths=[],
                    outputPaths=[PRODUCT_PATH],
                    runOnlyForDeploymentPostprocessing="0",
                    shellPath="/bin/sh",
                    shellScript=merge_script(),
                )
            )
        phases.append(
            graph.add(
                self._id(product.key, "phase", "frameworks"),
                "PBXFrameworksBuildPhase",
                buildActionMask=BUILD_ACTION_MASK,
                files=link_files,
                runOnlyForDeploymentPostprocessing="0",
            )
        )

        return graph.add(
            self.target_ids[product.key],
            "PBXNativeTarget",
            buildConfigurationList=config_list,
            buildPhases=phases,
            buildRules=[],
            dependencies=dependencies,
            name=product.xcode_name,
            productName=product.product_name,
            productReference=self.product_refs[product.key],
            productType=product.product_type,
        )

    def _add_groups(self, products: list[Product], resolv_ref: Identifier | None) -> Identifier:
        """Create the group hierarchy and return the main group."""
        graph = self.graph
        children: list[Identifier] = []

        for package in self.workspace.packages:
            if not any(p.package.name == package.name for p in products):
                continue
            manifest_ref = graph.add(
                self._id("package", package.name, "manifest"),
                "PBXFileReference",
                lastKnownFileType="text",
                path=package.manifest_path.name,
                sourceTree="<group>",
            )
            group_path = _relpath(package.root, self.output_dir)
            fields: dict[str, Any] = {
                "children": [manifest_ref],
                "name": package.name,
                "sourceTree": "<group>",
            }
            if group_path != ".":
                fields["path"] = group_path
            children.append(
                graph.add(self._id("package", package.name, "group"), "PBXGroup", **fields)
            )

        children.append(
            graph.add(
                self._id("group", "products"),
                "PBXGroup",
                children=[self.product_refs[p.key] for p in products],
                name="Products",
                sourceTree="<group>",
            )
        )

        frameworks: list[Identifier] = []
        if resolv_ref is not None:
            frameworks.append(
                graph.add(
                    self._id("group", "required-libraries"),
                    "PBXGroup",
                    children=[resolv_ref],
                    name="Required Libraries",
                    sourceTree="<group>",
                )
            )
        children.append(
            graph.add(
                self._id("group", "frameworks"),
                "PBXGroup",
                children=frameworks,
                name="Frameworks",
                sourceTree="<group>",
            )
        )

        return graph.add(
            self._id("group", "main"),
            "PBXGroup",
            children=children,
            sourceTree="<group>",
        )
