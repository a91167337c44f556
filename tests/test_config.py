# SPDX-License-Identifier: MIT
"""Tests for cargo_xcode.config."""

from __future__ import annotations

import pytest

from cargo_xcode.config import (
    DEFAULT_ARCHS,
    XcodeConfig,
    package_config,
    parse_archs,
    workspace_config,
)
from cargo_xcode.core.errors import ManifestError


class TestParseArchs:
    """Tests for architecture list parsing."""

    def test_list(self) -> None:
        assert parse_archs(["arm64", "x86_64"]) == ("arm64", "x86_64")

    def test_string(self) -> None:
        """Test comma and whitespace separated strings."""
        assert parse_archs("arm64, x86_64") == ("arm64", "x86_64")
        assert parse_archs("x86_64 arm64") == ("x86_64", "arm64")

    def test_duplicates_dropped(self) -> None:
        assert parse_archs(["arm64", "arm64"]) == ("arm64",)

    def test_unknown_architecture(self) -> None:
        with pytest.raises(ManifestError, match="unsupported architecture 'ppc'"):
            parse_archs(["ppc"], package="app")

    def test_empty(self) -> None:
        with pytest.raises(ManifestError, match="must not be empty"):
            parse_archs("")

    def test_wrong_type(self) -> None:
        with pytest.raises(ManifestError, match="list of strings"):
            parse_archs(64)


class TestXcodeConfig:
    """Tests for configuration layering."""

    def test_defaults(self) -> None:
        config = XcodeConfig()
        assert config.archs == DEFAULT_ARCHS
        assert config.universal
        assert config.project_name is None
        assert not config.skip

    def test_merge_table(self) -> None:
        config = XcodeConfig().merge_table(
            {"archs": ["arm64"], "deployment-target": "13.0", "skip": True}
        )
        assert config.archs == ("arm64",)
        assert not config.universal
        assert config.deployment_target == "13.0"
        assert config.skip

    def test_merge_table_bad_value(self) -> None:
        with pytest.raises(ManifestError, match="app: xcode skip must be true or false"):
            XcodeConfig().merge_table({"skip": "yes"}, package="app")

    def test_overrides(self) -> None:
        config = XcodeConfig().with_overrides(archs=("x86_64",), project_name="Rusty")
        assert config.archs == ("x86_64",)
        assert config.project_name == "Rusty"
        assert XcodeConfig().with_overrides() == XcodeConfig()


class TestPrecedence:
    """Tests for the order in which settings sources apply."""

    def test_workspace_table(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])])
        metadata.workspace_metadata = {"archs": ["arm64"], "project-name": "Rusty"}
        config = workspace_config(metadata.workspace(), environ={})
        assert config.archs == ("arm64",)
        assert config.project_name == "Rusty"

    def test_package_overrides_workspace(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])], xcode={"archs": ["x86_64"]})
        metadata.workspace_metadata = {"archs": ["arm64"]}
        workspace = metadata.workspace()

        base = workspace_config(workspace, environ={})
        config = package_config(base, workspace.packages[0], environ={})
        assert config.archs == ("x86_64",)

    def test_environment_overrides_package(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])], xcode={"archs": ["x86_64"]})
        workspace = metadata.workspace()
        environ = {"CARGO_XCODE_ARCHS": "arm64"}

        base = workspace_config(workspace, environ=environ)
        config = package_config(base, workspace.packages[0], environ=environ)
        assert config.archs == ("arm64",)

    def test_command_line_overrides_environment(self, metadata) -> None:
        metadata.package("app", [("app", ["bin"])])
        workspace = metadata.workspace()
        environ = {"CARGO_XCODE_ARCHS": "arm64"}

        base = workspace_config(workspace, archs=("x86_64",), environ=environ)
        config = package_config(base, workspace.packages[0], archs=("x86_64",), environ=environ)
        assert config.archs == ("x86_64",)

    def test_reads_os_environment(self, metadata, monkeypatch) -> None:
        monkeypatch.setenv("CARGO_XCODE_ARCHS", "x86_64")
        metadata.package("app", [("app", ["bin"])])
        assert workspace_config(metadata.workspace()).archs == ("x86_64",)
