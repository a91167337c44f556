# SPDX-License-Identifier: MIT
"""Tests for cargo-xcode CLI."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from cargo_xcode import __version__
from cargo_xcode.cli import main, setup_logging


def cargo_output(metadata) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(
        args=["cargo"], returncode=0, stdout=json.dumps(metadata.build()), stderr=""
    )


@pytest.fixture
def hello(metadata):
    """A workspace with a single binary package at its root."""
    (metadata.root / "Cargo.toml").write_text('[package]\nname = "hello"\n')
    metadata.package("hello", [("hello", ["bin"])], root_package=True)
    return metadata


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_normal(self) -> None:
        """Test normal logging setup."""
        # Just ensure it doesn't crash
        setup_logging(verbose=False, debug=False)

    def test_setup_logging_verbose(self) -> None:
        """Test verbose logging setup."""
        setup_logging(verbose=True, debug=False)

    def test_setup_logging_debug(self) -> None:
        """Test debug logging setup."""
        setup_logging(verbose=False, debug=True)


class TestMain:
    """Tests for the cargo-xcode entry point."""

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_generate(self, hello, capsys) -> None:
        """Test a successful run."""
        with patch("subprocess.run", return_value=cargo_output(hello)):
            assert main([str(hello.root), "--archs", "arm64"]) == 0

        bundle = hello.root / "hello.xcodeproj"
        assert (bundle / "project.pbxproj").is_file()
        assert capsys.readouterr().out.strip() == str(bundle)

    def test_cargo_subcommand_form(self, hello) -> None:
        """Test that `cargo xcode` passes its own name through."""
        with patch("subprocess.run", return_value=cargo_output(hello)):
            assert main(["xcode", "--manifest-path", str(hello.root / "Cargo.toml")]) == 0
        assert (hello.root / "hello.xcodeproj" / "project.pbxproj").is_file()

    def test_options(self, hello, tmp_path: Path) -> None:
        out = tmp_path / "out"
        with patch("subprocess.run", return_value=cargo_output(hello)) as run:
            code = main(
                [str(hello.root), "-o", str(out), "--project-name", "Rusty", "--offline"]
            )
        assert code == 0
        assert "--offline" in run.call_args.args[0]
        assert (out / "Rusty.xcodeproj" / "project.pbxproj").is_file()

    def test_cargo_failure(self, hello, caplog) -> None:
        """Test that a failing cargo run exits with status 1."""
        failed = subprocess.CompletedProcess(
            args=["cargo"], returncode=101, stdout="", stderr="error: bad manifest"
        )
        with patch("subprocess.run", return_value=failed):
            assert main([str(hello.root)]) == 1
        assert "bad manifest" in caplog.text
        assert not (hello.root / "hello.xcodeproj").exists()

    def test_missing_manifest(self, tmp_path: Path) -> None:
        assert main([str(tmp_path / "nowhere")]) == 1

    def test_bad_archs(self, hello) -> None:
        assert main([str(hello.root), "--archs", "ppc"]) == 1

    def test_nothing_to_generate(self, metadata) -> None:
        """Test that a workspace without products still succeeds."""
        (metadata.root / "Cargo.toml").write_text("[workspace]\n")
        metadata.package("util", [("util", ["lib"])])
        with patch("subprocess.run", return_value=cargo_output(metadata)):
            assert main([str(metadata.root)]) == 0

    def test_root_and_manifest_path(self, hello) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([str(hello.root), "--manifest-path", str(hello.root / "Cargo.toml")])
        assert exc_info.value.code == 2
