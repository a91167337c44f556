# SPDX-License-Identifier: MIT
"""Command-line interface for cargo-xcode."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cargo_xcode.config import parse_archs
from cargo_xcode.core.errors import CargoXcodeError

# Set up logging
logger = logging.getLogger("cargo_xcode")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    from cargo_xcode import __version__

    parser = argparse.ArgumentParser(
        prog="cargo-xcode",
        description="Generate an Xcode project that builds a cargo workspace.",
        epilog="Also runs as 'cargo xcode' when installed on PATH.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "root",
        nargs="?",
        help="Workspace directory (default: current directory)",
    )
    parser.add_argument(
        "--manifest-path",
        metavar="PATH",
        help="Path to the workspace Cargo.toml",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        metavar="DIR",
        help="Directory for the .xcodeproj (default: workspace root)",
    )
    parser.add_argument(
        "--project-name",
        metavar="NAME",
        help="Name of the generated .xcodeproj",
    )
    parser.add_argument(
        "--archs",
        metavar="LIST",
        help="Architectures to build, e.g. 'arm64,x86_64'",
    )
    parser.add_argument(
        "--offline", action="store_true", help="Run cargo metadata offline"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the cargo-xcode CLI."""
    if argv is None:
        argv = sys.argv[1:]
    # cargo runs subcommands as `cargo-xcode xcode ARGS...`
    if argv and argv[0] == "xcode":
        argv = argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.debug)

    if args.root and args.manifest_path:
        parser.error("ROOT and --manifest-path are mutually exclusive")

    from cargo_xcode import generate_project

    try:
        archs = parse_archs(args.archs) if args.archs else None
        path = generate_project(
            args.manifest_path or args.root or Path.cwd(),
            output_dir=args.output_dir,
            archs=archs,
            project_name=args.project_name,
            offline=args.offline,
        )
    except CargoXcodeError as e:
        logger.error("%s", e)
        return 1

    if path is not None:
        print(path.parent)
    return 0


if __name__ == "__main__":
    sys.exit(main())
