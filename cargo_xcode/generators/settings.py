# SPDX-License-Identifier: MIT
"""Build settings and build scripts for generated Xcode targets.

Xcode knows nothing about cargo, so every target builds through a shell
script phase. The script reads its inputs from build settings computed
here: the cargo profile for the active configuration, the cargo flags
that select the target, where cargo writes its output, and whether the
per-architecture outputs need merging into a universal binary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from cargo_xcode import __version__
from cargo_xcode.config import RUST_ARCHS
from cargo_xcode.core.errors import ArchitectureMismatchError
from cargo_xcode.core.workspace import TargetKind

if TYPE_CHECKING:
    from cargo_xcode.config import XcodeConfig
    from cargo_xcode.core.filter import Product

CONFIGURATIONS = ("Debug", "Release")
DEFAULT_CONFIGURATION = "Release"

# Xcode configuration -> cargo profile
CARGO_PROFILES = {
    "Debug": "debug",
    "Release": "release",
}

# Xcode platform name -> OS part of the Rust target triple
PLATFORM_OS = {
    "macosx": "darwin",
    "iphoneos": "ios",
    "iphonesimulator": "ios-sim",
    "appletvos": "tvos",
    "appletvsimulator": "tvos",
}

# Cargo's output directory lives inside Xcode's build products root, so
# Xcode's "Clean Build Folder" removes it too.
CARGO_TARGET_DIR = "$(BUILD_DIR)/cargo_target"

PRODUCT_PATH = "$(TARGET_BUILD_DIR)/$(EXECUTABLE_PATH)"

# Library Rust static archives need at link time
RESOLV_LIBRARY = "libresolv.tbd"
RESOLV_LIBRARY_PATH = "usr/lib/libresolv.tbd"


def rust_target_triple(arch: str, platform: str = "macosx") -> str:
    """Rust target triple for an Xcode architecture and platform.

    Args:
        arch: Xcode architecture name (e.g. "arm64").
        platform: Xcode platform name (e.g. "iphoneos").

    Raises:
        KeyError: If the architecture or platform is unknown.
    """
    rust_arch = RUST_ARCHS[arch]
    os_name = PLATFORM_OS[platform]
    # The x86_64 simulator predates the -sim suffix
    if os_name == "ios-sim" and rust_arch == "x86_64":
        os_name = "ios"
    return f"{rust_arch}-apple-{os_name}"


def cargo_artifact_path(
    product: Product, configuration: str, arch: str, platform: str = "macosx"
) -> str:
    """Where cargo writes a product for one configuration and architecture.

    Each architecture gets its own directory because cargo separates
    output by target triple.
    """
    triple = rust_target_triple(arch, platform)
    profile = CARGO_PROFILES[configuration]
    return f"$(CARGO_TARGET_DIR)/{triple}/{profile}/{product.cargo_file_name}"


def arch_output_path(arch: str) -> str:
    """Per-architecture copy of the product, input to the lipo merge."""
    return f"$(DERIVED_FILE_DIR)/{arch}-$(EXECUTABLE_NAME)"


def check_mergeable(product: Product, archs: tuple[str, ...]) -> None:
    """Make sure the architectures of a universal product can be merged.

    lipo cannot hold two slices for the same architecture, so two Xcode
    architectures that build the same Rust architecture are rejected
    instead of guessing which one should win.

    Raises:
        ArchitectureMismatchError: If two architectures collide.
    """
    seen: dict[str, str] = {}
    for arch in archs:
        rust_arch = RUST_ARCHS.get(arch)
        if rust_arch is None:
            raise ArchitectureMismatchError(
                f"unsupported architecture {arch!r}",
                package=product.package.name,
                target=product.target.name,
            )
        if rust_arch in seen:
            raise ArchitectureMismatchError(
                f"architectures {seen[rust_arch]!r} and {arch!r} both build "
                f"{rust_arch} and cannot be merged",
                package=product.package.name,
                target=product.target.name,
            )
        seen[rust_arch] = arch


def project_settings(
    config: XcodeConfig, configuration: str, workspace_dir: str
) -> dict[str, Any]:
    """Project-level settings shared by every target.

    Args:
        config: Workspace configuration.
        configuration: "Debug" or "Release".
        workspace_dir: Workspace root, relative to the project directory.
    """
    settings: dict[str, Any] = {
        "ALWAYS_SEARCH_USER_PATHS": "NO",
        "ARCHS": " ".join(config.archs),
        "CARGO_TARGET_DIR": CARGO_TARGET_DIR,
        "CARGO_XCODE_FEATURES": "",
        "CARGO_XCODE_WORKSPACE_DIR": _srcroot_path(workspace_dir),
        "MACOSX_DEPLOYMENT_TARGET": config.deployment_target,
        "SDKROOT": "macosx",
    }
    if configuration == "Debug":
        settings["ONLY_ACTIVE_ARCH"] = "YES"
    return settings


def target_settings(
    product: Product,
    config: XcodeConfig,
    configuration: str,
    *,
    manifest_path: str,
    links_static: bool = False,
) -> dict[str, Any]:
    """Settings of one product in one configuration.

    Args:
        product: The product being configured.
        config: Settings of the product's package.
        configuration: "Debug" or "Release".
        manifest_path: The package manifest, relative to the workspace root.
        links_static: Whether the product depends on a static library.
    """
    archs = config.archs
    if len(archs) > 1:
        check_mergeable(product, archs)
    version = product.package.version

    settings: dict[str, Any] = {
        "ARCHS": " ".join(archs),
        "CARGO_XCODE_BUILD_PROFILE": CARGO_PROFILES[configuration],
        "CARGO_XCODE_CARGO_FILE_NAME": product.cargo_file_name,
        "CARGO_XCODE_CARGO_FLAGS": product.cargo_flags,
        "CARGO_XCODE_MANIFEST_PATH": manifest_path,
        "CARGO_XCODE_UNIVERSAL": "YES" if len(archs) > 1 else "NO",
        "CURRENT_PROJECT_VERSION": f"{version.major}.{version.minor}",
        "MACOSX_DEPLOYMENT_TARGET": config.deployment_target,
        "MARKETING_VERSION": str(version),
        "PRODUCT_NAME": product.product_name,
        "SUPPORTED_PLATFORMS": product.supported_platforms,
    }

    if product.kind is TargetKind.STATIC_LIBRARY:
        # Xcode tries to chmod it when archiving, even though it doesn't
        # belong to the archive
        settings.update(
            {
                "SKIP_INSTALL": "YES",
                "INSTALL_GROUP": "",
                "INSTALL_MODE_FLAG": "",
                "INSTALL_OWNER": "",
            }
        )
    elif product.kind is TargetKind.DYNAMIC_LIBRARY:
        settings["DYLIB_INSTALL_NAME_BASE"] = "@rpath"
        if version.major != 1:
            settings["DYLIB_COMPATIBILITY_VERSION"] = str(version.major)

    if links_static:
        settings["LIBRARY_SEARCH_PATHS"] = ["$(inherited)", "$(TARGET_BUILD_DIR)"]

    return settings


def _srcroot_path(relative: str) -> str:
    if relative in ("", "."):
        return "$(SRCROOT)"
    return f"$(SRCROOT)/{relative}"


def _case_arms(mapping: dict[str, str], variable: str) -> str:
    return "\n".join(
        f"    {key}) {variable}={value} ;;" for key, value in sorted(mapping.items())
    )


def build_script() -> str:
    """Shell script of the cargo build phase.

    Builds every architecture in $ARCHS into cargo's per-triple output
    directory and links each result next to Xcode's derived files. A
    single-architecture product is then linked straight to its product
    path; universal products are left for the merge phase. `set -e`
    turns any cargo failure into a failed build step.
    """
    return f"""# generated with cargo-xcode {__version__}
set -eu
export PATH="$HOME/.cargo/bin:$PATH:/usr/local/bin:/opt/homebrew/bin"
cd "$CARGO_XCODE_WORKSPACE_DIR"

case "$PLATFORM_NAME" in
{_case_arms(PLATFORM_OS, "CARGO_XCODE_TARGET_OS")}
    *) echo >&2 "error: cargo-xcode does not support platform $PLATFORM_NAME"; exit 1 ;;
esac

CARGO_XCODE_PROFILE_FLAG=""
if [ "$CARGO_XCODE_BUILD_PROFILE" = release ]; then
    CARGO_XCODE_PROFILE_FLAG="--release"
fi
CARGO_XCODE_FEATURES_FLAG=""
if [ -n "${{CARGO_XCODE_FEATURES:-}}" ]; then
    CARGO_XCODE_FEATURES_FLAG="--features=$CARGO_XCODE_FEATURES"
fi

mkdir -p "$DERIVED_FILE_DIR" "$TARGET_BUILD_DIR"
for CARGO_XCODE_ARCH in $ARCHS; do
    case "$CARGO_XCODE_ARCH" in
{_case_arms(RUST_ARCHS, "CARGO_XCODE_RUST_ARCH")}
    *) echo >&2 "error: cargo-xcode does not support architecture $CARGO_XCODE_ARCH"; exit 1 ;;
    esac
    CARGO_XCODE_OS="$CARGO_XCODE_TARGET_OS"
    if [ "$CARGO_XCODE_OS" = ios-sim ] && [ "$CARGO_XCODE_RUST_ARCH" = x86_64 ]; then
        CARGO_XCODE_OS=ios
    fi
    CARGO_XCODE_TRIPLE="$CARGO_XCODE_RUST_ARCH-apple-$CARGO_XCODE_OS"

    if command -v rustup > /dev/null 2>&1; then
        if ! rustup target list --installed | grep -qx "$CARGO_XCODE_TRIPLE"; then
            echo "warning: this build requires rustup toolchain for $CARGO_XCODE_TRIPLE, but it isn't installed"
        fi
    fi

    if [ "${{ACTION:-build}}" = clean ]; then
        ( set -x; cargo clean --manifest-path="$CARGO_XCODE_MANIFEST_PATH" $CARGO_XCODE_PROFILE_FLAG --target="$CARGO_XCODE_TRIPLE"; )
        continue
    fi
    ( set -x; cargo build --manifest-path="$CARGO_XCODE_MANIFEST_PATH" $CARGO_XCODE_CARGO_FLAGS $CARGO_XCODE_PROFILE_FLAG $CARGO_XCODE_FEATURES_FLAG --target="$CARGO_XCODE_TRIPLE"; )
    ln -f -- "$CARGO_TARGET_DIR/$CARGO_XCODE_TRIPLE/$CARGO_XCODE_BUILD_PROFILE/$CARGO_XCODE_CARGO_FILE_NAME" "$DERIVED_FILE_DIR/$CARGO_XCODE_ARCH-$EXECUTABLE_NAME"
done

if [ "${{ACTION:-build}}" != clean ] && [ "$CARGO_XCODE_UNIVERSAL" != YES ]; then
    ln -f -- "$DERIVED_FILE_DIR/$CARGO_XCODE_ARCH-$EXECUTABLE_NAME" "$TARGET_BUILD_DIR/$EXECUTABLE_PATH"
fi
"""


def merge_script() -> str:
    """Shell script of the universal binary merge phase."""
    return f"""# generated with cargo-xcode {__version__}
set -eu
if [ "${{ACTION:-build}}" = clean ]; then
    exit 0
fi
set --
for CARGO_XCODE_ARCH in $ARCHS; do
    set -- "$@" "$DERIVED_FILE_DIR/$CARGO_XCODE_ARCH-$EXECUTABLE_NAME"
done
mkdir -p "$(dirname "$TARGET_BUILD_DIR/$EXECUTABLE_PATH")"
( set -x; lipo -create "$@" -output "$TARGET_BUILD_DIR/$EXECUTABLE_PATH"; )
if [ -n "${{LD_DYLIB_INSTALL_NAME:-}}" ]; then
    install_name_tool -id "$LD_DYLIB_INSTALL_NAME" "$TARGET_BUILD_DIR/$EXECUTABLE_PATH"
fi
"""
