# SPDX-License-Identifier: MIT
"""File helpers for writing generated output.

Generated files are written next to their destination and renamed into
place, so a crash or an error mid-write never leaves a truncated file
where the previous good one used to be.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pbxproj import XcodeProject

logger = logging.getLogger(__name__)


@contextmanager
def temporary_sibling(dest: Path) -> Iterator[Path]:
    """Yield a fresh temporary path in the same directory as `dest`.

    The temporary file is removed on exit unless it was moved away.
    Creates parent directories as needed.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    os.close(fd)
    tmp = Path(name)
    try:
        yield tmp
    finally:
        if tmp.exists():
            tmp.unlink()


def replace_if_changed(src: Path, dest: Path) -> bool:
    """Atomically move `src` over `dest` unless their contents match.

    Leaving an identical file alone keeps its timestamp, so the IDE
    does not reload a project that did not change.

    Returns:
        True if `dest` was replaced, False if it already had the content.
    """
    if dest.is_file() and dest.read_bytes() == src.read_bytes():
        logger.debug("%s is up to date", dest)
        src.unlink()
        return False
    os.replace(src, dest)
    return True


def write_project(tree: dict[str, Any], path: Path) -> bool:
    """Render a project tree with pbxproj and write it atomically.

    Args:
        tree: The project.pbxproj tree (see ObjectGraph.to_tree).
        path: Destination project.pbxproj path.

    Returns:
        True if the file was created or changed.
    """
    with temporary_sibling(path) as tmp:
        XcodeProject(tree, str(tmp)).save()
        changed = replace_if_changed(tmp, path)
    if changed:
        logger.info("Wrote %s", path)
    return changed
