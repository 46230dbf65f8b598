"""
workspace.py

Responsibility: uniquely named staging directories that are always removed.

Cleanup runs on every exit path, including when a builder raises.
"""

from __future__ import annotations

import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from rerun_archive.logging import get_logger

logger = get_logger("workspace")


def make_writable(root: Path) -> None:
    """Add owner rwx to directories and rw to files so rmtree cannot trip."""
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        current.chmod(current.stat().st_mode | stat.S_IRWXU)
        for name in dirnames:
            path = current / name
            if not path.is_symlink():
                path.chmod(path.stat().st_mode | stat.S_IRWXU)
        for name in filenames:
            path = current / name
            if not path.is_symlink():
                path.chmod(path.stat().st_mode | stat.S_IRUSR | stat.S_IWUSR)


@contextmanager
def workspace(prefix: str, *, subdirs: tuple[str, ...] = ()) -> Iterator[Path]:
    """Create a temporary directory with optional subtrees and remove it on exit."""
    root = Path(tempfile.mkdtemp(prefix=f"rerun-archive.{prefix}."))
    logger.debug("created workspace %s", root)
    try:
        for sub in subdirs:
            (root / sub).mkdir(parents=True, exist_ok=True)
        yield root
    finally:
        if root.exists():
            make_writable(root)
            shutil.rmtree(root)
        logger.debug("removed workspace %s", root)
