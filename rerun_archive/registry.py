"""
registry.py

Responsibility: map a module name to its directory on disk.

The search path mirrors the host framework's RERUN_MODULES convention: an
ordered list of directories, the first `<dir>/<name>` directory wins.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Mapping

from rerun_archive.errors import not_found_error


class ModuleRegistry:
    def __init__(self, search_path: Iterable[str | Path]) -> None:
        self._search_path = [Path(p).expanduser() for p in search_path if str(p)]

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "ModuleRegistry":
        environ = os.environ if environ is None else environ
        raw = environ.get("RERUN_MODULES") or ""
        return cls(p for p in raw.split(os.pathsep) if p)

    @property
    def search_path(self) -> list[Path]:
        return list(self._search_path)

    def resolve(self, name: str) -> Path:
        """Return the module directory, raising a NotFoundError when absent."""
        if name in ("", ".", "..") or "/" in name:
            raise not_found_error(f"module not found: {name!r}")
        for base in self._search_path:
            candidate = base / name
            if candidate.is_dir():
                return candidate.resolve()
        searched = ":".join(str(p) for p in self._search_path) or "(empty search path)"
        raise not_found_error(f"module not found: {name} (searched {searched})")
