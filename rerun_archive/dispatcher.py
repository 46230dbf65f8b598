"""
dispatcher.py

Responsibility: pick the builder for a requested format.

`bin` and `sh` are the same self-extracting shell archive.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from rerun_archive.debian import build_debian
from rerun_archive.errors import validation_error
from rerun_archive.models import FORMATS, BuildEnvironment, BuildRequest
from rerun_archive.rpm import build_rpm
from rerun_archive.shell_archive import build_shell_archive

Builder = Callable[[BuildRequest, BuildEnvironment], "Path | list[Path]"]

BUILDERS: dict[str, Builder] = {
    "bin": build_shell_archive,
    "sh": build_shell_archive,
    "deb": build_debian,
    "rpm": build_rpm,
}


def select_builder(fmt: str) -> Builder:
    try:
        return BUILDERS[fmt]
    except KeyError:
        raise validation_error(f"Unsupported format: {fmt!r} (expected one of: {', '.join(FORMATS)})") from None


def build(request: BuildRequest, env: BuildEnvironment) -> list[Path]:
    """Run the builder for `request.format` and return the artifacts it wrote."""
    builder = select_builder(request.format)
    if not request.modules:
        raise validation_error("No modules specified")
    result = builder(request, env)
    if isinstance(result, Path):
        return [result]
    return list(result)
