"""
metadata.py

Responsibility: load a module's `metadata` declaration into a typed record and
validate the fields each package format depends on.

The declaration is the host framework's shell-assignment file:

    NAME="waitfor"
    DESCRIPTION="wait for a condition"
    VERSION=1.0.2
    REQUIRES="stubbs"
    EXTERNALS="curl, jq >= 1.5"

Every call returns a new `ModuleMetadata`, so nothing read for one module can
leak into the next.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import replace
from pathlib import Path

from rerun_archive.errors import not_found_error, validation_error
from rerun_archive.models import HostFramework, ModuleMetadata

RESERVED_NAMES = frozenset({"debian"})

_ASSIGNMENT = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")


def _parse_assignments(text: str) -> dict[str, str]:
    """
    Small parser for `KEY=value` lines:
    - ignores blank lines and `#` comments
    - unquotes values with shell rules (single, double or no quotes)
    """
    out: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT.match(line)
        if not match:
            continue
        key, value = match.groups()
        try:
            words = shlex.split(value, comments=True)
        except ValueError:
            words = [value.strip()]
        out[key] = " ".join(words)
    return out


def _split_requires(value: str) -> tuple[str, ...]:
    return tuple(part for part in re.split(r"[\s,]+", value) if part)


def _split_externals(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def metadata_path(module_dir: Path) -> Path:
    return Path(module_dir) / "metadata"


def load_metadata(module_dir: str | Path) -> ModuleMetadata:
    """Read `<module_dir>/metadata`, failing with NotFoundError when unreadable."""
    directory = Path(module_dir)
    path = metadata_path(directory)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise not_found_error(f"{directory}: metadata file missing or unreadable ({path})") from e
    except UnicodeDecodeError as e:
        raise not_found_error(f"{directory}: metadata file is not valid UTF-8 ({path}: {e.reason} at byte {e.start})") from e

    data = _parse_assignments(text)
    return ModuleMetadata(
        directory=directory,
        name=data.get("NAME", "").strip(),
        description=data.get("DESCRIPTION", "").strip(),
        version=data.get("VERSION", "").strip(),
        requires=_split_requires(data.get("REQUIRES", "")),
        externals=_split_externals(data.get("EXTERNALS", "")),
    )


def validate_metadata(meta: ModuleMetadata, *, version_override: str | None = None) -> ModuleMetadata:
    """
    Check name, description and version; return the record with the effective
    version applied (an explicit override wins over the declared version).
    """
    if not meta.name:
        raise validation_error(f"{meta.directory}: metadata does not define NAME")
    if meta.name in RESERVED_NAMES:
        raise validation_error(f"{meta.directory}: module name '{meta.name}' is reserved")
    if not meta.description:
        raise validation_error(f"{meta.directory}: metadata does not define DESCRIPTION")

    version = (version_override or meta.version or "").strip()
    if not version:
        raise validation_error(f"{meta.directory}: metadata does not define VERSION", exit_code=2)
    return replace(meta, version=version)


def resolve_metadata(module_dir: str | Path, *, version_override: str | None = None) -> ModuleMetadata:
    return validate_metadata(load_metadata(module_dir), version_override=version_override)


def split_version(meta: ModuleMetadata) -> tuple[str, str, str]:
    """Split `major.minor.revision`, naming the missing component on failure."""
    parts = meta.version.split(".")
    labels = ("major", "minor", "revision")
    for index, label in enumerate(labels):
        if len(parts) <= index or not parts[index]:
            raise validation_error(f"{meta.directory}: VERSION '{meta.version}' has no {label} number")
    return parts[0], parts[1], ".".join(parts[2:])


def check_compatible(meta: ModuleMetadata, host: HostFramework) -> tuple[str, str, str]:
    """Require the module's major version to equal the host framework's."""
    major, minor, revision = split_version(meta)
    host_major = host.major
    if major != host_major:
        raise validation_error(
            f"{meta.directory}: module major version {major} does not match rerun major version {host_major}"
        )
    return major, minor, revision


def requires_clause(meta: ModuleMetadata, major: str, *, prefix: str = "rerun") -> str:
    """Pin each required module to `major` and append externals verbatim."""
    parts = [f"{prefix}-{dep} = {major}" for dep in meta.requires]
    parts.extend(meta.externals)
    return ", ".join(parts)


__all__ = [
    "RESERVED_NAMES",
    "check_compatible",
    "load_metadata",
    "metadata_path",
    "requires_clause",
    "resolve_metadata",
    "split_version",
    "validate_metadata",
]
