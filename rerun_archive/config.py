"""
config.py

Responsibility: gather settings from the optional `.rerun-archive.yml`, the
environment, and built-in defaults.

Precedence is command line > config file > environment > defaults; the CLI
applies its own overrides on top of what this module returns.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from rerun_archive.errors import ArchiveError, validation_error
from rerun_archive.models import HostFramework, Settings
from rerun_archive.toolchain import Toolchain

CONFIG_FILENAME = ".rerun-archive.yml"

_STRING_KEYS = ("maintainer", "homepage", "copyright_holder", "generator")


@dataclass(frozen=True)
class FileConfig:
    """Values read from the config file; None means not set there."""

    modules_path: tuple[Path, ...] = ()
    template_dir: Path | None = None
    release: str | None = None
    maintainer: str | None = None
    homepage: str | None = None
    copyright_holder: str | None = None
    generator: str | None = None


def default_template_dir() -> Path:
    return Path(__file__).resolve().parent / "templates"


def _as_str(value: Any, key: str, path: Path) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise validation_error(f"{path}: `{key}` must be a string")
    return str(value).strip() or None


def load_config(path: str | Path | None = None, *, cwd: Path | None = None) -> FileConfig:
    """
    Parse the YAML config file.

    An explicit `path` must exist; the default `<cwd>/.rerun-archive.yml` is
    optional.
    """
    if path is None:
        config_path = (cwd or Path.cwd()) / CONFIG_FILENAME
        if not config_path.exists():
            return FileConfig()
    else:
        config_path = Path(path)
        if not config_path.is_file():
            raise validation_error(f"Config file does not exist: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise validation_error(f"{config_path}: invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise validation_error(f"{config_path}: config must be a mapping at the top level")

    base = config_path.resolve().parent

    raw_paths = data.get("modules_path") or []
    if isinstance(raw_paths, str):
        raw_paths = [raw_paths]
    if not isinstance(raw_paths, list):
        raise validation_error(f"{config_path}: `modules_path` must be a list of directories")
    modules_path = tuple(base / Path(str(p)).expanduser() for p in raw_paths)

    template = _as_str(data.get("template_dir"), "template_dir", config_path)
    release = _as_str(data.get("release"), "release", config_path)
    strings = {key: _as_str(data.get(key), key, config_path) for key in _STRING_KEYS}

    return FileConfig(
        modules_path=modules_path,
        template_dir=base / Path(template).expanduser() if template else None,
        release=release,
        **strings,
    )


def build_settings(config: FileConfig) -> Settings:
    overrides = {key: getattr(config, key) for key in _STRING_KEYS if getattr(config, key)}
    return Settings(
        template_dir=config.template_dir or default_template_dir(),
        release=config.release or "1",
        **overrides,
    )


def discover_host(toolchain: Toolchain, environ: Mapping[str, str] | None = None) -> HostFramework:
    """
    Locate the rerun executable (RERUN, else PATH) and its version
    (RERUN_VERSION, else the first line of `rerun --version`).
    """
    environ = os.environ if environ is None else environ
    raw = environ.get("RERUN") or toolchain.which("rerun")
    executable = Path(raw).resolve() if raw else None

    version = (environ.get("RERUN_VERSION") or "").strip() or None
    if version is None and executable is not None and executable.is_file():
        try:
            out = toolchain.run([str(executable), "--version"], cwd=executable.parent)
        except ArchiveError:
            out = b""
        lines = out.decode("utf-8", errors="replace").strip().splitlines()
        if lines:
            version = lines[0].split()[-1]
    return HostFramework(version=version, executable=executable)
