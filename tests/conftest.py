from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from rerun_archive.config import default_template_dir
from rerun_archive.models import BuildEnvironment, HostFramework, Settings
from rerun_archive.registry import ModuleRegistry
from rerun_archive.toolchain import Toolchain
from tests._fixtures.modules import RecordingRunner


@pytest.fixture
def modules_dir(tmp_path: Path) -> Path:
    path = tmp_path / "modules"
    path.mkdir()
    return path


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def fake_rerun(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "rerun"
    path.parent.mkdir()
    path.write_text("#!/bin/sh\necho rerun 1.3.5\n", encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def make_env(modules_dir: Path, work_dir: Path, fake_rerun: Path, tmp_path: Path):
    """Build a BuildEnvironment around a runner (real subprocess when None)."""

    def _make(
        runner: RecordingRunner | None = None,
        *,
        which: Callable[[str], str | None] | None = None,
        host_version: str = "1.3.5",
        system: str = "Linux",
    ) -> BuildEnvironment:
        marker = tmp_path / "debian_version"
        marker.write_text("12.0\n", encoding="utf-8")
        return BuildEnvironment(
            registry=ModuleRegistry([modules_dir]),
            toolchain=Toolchain(runner=runner, which=which),
            settings=Settings(template_dir=default_template_dir()),
            host=HostFramework(version=host_version, executable=fake_rerun),
            cwd=work_dir,
            system=system,
            debian_marker=marker,
        )

    return _make
