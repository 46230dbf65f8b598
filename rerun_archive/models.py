"""Records shared by the dispatcher, the builders and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from rerun_archive.errors import environment_error

if TYPE_CHECKING:
    from rerun_archive.registry import ModuleRegistry
    from rerun_archive.toolchain import Toolchain

FORMATS = ("bin", "sh", "deb", "rpm")


@dataclass(frozen=True)
class BuildRequest:
    """One invocation's worth of input. Duplicate module names are built twice."""

    format: str
    modules: tuple[str, ...]
    file: str | None = None
    version: str | None = None
    release: str = "1"
    template: Path | None = None


@dataclass(frozen=True)
class ModuleMetadata:
    """A freshly loaded metadata record; one per module, never reused."""

    directory: Path
    name: str = ""
    description: str = ""
    version: str = ""
    requires: tuple[str, ...] = ()
    externals: tuple[str, ...] = ()


@dataclass(frozen=True)
class Settings:
    """Packaging defaults that can be overridden by the config file."""

    template_dir: Path
    release: str = "1"
    maintainer: str = "rerun <rerun-discuss@googlegroups.com>"
    homepage: str = "https://github.com/rerun-modules/{name}"
    copyright_holder: str = "Rerun Project"
    generator: str = "rerun-archive"

    def homepage_for(self, name: str) -> str:
        return self.homepage.replace("{name}", name)


@dataclass(frozen=True)
class HostFramework:
    """The framework the tool runs under; either field may be unknown."""

    version: str | None = None
    executable: Path | None = None

    def require_version(self) -> str:
        if not self.version:
            raise environment_error("Unable to determine the rerun version (set RERUN_VERSION)")
        return self.version

    def require_executable(self) -> Path:
        if self.executable is None or not self.executable.is_file():
            raise environment_error(f"rerun executable not found: {self.executable or '(unset, set RERUN)'}")
        return self.executable

    @property
    def major(self) -> str:
        return self.require_version().split(".", 1)[0]


@dataclass
class BuildEnvironment:
    """Collaborators a builder needs besides the request itself."""

    registry: ModuleRegistry
    toolchain: Toolchain
    settings: Settings
    host: HostFramework = field(default_factory=HostFramework)
    cwd: Path = field(default_factory=Path.cwd)
    system: str = "Linux"
    debian_marker: Path = Path("/etc/debian_version")
