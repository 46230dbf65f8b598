"""
debian.py

Responsibility: build one `rerun-<name>_<version>-<release>_all.deb` per module.

Per module:
1) Validate metadata (missing metadata is fatal here)
2) Stage `stb/<name>-<version>/<name>/`, tar it, unpack it into `deb/`
3) dh_make a skeleton, then rewrite control/changelog/copyright/rules
4) debuild unsigned and move every `rerun-<name>_*` file to the working dir
"""

from __future__ import annotations

import shutil
from datetime import datetime
from email.utils import formatdate
from pathlib import Path

from rerun_archive.errors import environment_error
from rerun_archive.logging import get_logger
from rerun_archive.metadata import resolve_metadata
from rerun_archive.models import BuildEnvironment, BuildRequest, ModuleMetadata, Settings
from rerun_archive.renderer import render_string
from rerun_archive.toolchain import VCS_EXCLUDES, vcs_exclude_flags
from rerun_archive.workspace import workspace

logger = get_logger("debian")

INSTALL_ROOT = "/usr/lib/rerun/modules"
LEFTOVER_PATTERNS = ("*.ex", "*.EX", "README.Debian", "README.source", "*.docs")
COPYRIGHT_START_YEAR = 2010

CHANGELOG_TEMPLATE = """\
rerun-{{ name }} ({{ version }}-{{ release }}) unstable; urgency=low

  * Release {{ version }}-{{ release }} of the rerun module {{ name }}.

 -- {{ maintainer }}  {{ timestamp }}
"""

RULES_TEMPLATE = """\
#!/usr/bin/make -f

%:
\tdh $@

override_dh_auto_install:
\tmkdir -p debian/rerun-{{ name }}{{ install_root }}/{{ name }}
\tcp -R {{ name }}/. debian/rerun-{{ name }}{{ install_root }}/{{ name }}
"""

LONG_DESCRIPTION = (
    " Installs the rerun module {name} into {root}/{name}.",
    " Rerun is a simple command runner that turns loose shell scripts",
    " into modular, documented commands.",
)


def package_name(meta: ModuleMetadata) -> str:
    return f"rerun-{meta.name}"


def deb_filename(meta: ModuleMetadata, release: str) -> str:
    return f"{package_name(meta)}_{meta.version}-{release}_all.deb"


def _rewrite_fields(text: str, replacements: dict[str, list[str]]) -> list[str]:
    """
    Replace whole control-style fields (the field line plus its indented
    continuation lines) with the given lines.
    """
    out: list[str] = []
    skipping = False
    for line in text.splitlines():
        if skipping and line.startswith((" ", "\t")) and line.strip():
            continue
        skipping = False
        field = line.split(":", 1)[0] if ":" in line and not line.startswith((" ", "\t")) else None
        if field in replacements:
            out.extend(replacements[field])
            skipping = True
            continue
        out.append(line)
    return out


def rewrite_control(text: str, meta: ModuleMetadata, settings: Settings) -> str:
    long_description = [line.format(name=meta.name, root=INSTALL_ROOT) for line in LONG_DESCRIPTION]
    lines = _rewrite_fields(
        text,
        {
            "Section": ["Section: shells"],
            "Maintainer": [f"Maintainer: {settings.maintainer}"],
            "Homepage": [f"Homepage: {settings.homepage_for(meta.name)}"],
            "#Homepage": [f"Homepage: {settings.homepage_for(meta.name)}"],
            "Depends": ["Depends: ${misc:Depends}, rerun"],
            "Description": [f"Description: {meta.description}", *long_description],
        },
    )
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines) + "\n"


def rewrite_copyright(text: str, meta: ModuleMetadata, settings: Settings, *, year: int) -> str:
    lines = _rewrite_fields(
        text,
        {
            "Source": [f"Source: {settings.homepage_for(meta.name)}"],
            "Upstream-Contact": [f"Upstream-Contact: {settings.maintainer}"],
            "Copyright": [f"Copyright: {COPYRIGHT_START_YEAR}-{year} {settings.copyright_holder}"],
        },
    )
    kept = []
    for line in lines:
        stripped = line.strip()
        if stripped.startswith("#"):
            continue
        if stripped.startswith("<") and stripped.endswith(">"):
            continue
        kept.append(line)
    return "\n".join(kept).rstrip("\n") + "\n"


def render_changelog(meta: ModuleMetadata, release: str, settings: Settings, *, timestamp: str) -> str:
    return render_string(
        CHANGELOG_TEMPLATE,
        {
            "name": meta.name,
            "version": meta.version,
            "release": release,
            "maintainer": settings.maintainer,
            "timestamp": timestamp,
        },
        name="debian/changelog",
    )


def render_rules(meta: ModuleMetadata) -> str:
    return render_string(RULES_TEMPLATE, {"name": meta.name, "install_root": INSTALL_ROOT}, name="debian/rules")


def _remove_leftovers(debian_dir: Path) -> None:
    for pattern in LEFTOVER_PATTERNS:
        for path in debian_dir.glob(pattern):
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _customize(debian_dir: Path, meta: ModuleMetadata, release: str, settings: Settings) -> None:
    control = debian_dir / "control"
    control.write_text(rewrite_control(control.read_text(encoding="utf-8"), meta, settings), encoding="utf-8")

    changelog = debian_dir / "changelog"
    changelog.write_text(
        render_changelog(meta, release, settings, timestamp=formatdate(localtime=True)),
        encoding="utf-8",
    )

    copyright_file = debian_dir / "copyright"
    if copyright_file.exists():
        copyright_file.write_text(
            rewrite_copyright(copyright_file.read_text(encoding="utf-8"), meta, settings, year=datetime.now().year),
            encoding="utf-8",
        )

    rules = debian_dir / "rules"
    rules.write_text(render_rules(meta), encoding="utf-8")
    rules.chmod(0o755)

    _remove_leftovers(debian_dir)


def _build_module(name: str, request: BuildRequest, env: BuildEnvironment) -> list[Path]:
    module_dir = env.registry.resolve(name)
    meta = resolve_metadata(module_dir, version_override=request.version)
    source = f"{meta.name}-{meta.version}"
    tool = env.toolchain

    with workspace(f"deb.{meta.name}", subdirs=("deb", f"stb/{source}/{meta.name}")) as root:
        staging = root / "stb" / source / meta.name
        shutil.copytree(
            module_dir,
            staging,
            symlinks=True,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns(*VCS_EXCLUDES),
        )

        tarball = root / "deb" / f"{source}.tar.gz"
        tool.run(
            ["tar", "-czf", str(tarball), *vcs_exclude_flags(env.system), source],
            cwd=root / "stb",
            failure=f"Unable to create source tarball for module {meta.name}",
        )
        tool.run(["tar", "-xzf", tarball.name], cwd=root / "deb", failure=f"Unable to unpack {tarball.name}")

        build_dir = root / "deb" / source
        tool.run(
            [
                "dh_make",
                "--indep",
                "--copyright",
                "apache",
                "--packagename",
                f"{package_name(meta)}_{meta.version}",
                "--file",
                f"../{tarball.name}",
            ],
            cwd=build_dir,
            input=b"\n",
            failure=f"dh_make failed for module {meta.name}",
        )

        _customize(build_dir / "debian", meta, request.release, env.settings)

        tool.run(
            ["debuild", "-us", "-uc"],
            cwd=build_dir,
            failure=f"Failed to build Debian package for module {meta.name} ({deb_filename(meta, request.release)})",
        )

        produced: list[Path] = []
        for artifact in sorted((root / "deb").glob(f"{package_name(meta)}_*")):
            if not artifact.is_file():
                continue
            target = env.cwd / artifact.name
            shutil.move(str(artifact), str(target))
            produced.append(target)

    for path in produced:
        if path.suffix == ".deb":
            logger.info("Wrote %s", path)
    return produced


def build_debian(request: BuildRequest, env: BuildEnvironment) -> list[Path]:
    if not env.debian_marker.exists():
        raise environment_error(f"Debian packages can only be built on a Debian-based system ({env.debian_marker} not found)")
    produced: list[Path] = []
    for name in request.modules:
        produced.extend(_build_module(name, request, env))
    return produced
