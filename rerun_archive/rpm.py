"""
rpm.py

Responsibility: build one `rerun-<name>-<version>-<release><dist>.noarch.rpm`
per module with rpmbuild and the shared spec template.

Modules without a metadata file are skipped; every other problem is fatal.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from rerun_archive.errors import not_found_error, toolchain_error
from rerun_archive.logging import get_logger
from rerun_archive.metadata import check_compatible, metadata_path, requires_clause, resolve_metadata
from rerun_archive.models import BuildEnvironment, BuildRequest, ModuleMetadata
from rerun_archive.toolchain import VCS_EXCLUDES, vcs_exclude_flags
from rerun_archive.workspace import make_writable, workspace

logger = get_logger("rpm")

SPEC_TEMPLATE = "rerun-module.spec"
TOPDIR_LAYOUT = ("SOURCES", "BUILD", "RPMS", "tmp")


def rpm_filename(meta: ModuleMetadata, release: str, dist: str) -> str:
    return f"rerun-{meta.name}-{meta.version}-{release}{dist}.noarch.rpm"


def dist_tag(env: BuildEnvironment) -> str:
    if env.system == "Darwin":
        return ""
    out = env.toolchain.run(["rpm", "--eval", "%{?dist}"], cwd=env.cwd, failure="Unable to query the rpm dist tag")
    return out.decode("utf-8", errors="replace").strip()


def remove_stale_rpms(module_dir: Path, meta: ModuleMetadata) -> list[Path]:
    removed = []
    for stale in sorted(module_dir.glob(f"rerun-{meta.name}-*.rpm")):
        stale.unlink()
        removed.append(stale)
    return removed


def _define(name: str, value: str) -> list[str]:
    return ["--define", f"{name} {value if value else '%{nil}'}"]


def rpmbuild_command(
    *,
    topdir: Path,
    spec: Path,
    meta: ModuleMetadata,
    release: str,
    requires: str,
    version_parts: tuple[str, str, str],
) -> list[str]:
    major, minor, revision = version_parts
    cmd = ["rpmbuild", "-bb", "--target", "noarch"]
    cmd += _define("_topdir", str(topdir))
    cmd += _define("_tmppath", str(topdir / "tmp"))
    cmd += _define("module", meta.name)
    cmd += _define("desc", meta.description)
    cmd += _define("version", meta.version)
    cmd += _define("release", release)
    cmd += _define("requires", requires)
    cmd += _define("major", major)
    cmd += _define("minor", minor)
    cmd += _define("revision", revision)
    cmd.append(str(spec))
    return cmd


def _build_module(name: str, request: BuildRequest, env: BuildEnvironment, spec: Path) -> Path | None:
    module_dir = env.registry.resolve(name)
    if not metadata_path(module_dir).is_file():
        logger.debug("skipping %s: no metadata file in %s", name, module_dir)
        return None

    meta = resolve_metadata(module_dir, version_override=request.version)
    version_parts = check_compatible(meta, env.host)
    requires = requires_clause(meta, version_parts[0])
    dist = dist_tag(env)
    expected = rpm_filename(meta, request.release, dist)

    for stale in remove_stale_rpms(module_dir, meta):
        logger.debug("removed stale %s", stale)

    source = f"{meta.name}-{meta.version}"
    tool = env.toolchain
    with workspace(f"rpm.{meta.name}", subdirs=TOPDIR_LAYOUT) as topdir:
        sources = topdir / "SOURCES"
        staging = sources / source
        shutil.copytree(module_dir, staging, symlinks=True, ignore=shutil.ignore_patterns(*VCS_EXCLUDES))
        # Some build wrappers hand out read-only module checkouts, at any depth.
        make_writable(staging)

        tool.run(
            ["tar", "-czf", f"{source}.tgz", *vcs_exclude_flags(env.system), source],
            cwd=sources,
            failure=f"Unable to create source tarball for module {meta.name}",
        )
        shutil.rmtree(staging)

        tool.run(
            rpmbuild_command(
                topdir=topdir,
                spec=spec,
                meta=meta,
                release=request.release,
                requires=requires,
                version_parts=version_parts,
            ),
            cwd=topdir,
            failure=f"rpmbuild failed for module {meta.name}: {expected} was not built",
        )

        built = topdir / "RPMS" / "noarch" / expected
        if not built.is_file():
            raise toolchain_error(f"rpmbuild finished but {expected} was not found in {built.parent}")
        target = env.cwd / expected
        shutil.move(str(built), str(target))

    logger.info("Wrote %s", target)
    return target


def build_rpm(request: BuildRequest, env: BuildEnvironment) -> list[Path]:
    spec = Path(request.template or env.settings.template_dir) / SPEC_TEMPLATE
    if not spec.is_file():
        raise not_found_error(f"RPM spec template not found: {spec}")
    produced: list[Path] = []
    for name in request.modules:
        built = _build_module(name, request, env, spec)
        if built is not None:
            produced.append(built)
    return produced
