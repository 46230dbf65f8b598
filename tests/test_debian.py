"""Debian package builder tests."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from rerun_archive.debian import (
    build_debian,
    deb_filename,
    render_changelog,
    render_rules,
    rewrite_control,
    rewrite_copyright,
)
from rerun_archive.errors import ArchiveError, ErrorKind
from rerun_archive.metadata import resolve_metadata
from rerun_archive.models import BuildRequest, Settings
from tests._fixtures.modules import RecordingRunner, write_module

DH_MAKE_CONTROL = """\
Source: rerun-foo
Section: unknown
Priority: optional
Maintainer: root <root@unknown>
Build-Depends: debhelper-compat (= 13)
Standards-Version: 4.6.2
Homepage: <insert the upstream URL, if relevant>
#Vcs-Browser: https://salsa.debian.org/debian/rerun-foo

Package: rerun-foo
Architecture: all
Depends:
 ${misc:Depends},
Description: <insert up to 60 chars description>
 <Insert long description, indented with spaces.>
"""

DH_MAKE_COPYRIGHT = """\
Format: https://www.debian.org/doc/packaging-manuals/copyright-format/1.0/
Upstream-Name: rerun-foo
Upstream-Contact: <preferred name and address to reach the upstream project>
Source: <url://example.com>

Files: *
Copyright: <years> <put author's name and email here>
           <years> <likewise for another author>
License: Apache-2.0

# If you want to use GPL v2 or later for the /debian/* files use
# the following clauses, or change it to suit.
"""

SETTINGS = Settings(template_dir=Path("templates"))


def _fake_dh_make(args, cwd, data):  # type: ignore[no-untyped-def]
    debian = cwd / "debian"
    debian.mkdir(parents=True)
    (debian / "control").write_text(DH_MAKE_CONTROL, encoding="utf-8")
    (debian / "copyright").write_text(DH_MAKE_COPYRIGHT, encoding="utf-8")
    (debian / "changelog").write_text("placeholder\n", encoding="utf-8")
    (debian / "rules").write_text("#!/usr/bin/make -f\n%:\n\tdh $@\n", encoding="utf-8")
    (debian / "postinst.ex").write_text("example\n", encoding="utf-8")
    (debian / "README.Debian").write_text("readme\n", encoding="utf-8")
    (debian / "rerun-foo-docs.docs").write_text("README\n", encoding="utf-8")


class FakeDebuild:
    def __init__(self) -> None:
        self.snapshot: dict[str, str] = {}
        self.files: list[str] = []

    def __call__(self, args, cwd, data):  # type: ignore[no-untyped-def]
        debian = cwd / "debian"
        self.files = sorted(p.name for p in debian.iterdir())
        self.snapshot = {p.name: p.read_text(encoding="utf-8") for p in debian.iterdir() if p.is_file()}
        for name in ("rerun-foo_1.0.0-1_all.deb", "rerun-foo_1.0.0-1.dsc", "rerun-foo_1.0.0-1_amd64.changes"):
            (cwd.parent / name).write_text(name, encoding="utf-8")


def _meta(modules_dir: Path, **kwargs):  # type: ignore[no-untyped-def]
    return resolve_metadata(write_module(modules_dir, "foo", **kwargs))


def test_deb_filename_follows_debian_convention(modules_dir: Path) -> None:
    assert deb_filename(_meta(modules_dir, version="1.2.0"), "3") == "rerun-foo_1.2.0-3_all.deb"


def test_rewrite_control_fills_in_module_values(modules_dir: Path) -> None:
    meta = _meta(modules_dir, description="Wait for things")

    control = rewrite_control(DH_MAKE_CONTROL, meta, SETTINGS)

    assert "Section: shells\n" in control
    assert "Maintainer: rerun <rerun-discuss@googlegroups.com>\n" in control
    assert "Homepage: https://github.com/rerun-modules/foo\n" in control
    assert "Depends: ${misc:Depends}, rerun\n" in control
    assert "Build-Depends: debhelper-compat (= 13)\n" in control
    assert "Description: Wait for things\n" in control
    assert "<insert" not in control.lower()
    assert " Installs the rerun module foo into /usr/lib/rerun/modules/foo." in control
    assert control.endswith("modular, documented commands.\n")


def test_rewrite_copyright_drops_guidance(modules_dir: Path) -> None:
    copyright_text = rewrite_copyright(DH_MAKE_COPYRIGHT, _meta(modules_dir), SETTINGS, year=2026)

    assert "Source: https://github.com/rerun-modules/foo\n" in copyright_text
    assert "Copyright: 2010-2026 Rerun Project\n" in copyright_text
    assert "<" not in copyright_text.replace("<rerun-discuss@googlegroups.com>", "")
    assert "#" not in copyright_text
    assert "License: Apache-2.0" in copyright_text


def test_changelog_entry_names_release(modules_dir: Path) -> None:
    text = render_changelog(_meta(modules_dir, version="1.2.0"), "4", SETTINGS, timestamp="Mon, 19 Oct 2026 10:00:00 +0000")

    assert text.startswith("rerun-foo (1.2.0-4) unstable; urgency=low\n")
    assert text.endswith(" -- rerun <rerun-discuss@googlegroups.com>  Mon, 19 Oct 2026 10:00:00 +0000\n")


def test_rules_install_into_rerun_module_path(modules_dir: Path) -> None:
    rules = render_rules(_meta(modules_dir))

    assert "override_dh_auto_install:\n" in rules
    assert "\tmkdir -p debian/rerun-foo/usr/lib/rerun/modules/foo\n" in rules
    assert "\tcp -R foo/. debian/rerun-foo/usr/lib/rerun/modules/foo\n" in rules


def test_build_debian_runs_toolchain_and_moves_artifacts(modules_dir: Path, work_dir: Path, make_env) -> None:
    write_module(modules_dir, "foo", version="1.0.0", description="Foo things")
    debuild = FakeDebuild()
    runner = RecordingRunner({"dh_make": _fake_dh_make, "debuild": debuild})

    produced = build_debian(BuildRequest(format="deb", modules=("foo",)), make_env(runner))

    assert runner.programs() == ["tar", "tar", "dh_make", "debuild"]
    tar_create = runner.commands("tar")[0]
    assert tar_create[:2] == ["tar", "-czf"]
    assert tar_create[-2:] == ["--exclude-vcs", "foo-1.0.0"]
    dh_make = runner.commands("dh_make")[0]
    assert "--indep" in dh_make
    assert dh_make[dh_make.index("--packagename") + 1] == "rerun-foo_1.0.0"
    assert runner.calls[2][2] == b"\n"
    assert runner.commands("debuild") == [["debuild", "-us", "-uc"]]

    assert "postinst.ex" not in debuild.files
    assert "README.Debian" not in debuild.files
    assert "rerun-foo-docs.docs" not in debuild.files
    assert "Description: Foo things" in debuild.snapshot["control"]
    assert debuild.snapshot["changelog"].startswith("rerun-foo (1.0.0-1)")
    assert "override_dh_auto_install" in debuild.snapshot["rules"]

    names = sorted(p.name for p in produced)
    assert "rerun-foo_1.0.0-1_all.deb" in names
    assert all(p.parent == work_dir and p.exists() for p in produced)


def test_build_debian_stages_module_tree(modules_dir: Path, make_env) -> None:
    write_module(modules_dir, "foo")
    seen: list[Path] = []

    def tar(args, cwd, data):  # type: ignore[no-untyped-def]
        if "-czf" in args:
            seen.extend(sorted(p.relative_to(cwd) for p in cwd.rglob("*") if p.is_file()))

    runner = RecordingRunner({"tar": tar, "dh_make": _fake_dh_make, "debuild": FakeDebuild()})
    build_debian(BuildRequest(format="deb", modules=("foo",)), make_env(runner))

    assert Path("foo-1.0.0/foo/commands/hello/script") in seen
    assert Path("foo-1.0.0/foo/metadata") in seen


def test_release_and_version_override(modules_dir: Path, make_env) -> None:
    write_module(modules_dir, "foo", version="1.0.0")
    debuild = FakeDebuild()
    runner = RecordingRunner({"dh_make": _fake_dh_make, "debuild": debuild})

    build_debian(BuildRequest(format="deb", modules=("foo",), version="1.1.0", release="7"), make_env(runner))

    assert debuild.snapshot["changelog"].startswith("rerun-foo (1.1.0-7)")


def test_missing_metadata_is_fatal(modules_dir: Path, make_env) -> None:
    write_module(modules_dir, "foo", metadata=False)
    runner = RecordingRunner()

    with pytest.raises(ArchiveError) as excinfo:
        build_debian(BuildRequest(format="deb", modules=("foo",)), make_env(runner))

    assert excinfo.value.kind is ErrorKind.NOT_FOUND
    assert runner.calls == []


def test_debuild_failure_names_module(modules_dir: Path, make_env) -> None:
    write_module(modules_dir, "foo")
    runner = RecordingRunner(
        {
            "dh_make": _fake_dh_make,
            "debuild": lambda args, cwd, data: subprocess.CompletedProcess(args, 29, b"", b"lintian"),
        }
    )

    with pytest.raises(ArchiveError) as excinfo:
        build_debian(BuildRequest(format="deb", modules=("foo",)), make_env(runner))

    assert excinfo.value.kind is ErrorKind.TOOLCHAIN
    assert excinfo.value.exit_code == 29
    assert "foo" in excinfo.value.message


def test_requires_debian_system(modules_dir: Path, tmp_path: Path, make_env) -> None:
    write_module(modules_dir, "foo")
    runner = RecordingRunner()
    env = make_env(runner)
    env.debian_marker = tmp_path / "not-there"

    with pytest.raises(ArchiveError) as excinfo:
        build_debian(BuildRequest(format="deb", modules=("foo",)), env)

    assert excinfo.value.kind is ErrorKind.ENVIRONMENT
    assert runner.calls == []
