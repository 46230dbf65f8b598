"""
toolchain.py

Responsibility: the only place external packaging tools are executed.

Every call is blocking, captures stdout/stderr, and maps a non-zero exit status
(or a missing executable) to a ToolchainError carrying that status.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Mapping, Sequence

from rerun_archive.errors import toolchain_error
from rerun_archive.logging import get_logger

logger = get_logger("toolchain")

Runner = Callable[..., "subprocess.CompletedProcess[bytes]"]

VCS_EXCLUDES = (".git", ".gitignore", ".svn", ".hg", ".bzr", "CVS")


def _default_runner(
    args: Sequence[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    input: bytes | None = None,
) -> "subprocess.CompletedProcess[bytes]":
    return subprocess.run(
        list(args),
        cwd=str(cwd),
        env=dict(env) if env is not None else None,
        input=input,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=False,
    )


class Toolchain:
    def __init__(self, runner: Runner | None = None, which: Callable[[str], str | None] | None = None) -> None:
        self._runner = runner or _default_runner
        self._which = which or shutil.which

    def which(self, name: str) -> str | None:
        return self._which(name)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        input: bytes | None = None,
        failure: str | None = None,
    ) -> bytes:
        """
        Run `cmd` in `cwd` and return its stdout.

        `failure` replaces the default error message when the command fails.
        """
        args = [str(part) for part in cmd]
        logger.debug("run (%s): %s", cwd, " ".join(args))
        try:
            completed = self._runner(args, cwd=cwd, env=env, input=input)
        except FileNotFoundError as e:
            raise toolchain_error(failure or f"Command not found: {args[0]}", exit_code=127) from e

        if completed.returncode != 0:
            stderr = (completed.stderr or b"").decode("utf-8", errors="replace").strip()
            message = failure or f"Command failed: {' '.join(args)}"
            if stderr:
                message = f"{message}\n\n{stderr}"
            raise toolchain_error(message, exit_code=completed.returncode)
        return completed.stdout or b""

    def copy_tree(self, src: Path, dest: Path, *, exclude: Sequence[str] = VCS_EXCLUDES) -> None:
        """
        Copy `src` into `dest` through a tar round trip.

        Packing and unpacking drops extended attributes and resource forks the
        way a plain recursive copy would not.
        """
        dest.mkdir(parents=True, exist_ok=True)
        create = ["tar", "-cf", "-"]
        for pattern in exclude:
            create.extend(["--exclude", pattern])
        create.append(".")
        stream = self.run(create, cwd=src, failure=f"Unable to archive {src}")
        self.run(["tar", "-xf", "-"], cwd=dest, input=stream, failure=f"Unable to extract {src} into {dest}")


def vcs_exclude_flags(system: str) -> list[str]:
    """GNU tar knows --exclude-vcs; BSD tar on Darwin needs explicit patterns."""
    if system == "Darwin":
        flags: list[str] = []
        for pattern in VCS_EXCLUDES:
            flags.extend(["--exclude", pattern])
        return flags
    return ["--exclude-vcs"]
