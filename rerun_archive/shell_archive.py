"""
shell_archive.py

Responsibility: build one self-extracting shell script bundling rerun and a
set of modules.

Flow:
1) Resolve the output path and the payload codec before touching disk
2) Stage modules under `rerun/modules/` and the rerun executable beside them
3) Render the extract and launcher scripts
4) tar -> gzip -> encode the workspace, append it to the extract script
"""

from __future__ import annotations

import getpass
import shutil
import stat
from datetime import datetime
from pathlib import Path
from typing import Any

from rerun_archive.encoder import Codec, encode, select_codec
from rerun_archive.errors import validation_error
from rerun_archive.logging import get_logger
from rerun_archive.metadata import load_metadata, metadata_path
from rerun_archive.models import BuildEnvironment, BuildRequest
from rerun_archive.renderer import render_template_file
from rerun_archive.workspace import workspace

logger = get_logger("shell_archive")

DEFAULT_FILE = "rerun.sh"
PAYLOAD_MEMBERS = ("launcher", "extract", "rerun")


def resolve_output(file: str | None, cwd: Path) -> Path:
    """Default to rerun.sh, anchor relative paths at `cwd`, require the parent."""
    path = Path(file or DEFAULT_FILE).expanduser()
    if not path.is_absolute():
        path = cwd / path
    if not path.parent.is_dir():
        raise validation_error(f"Output directory does not exist: {path.parent}")
    return path


def resolve_version(request: BuildRequest, env: BuildEnvironment) -> str:
    if request.version:
        return request.version
    if len(request.modules) == 1:
        module_dir = env.registry.resolve(request.modules[0])
        if metadata_path(module_dir).is_file():
            declared = load_metadata(module_dir).version
            if declared:
                return declared
    raise validation_error("Version not specified: use --version", exit_code=2)


def _invoking_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def _template_context(*, output: Path, version: str, release: str, codec: Codec, generator: str) -> dict[str, Any]:
    return {
        "generator": generator,
        "file": output.name,
        "date": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "user": _invoking_user(),
        "version": version,
        "release": release,
        "decoder": codec.decoder,
    }


def _stage_modules(request: BuildRequest, env: BuildEnvironment, modules_root: Path) -> list[str]:
    staged: list[str] = []
    for name in request.modules:
        module_dir = env.registry.resolve(name)
        if not (module_dir / "commands").is_dir():
            logger.debug("skipping %s: no commands directory in %s", name, module_dir)
            continue
        env.toolchain.copy_tree(module_dir, modules_root / name)
        staged.append(name)
    return staged


def build_shell_archive(request: BuildRequest, env: BuildEnvironment) -> Path:
    output = resolve_output(request.file, env.cwd)
    executable = env.host.require_executable()
    codec = select_codec(env.toolchain)
    version = resolve_version(request, env)
    template_dir = Path(request.template or env.settings.template_dir)

    with workspace("sh") as root:
        modules_root = root / "rerun" / "modules"
        modules_root.mkdir(parents=True)
        staged = _stage_modules(request, env, modules_root)
        logger.debug("staged modules: %s", ", ".join(staged) or "(none)")

        shutil.copy2(executable, root / "rerun" / "rerun")

        context = _template_context(
            output=output,
            version=version,
            release=request.release,
            codec=codec,
            generator=env.settings.generator,
        )
        for name in ("extract", "launcher"):
            render_template_file(template_path=template_dir / name, destination=root / name, context=context, mode=0o755)

        tar_stream = env.toolchain.run(["tar", "-cf", "-", *PAYLOAD_MEMBERS], cwd=root, failure="Unable to create the archive payload")
        compressed = env.toolchain.run(["gzip", "-c"], cwd=root, input=tar_stream, failure="Unable to compress the archive payload")
        encoded = encode(env.toolchain, codec, compressed, cwd=root)

        header = (root / "extract").read_bytes()
        output.write_bytes(header + encoded)
        output.chmod(output.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    logger.info("Wrote %s", output)
    return output
