"""
cli.py

Responsibility: CLI entrypoint for rerun-archive.

High-level flow (single command `build`):
1) Load config file + environment -> `Settings`, `ModuleRegistry`, `HostFramework`
2) Turn arguments into a `BuildRequest`
3) Dispatch to the format's builder
4) Report artifacts, or the fatal error and its exit status

Building lives in the builder modules; this module only wires and reports.
"""

from __future__ import annotations

import argparse
import os
import platform
from pathlib import Path

from rerun_archive.config import build_settings, discover_host, load_config
from rerun_archive.dispatcher import build, select_builder
from rerun_archive.errors import ArchiveError
from rerun_archive.logging import configure_logging, get_logger
from rerun_archive.models import FORMATS, BuildEnvironment, BuildRequest
from rerun_archive.registry import ModuleRegistry
from rerun_archive.toolchain import Toolchain

logger = get_logger("cli")


def _search_path(args: argparse.Namespace, config_paths: tuple[Path, ...]) -> list[Path]:
    paths = [Path(p) for p in args.modules_dir or []]
    paths.extend(config_paths)
    paths.extend(ModuleRegistry.from_environment().search_path)
    return paths


def build_cmd(args: argparse.Namespace) -> int:
    # Unknown formats fail before any config, host lookup or subprocess.
    select_builder(args.format)
    cwd = Path.cwd()
    file_config = load_config(args.config, cwd=cwd)
    settings = build_settings(file_config)
    toolchain = Toolchain()

    request = BuildRequest(
        format=args.format,
        modules=tuple(args.modules),
        file=args.file,
        version=args.version,
        release=str(args.release or settings.release),
        template=Path(args.template).resolve() if args.template else None,
    )
    env = BuildEnvironment(
        registry=ModuleRegistry(_search_path(args, file_config.modules_path)),
        toolchain=toolchain,
        settings=settings,
        host=discover_host(toolchain, os.environ),
        cwd=cwd,
        system=platform.system(),
    )

    artifacts = build(request, env)
    for path in artifacts:
        print(path)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rerun-archive", description="Package rerun modules as a shell archive, deb or rpm")
    p.add_argument("-v", "--verbose", action="store_true", help="Log every external command")
    p.add_argument("--log-file", default=None, help="Also write the log to this file")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="Build an archive or packages from modules")
    # Validated by the dispatcher so unknown formats fail with a build error.
    b.add_argument("--format", default="bin", help=f"Archive format: {'|'.join(FORMATS)} (default: bin)")
    b.add_argument("--modules", nargs="+", required=True, metavar="MODULE", help="Modules to package")
    b.add_argument("--file", default=None, help="Output file for bin/sh archives (default: rerun.sh)")
    b.add_argument("--version", default=None, help="Version override (required for multi-module archives)")
    b.add_argument("--release", default=None, help="Package release number for deb/rpm (default: 1)")
    b.add_argument("--template", default=None, help="Directory holding extract, launcher and rerun-module.spec")
    b.add_argument("--config", default=None, help="Config file (default: ./.rerun-archive.yml when present)")
    b.add_argument(
        "--modules-dir",
        action="append",
        default=None,
        help="Directory to search for modules; may be repeated (also: RERUN_MODULES)",
    )

    b.set_defaults(func=build_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose), log_file=Path(args.log_file) if args.log_file else None)
    try:
        return int(args.func(args))
    except ArchiveError as e:
        logger.error("%s", e)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
