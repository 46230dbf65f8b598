"""
rerun_archive package

Packages rerun modules as a self-extracting shell archive, Debian packages or
RPMs.

Key responsibilities are split across modules:
- `metadata.py`: load and validate a module's metadata declaration
- `shell_archive.py`, `debian.py`, `rpm.py`: one builder per format
- `dispatcher.py`: format -> builder
- `toolchain.py`: every external command (tar, gzip, openssl, dh_make, rpmbuild...)
- `cli.py`: CLI entrypoint and wiring (config -> request -> build)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
