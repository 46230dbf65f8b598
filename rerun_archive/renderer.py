"""
renderer.py

Responsibility: fill template assets (extract/launcher scripts, generated
Debian files) with build values.

Rules:
- Templates are Jinja2 text; every referenced value must be supplied.
- Output keeps the template's trailing newline and uses LF line endings.
- Rendered files copy the template's permission bits unless a mode is given.

This module does not know about formats, modules or external tools.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from rerun_archive.errors import not_found_error, validation_error


def _environment() -> Environment:
    return Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_string(text: str, context: dict[str, Any], *, name: str = "<string>") -> str:
    try:
        return _environment().from_string(text).render(**context)
    except TemplateError as e:
        raise validation_error(f"Failed rendering template {name}: {e}") from e


def render_template_file(
    *,
    template_path: str | Path,
    destination: str | Path,
    context: dict[str, Any],
    mode: int | None = None,
) -> Path:
    src = Path(template_path)
    dst = Path(destination)
    if not src.is_file():
        raise not_found_error(f"Template not found: {src}")

    out = render_string(src.read_text(encoding="utf-8"), context, name=str(src))
    dst.parent.mkdir(parents=True, exist_ok=True)
    dst.write_text(out, encoding="utf-8", newline="\n")
    if mode is None:
        shutil.copymode(src, dst)
    else:
        dst.chmod(mode)
    return dst
