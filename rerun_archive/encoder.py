"""
encoder.py

Responsibility: turn the gzip payload into text that survives being appended
to a shell script, and name the matching decoder for the extract script.

OpenSSL base64 is preferred; uuencode (base64 mode) is the portable fallback.
The decoder string must always come from the same Codec as the encoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rerun_archive.errors import environment_error, toolchain_error
from rerun_archive.toolchain import Toolchain


@dataclass(frozen=True)
class Codec:
    name: str
    encode_cmd: tuple[str, ...]
    decoder: str


OPENSSL = Codec(
    name="openssl",
    encode_cmd=("openssl", "enc", "-base64"),
    decoder="openssl enc -base64 -d",
)

UUENCODE = Codec(
    name="uuencode",
    encode_cmd=("uuencode", "-m", "payload.tgz"),
    decoder="uudecode -o /dev/stdout",
)


def select_codec(toolchain: Toolchain) -> Codec:
    if toolchain.which("openssl"):
        return OPENSSL
    if toolchain.which("uuencode"):
        return UUENCODE
    raise environment_error("Neither openssl nor uuencode is available to encode the archive payload")


def encode(toolchain: Toolchain, codec: Codec, data: bytes, *, cwd: Path) -> bytes:
    encoded = toolchain.run(codec.encode_cmd, cwd=cwd, input=data, failure=f"Unable to encode payload with {codec.name}")
    if not encoded:
        raise toolchain_error(f"{codec.name} produced no output for the archive payload")
    return encoded
