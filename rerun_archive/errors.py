"""
errors.py

Responsibility: the single failure type raised anywhere in a build.

Builders raise at the point of detection and never recover locally; the CLI is
the only place that turns an `ArchiveError` into a message and an exit status.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFoundError"
    TOOLCHAIN = "ToolchainError"
    ENVIRONMENT = "EnvironmentError"


class ArchiveError(RuntimeError):
    def __init__(self, kind: ErrorKind, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.exit_code = exit_code or 1

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


def validation_error(message: str, *, exit_code: int = 1) -> ArchiveError:
    return ArchiveError(ErrorKind.VALIDATION, message, exit_code=exit_code)


def not_found_error(message: str) -> ArchiveError:
    return ArchiveError(ErrorKind.NOT_FOUND, message)


def toolchain_error(message: str, *, exit_code: int = 1) -> ArchiveError:
    return ArchiveError(ErrorKind.TOOLCHAIN, message, exit_code=exit_code)


def environment_error(message: str) -> ArchiveError:
    return ArchiveError(ErrorKind.ENVIRONMENT, message)
