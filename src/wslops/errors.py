"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    NO_DISTRIBUTIONS = 5
    CANCELLED = 6
    VALIDATION_ERROR = 7
    UNSUPPORTED_PLATFORM = 8


@dataclass
class WslOpsError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class NoDistributionsFound(WslOpsError):
    """Neither the verbose nor the quiet listing produced a record."""

    message: str = "No WSL distributions were found."
    code: ExitCode = ExitCode.NO_DISTRIBUTIONS
    hint: str = "Install a distribution using `wsl --install` and retry."


@dataclass
class SelectionCancelled(WslOpsError):
    """Interactive selection ended without a confirmed choice."""

    message: str = "Distribution selection was cancelled."
    code: ExitCode = ExitCode.CANCELLED
    hint: str = ""


def user_facing_error(message: str, *, hint: str = "") -> str:
    message = message.rstrip(".")
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
