"""wsl.exe command builders."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Sequence
from pathlib import Path

from wslops.config import DEFAULT_WSL_EXECUTABLE
from wslops.errors import ExitCode, WslOpsError

logger = py_logging.getLogger(__name__)

SUPPORTED_WSL_VERSIONS = (1, 2)


def _require_distribution(distribution: str) -> None:
    if not distribution:
        logger.error("WSL command requested without distribution")
        raise WslOpsError(
            "WSL distribution is required.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Select a distribution first.",
        )


def build_list_verbose_command(executable: str = DEFAULT_WSL_EXECUTABLE) -> list[str]:
    return [executable, "-l", "-v"]


def build_list_quiet_command(executable: str = DEFAULT_WSL_EXECUTABLE) -> list[str]:
    return [executable, "-l", "-q"]


def build_wsl_command(
    distribution: str,
    command: Sequence[str],
    *,
    user: str = "",
    executable: str = DEFAULT_WSL_EXECUTABLE,
) -> list[str]:
    _require_distribution(distribution)
    if not command:
        logger.error("WSL command requested with empty payload")
        raise WslOpsError(
            "Command is empty.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Provide a command to execute in WSL.",
        )
    prefix = [executable, "-d", distribution]
    if user.strip():
        prefix.extend(["-u", user.strip()])
    return [*prefix, "--", *command]


def build_terminate_command(
    distribution: str,
    *,
    executable: str = DEFAULT_WSL_EXECUTABLE,
) -> list[str]:
    _require_distribution(distribution)
    return [executable, "--terminate", distribution]


def build_export_command(
    distribution: str,
    target: str | Path,
    *,
    vhd: bool = False,
    executable: str = DEFAULT_WSL_EXECUTABLE,
) -> list[str]:
    _require_distribution(distribution)
    command = [executable, "--export", distribution, str(target)]
    if vhd:
        command.append("--vhd")
    return command


def build_import_command(
    distribution: str,
    install_dir: str | Path,
    tarball: str | Path,
    *,
    version: int | None = None,
    vhd: bool = False,
    executable: str = DEFAULT_WSL_EXECUTABLE,
) -> list[str]:
    _require_distribution(distribution)
    if version is not None and version not in SUPPORTED_WSL_VERSIONS:
        raise WslOpsError(
            f"Unsupported WSL version: {version}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use --version 1 or --version 2.",
        )
    command = [executable, "--import", distribution, str(install_dir), str(tarball)]
    if version is not None:
        command.extend(["--version", str(version)])
    if vhd:
        command.append("--vhd")
    return command
