"""Subprocess plumbing for wsl.exe and friends."""

from __future__ import annotations

import logging as py_logging
import shlex
import subprocess
from collections.abc import Callable, Sequence

from wslops.errors import ExitCode, WslOpsError

logger = py_logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]

DEFAULT_LOG_TRUNCATE_LIMIT = 400


def decode_process_output(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.replace("\ufeff", "")
    if not value:
        return ""

    # wsl.exe may emit UTF-16LE in Windows consoles.
    if b"\x00" in value:
        for encoding in ("utf-16le", "utf-16"):
            try:
                return value.decode(encoding).replace("\ufeff", "")
            except UnicodeDecodeError:
                continue

    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return value.decode(encoding)
        except UnicodeDecodeError:
            continue
    return value.decode("utf-8", errors="replace")


def truncate_log(value: str, limit: int = DEFAULT_LOG_TRUNCATE_LIMIT) -> str:
    """Truncate log text to the specified limit with ellipsis."""
    value = value.strip()
    if len(value) <= limit:
        return value
    return value[: max(0, limit - 3)] + "..."


def command_for_log(args: Sequence[str]) -> str:
    """Return a shell-safe command string bounded for logging."""
    if not args:
        return ""
    return truncate_log(" ".join(shlex.quote(str(part)) for part in args))


def run_command(
    args: Sequence[str],
    *,
    runner: Runner = subprocess.run,
    input_text: str | None = None,
    timeout_seconds: int | None = None,
    capture: bool = True,
) -> tuple[int, str, str]:
    """Run a command to completion and return (returncode, stdout, stderr) as text."""
    command = [str(part) for part in args]
    logger.debug("Running command: %s", command_for_log(command))
    kwargs: dict[str, object] = {"check": False}
    if capture:
        kwargs["capture_output"] = True
    if input_text is not None:
        kwargs["input"] = input_text.encode("utf-8")
    if timeout_seconds is not None:
        kwargs["timeout"] = timeout_seconds
    try:
        result = runner(command, **kwargs)
    except FileNotFoundError as exc:
        logger.error("Executable not found: %s", command[0])
        raise WslOpsError(
            f"Executable not found: {command[0]}",
            code=ExitCode.UNSUPPORTED_PLATFORM,
            hint="Run this tool from Windows with WSL installed, or set wsl_executable in the config.",
        ) from exc
    except subprocess.TimeoutExpired as exc:
        logger.error("Command timed out after %ss: %s", timeout_seconds, command_for_log(command))
        raise WslOpsError(
            f"Command timed out: {command_for_log(command)}",
            code=ExitCode.RUNTIME_ERROR,
            hint="Check that WSL is responsive (`wsl --shutdown` may help) and retry.",
        ) from exc

    stdout = decode_process_output(result.stdout)
    stderr = decode_process_output(result.stderr)
    if result.returncode != 0:
        logger.debug(
            "Command exited with %s: %s",
            result.returncode,
            truncate_log(stderr or stdout, limit=220),
        )
    return result.returncode, stdout, stderr
