"""Create a login user and make it the distribution default via /etc/wsl.conf."""

from __future__ import annotations

import logging as py_logging
import re
import shlex
import subprocess
from collections.abc import Callable

from wslops.config import DEFAULT_WSL_EXECUTABLE
from wslops.errors import ExitCode, WslOpsError
from wslops.runtime.process import Runner, run_command
from wslops.runtime.wsl_commands import build_terminate_command, build_wsl_command

logger = py_logging.getLogger(__name__)

WSL_CONF_PATH = "/etc/wsl.conf"
_INVALID_USER = re.compile(r"[\s:/]")
_SECTION = re.compile(r"^\s*\[(?P<name>[^\]]+)\]\s*$")
_DEFAULT_KEY = re.compile(r"^\s*default\s*=")


def validate_username(user: str) -> str:
    name = user.strip()
    if not name or _INVALID_USER.search(name) or name.startswith("-"):
        raise WslOpsError(
            f"Invalid user name: {user!r}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use a name without whitespace, ':' or '/'.",
        )
    return name


def apply_default_user(conf_text: str, user: str) -> str:
    """Return wsl.conf content with `[user] default=<user>` set."""
    name = validate_username(user)
    lines = conf_text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    section_start: int | None = None
    section_end = len(lines)
    for index, line in enumerate(lines):
        match = _SECTION.match(line)
        if not match:
            continue
        if section_start is not None:
            section_end = index
            break
        if match.group("name").strip() == "user":
            section_start = index

    if section_start is None:
        if lines and lines[-1].strip():
            lines.append("")
        lines.extend(["[user]", f"default={name}"])
        return "\n".join(lines) + "\n"

    for index in range(section_start + 1, section_end):
        if _DEFAULT_KEY.match(lines[index]):
            lines[index] = f"default={name}"
            break
    else:
        lines.insert(section_start + 1, f"default={name}")
    return "\n".join(lines) + "\n"


def build_create_user_script(user: str) -> str:
    name = shlex.quote(validate_username(user))
    return (
        f"id -u {name} >/dev/null 2>&1 && exit 0; "
        f"useradd -m -s /bin/bash {name} 2>/dev/null || useradd --badname -m -s /bin/bash {name} || exit 1; "
        f"if getent group wheel >/dev/null 2>&1; then usermod -aG wheel {name} || true; fi; "
        f"loginctl enable-linger {name} >/dev/null 2>&1 || true"
    )


def set_default_user(
    distribution: str,
    user: str = "root",
    *,
    runner: Runner = subprocess.run,
    executable: str = DEFAULT_WSL_EXECUTABLE,
    echo: Callable[[str], None] = print,
) -> str:
    name = validate_username(user)

    if name != "root":
        command = build_wsl_command(
            distribution,
            ["sh", "-c", build_create_user_script(name)],
            user="root",
            executable=executable,
        )
        returncode, _, stderr = run_command(command, runner=runner)
        if returncode != 0:
            logger.error("Creating user %s failed: %s", name, stderr.strip())
            raise WslOpsError(
                f"Failed to create user '{name}' in {distribution}.",
                code=ExitCode.RUNTIME_ERROR,
                hint=stderr.strip() or "Check that useradd is available in the distribution.",
            )

    read_command = build_wsl_command(
        distribution,
        ["sh", "-c", f"if [ -e {WSL_CONF_PATH} ]; then cat {WSL_CONF_PATH}; fi"],
        user="root",
        executable=executable,
    )
    returncode, current, stderr = run_command(read_command, runner=runner)
    if returncode != 0:
        # Rewriting from a partial read would drop the other sections.
        logger.error("Reading %s failed: %s", WSL_CONF_PATH, stderr.strip())
        raise WslOpsError(
            f"Failed to read {WSL_CONF_PATH} in {distribution}.",
            code=ExitCode.RUNTIME_ERROR,
            hint=stderr.strip() or f"Check that {WSL_CONF_PATH} is readable as root.",
        )
    updated = apply_default_user(current, name)

    write_command = build_wsl_command(
        distribution,
        ["sh", "-c", f"cat > {WSL_CONF_PATH}"],
        user="root",
        executable=executable,
    )
    returncode, _, stderr = run_command(write_command, runner=runner, input_text=updated)
    if returncode != 0:
        logger.error("Writing %s failed: %s", WSL_CONF_PATH, stderr.strip())
        raise WslOpsError(
            f"Failed to update {WSL_CONF_PATH} in {distribution}.",
            code=ExitCode.RUNTIME_ERROR,
            hint=stderr.strip(),
        )

    returncode, _, stderr = run_command(
        build_terminate_command(distribution, executable=executable),
        runner=runner,
    )
    if returncode != 0:
        logger.warning("Terminating %s failed: %s", distribution, stderr.strip())
    echo(f"Set default user to: {name}")
    return updated
