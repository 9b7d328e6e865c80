"""Shrink a distribution before export by clearing caches, logs and temp files."""

from __future__ import annotations

import logging as py_logging
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

from wslops.config import DEFAULT_KEEP_JOURNAL_DAYS, DEFAULT_WSL_EXECUTABLE
from wslops.errors import ExitCode, WslOpsError
from wslops.runtime.process import Runner, run_command, truncate_log
from wslops.runtime.wsl_commands import build_wsl_command

logger = py_logging.getLogger(__name__)

_RHEL_IDS = {"rhel", "almalinux", "rocky", "centos", "fedora"}
_DEBIAN_IDS = {"debian", "ubuntu"}
_ARCH_IDS = {"arch", "manjaro"}


@dataclass(frozen=True)
class OsRelease:
    id: str = "unknown"
    id_like: tuple[str, ...] = ()

    def is_like(self, names: set[str]) -> bool:
        return self.id in names or any(item in names for item in self.id_like)

    @property
    def family(self) -> str:
        if self.is_like(_RHEL_IDS):
            return "rhel"
        if self.is_like(_DEBIAN_IDS):
            return "debian"
        if self.is_like(_ARCH_IDS):
            return "arch"
        return "unknown"


@dataclass(frozen=True)
class CleanupStep:
    description: str
    script: str


def parse_os_release(text: str) -> OsRelease:
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        values[key.strip()] = " ".join(parts)
    distro_id = values.get("ID", "").strip().lower() or "unknown"
    id_like = tuple(item.lower() for item in values.get("ID_LIKE", "").split())
    return OsRelease(id=distro_id, id_like=id_like)


def _package_cache_steps(family: str) -> list[CleanupStep]:
    if family == "rhel":
        return [
            CleanupStep(
                "Clean dnf/yum caches",
                "if command -v dnf >/dev/null 2>&1; then dnf -y clean all && rm -rf /var/cache/dnf/*; "
                "elif command -v yum >/dev/null 2>&1; then yum -y clean all && rm -rf /var/cache/yum/*; fi",
            )
        ]
    if family == "debian":
        return [
            CleanupStep(
                "Clean apt cache",
                "if command -v apt-get >/dev/null 2>&1; then apt-get clean && "
                "rm -rf /var/cache/apt/archives/*.deb; fi",
            )
        ]
    if family == "arch":
        return [
            CleanupStep(
                "Trim pacman cache",
                "if command -v paccache >/dev/null 2>&1; then paccache -rk3 && paccache -ruk3; fi",
            ),
            CleanupStep(
                "Clean pacman cache",
                "if command -v pacman >/dev/null 2>&1; then pacman -Scc --noconfirm; fi",
            ),
        ]
    return []


def build_cleanup_plan(
    os_release: OsRelease,
    *,
    keep_journal_days: int = DEFAULT_KEEP_JOURNAL_DAYS,
) -> list[CleanupStep]:
    if keep_journal_days < 0:
        raise WslOpsError(
            f"Invalid journal retention: {keep_journal_days}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use a non-negative number of days.",
        )
    steps = _package_cache_steps(os_release.family)
    steps.extend(
        [
            CleanupStep(
                "Vacuum systemd journal",
                "if command -v journalctl >/dev/null 2>&1; then "
                f"journalctl --vacuum-time={keep_journal_days}d; fi",
            ),
            CleanupStep(
                "Delete rotated logs",
                "find /var/log -type f \\( -name '*.gz' -o -name '*.1' \\) -delete 2>/dev/null || true",
            ),
            CleanupStep(
                "Truncate top-level logs",
                "find /var/log -maxdepth 1 -type f -exec truncate -s 0 {} + 2>/dev/null || true",
            ),
            CleanupStep("Clear temporary files", "rm -rf /tmp/* /var/tmp/*"),
        ]
    )
    return steps


def read_os_release(
    distribution: str,
    *,
    runner: Runner = subprocess.run,
    executable: str = DEFAULT_WSL_EXECUTABLE,
) -> OsRelease:
    command = build_wsl_command(distribution, ["cat", "/etc/os-release"], executable=executable)
    returncode, stdout, stderr = run_command(command, runner=runner)
    if returncode != 0:
        logger.warning("Could not read /etc/os-release in %s: %s", distribution, stderr.strip())
        return OsRelease()
    return parse_os_release(stdout)


def run_preclean(
    distribution: str,
    *,
    keep_journal_days: int = DEFAULT_KEEP_JOURNAL_DAYS,
    dry_run: bool = False,
    runner: Runner = subprocess.run,
    executable: str = DEFAULT_WSL_EXECUTABLE,
    echo: Callable[[str], None] = print,
) -> list[CleanupStep]:
    """Run the cleanup plan as root inside the distribution; returns the failed steps."""
    os_release = read_os_release(distribution, runner=runner, executable=executable)
    echo(f"Detected distro: ID='{os_release.id}' LIKE='{' '.join(os_release.id_like)}'")
    plan = build_cleanup_plan(os_release, keep_journal_days=keep_journal_days)

    failed: list[CleanupStep] = []
    for step in plan:
        if dry_run:
            echo(f"[DRY-RUN] {step.description}: {step.script}")
            continue
        echo(f"+ {step.description}")
        command = build_wsl_command(
            distribution,
            ["sh", "-c", step.script],
            user="root",
            executable=executable,
        )
        returncode, stdout, stderr = run_command(command, runner=runner)
        if returncode != 0:
            logger.warning(
                "Cleanup step failed (%s): %s",
                step.description,
                truncate_log(stderr or stdout, limit=220),
            )
            failed.append(step)
    if not dry_run:
        echo("Pre-clean complete.")
    return failed
