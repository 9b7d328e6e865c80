"""Export a distribution to a timestamped backup file."""

from __future__ import annotations

import logging as py_logging
import re
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from wslops.config import DEFAULT_KEEP_JOURNAL_DAYS, DEFAULT_WSL_EXECUTABLE
from wslops.errors import ExitCode, WslOpsError
from wslops.ops.preclean import run_preclean
from wslops.runtime.process import Runner, command_for_log, run_command
from wslops.runtime.wsl_commands import build_export_command, build_terminate_command

logger = py_logging.getLogger(__name__)

DEFAULT_BACKUP_DIR = Path("backups")
_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class ExportPlan:
    distribution: str
    target: Path
    terminate_first: bool = True
    vhd: bool = False
    pre_clean: bool = False


def backup_filename(distribution: str, *, now: datetime | None = None, vhd: bool = False) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    safe_name = _UNSAFE_FILENAME.sub("_", distribution).strip("._") or "distribution"
    suffix = ".vhdx" if vhd else ".tar"
    return f"{safe_name}_{stamp}{suffix}"


def plan_export(
    distribution: str,
    *,
    output_dir: str | Path | None = None,
    terminate_first: bool = True,
    vhd: bool = False,
    pre_clean: bool = False,
    now: datetime | None = None,
) -> ExportPlan:
    directory = Path(output_dir).expanduser() if output_dir else DEFAULT_BACKUP_DIR
    target = directory / backup_filename(distribution, now=now, vhd=vhd)
    if target.exists():
        raise WslOpsError(
            f"Backup target already exists: {target}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Choose another output directory or retry in a moment.",
        )
    return ExportPlan(
        distribution=distribution,
        target=target,
        terminate_first=terminate_first,
        vhd=vhd,
        pre_clean=pre_clean,
    )


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} GB"


def run_export(
    plan: ExportPlan,
    *,
    dry_run: bool = False,
    keep_journal_days: int = DEFAULT_KEEP_JOURNAL_DAYS,
    runner: Runner = subprocess.run,
    executable: str = DEFAULT_WSL_EXECUTABLE,
    echo: Callable[[str], None] = print,
) -> Path:
    terminate = build_terminate_command(plan.distribution, executable=executable)
    export = build_export_command(plan.distribution, plan.target, vhd=plan.vhd, executable=executable)

    if plan.pre_clean:
        run_preclean(
            plan.distribution,
            keep_journal_days=keep_journal_days,
            dry_run=dry_run,
            runner=runner,
            executable=executable,
            echo=echo,
        )

    if dry_run:
        if plan.terminate_first:
            echo(f"[DRY-RUN] {command_for_log(terminate)}")
        echo(f"[DRY-RUN] {command_for_log(export)}")
        return plan.target

    plan.target.parent.mkdir(parents=True, exist_ok=True)
    if plan.terminate_first:
        echo(f"Terminating {plan.distribution}...")
        returncode, _, stderr = run_command(terminate, runner=runner)
        if returncode != 0:
            logger.warning("Terminate failed for %s: %s", plan.distribution, stderr.strip())

    echo(f"Exporting {plan.distribution} to {plan.target} (this can take several minutes)...")
    logger.info("Exporting %s to %s", plan.distribution, plan.target)
    returncode, stdout, stderr = run_command(export, runner=runner, capture=False)
    if returncode != 0:
        logger.error("Export of %s failed with code %s", plan.distribution, returncode)
        raise WslOpsError(
            f"Failed to export {plan.distribution}.",
            code=ExitCode.RUNTIME_ERROR,
            hint=(stderr or stdout or "Check free disk space and WSL status.").strip(),
        )
    if not plan.target.exists():
        raise WslOpsError(
            f"Export finished but no file was written: {plan.target}",
            code=ExitCode.RUNTIME_ERROR,
            hint="Check that the output directory is writable from Windows.",
        )

    size = plan.target.stat().st_size
    echo(f"Backup complete: {plan.target} ({_format_size(size)})")
    echo(f'Restore with: wslops import {plan.distribution} <install-dir> "{plan.target}"')
    return plan.target
