"""Import a backup file as a new distribution."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from wslops.config import DEFAULT_WSL_EXECUTABLE
from wslops.errors import ExitCode, WslOpsError
from wslops.runtime.process import Runner, command_for_log, run_command
from wslops.runtime.wsl_commands import build_import_command
from wslops.runtime.wsl_listing import DistroRecord
from wslops.runtime.wsl_selection import find_exact

logger = py_logging.getLogger(__name__)

_VHD_SUFFIXES = {".vhdx", ".vhd"}


@dataclass(frozen=True)
class ImportPlan:
    distribution: str
    install_dir: Path
    tarball: Path
    version: int | None = None
    vhd: bool = False


def plan_import(
    distribution: str,
    install_dir: str | Path,
    tarball: str | Path,
    *,
    existing: Sequence[DistroRecord] = (),
    version: int | None = None,
) -> ImportPlan:
    name = distribution.strip()
    if not name:
        raise WslOpsError(
            "A distribution name is required for import.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Pass the new distribution name as the first argument.",
        )
    source = Path(tarball).expanduser()
    if not source.is_file():
        raise WslOpsError(
            f"Backup file not found: {source}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Pass the path of a file produced by `wslops export`.",
        )
    if find_exact(existing, name).found:
        raise WslOpsError(
            f"A distribution named '{name}' is already registered.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Choose another name or unregister the existing distribution first.",
        )
    target = Path(install_dir).expanduser()
    if target.exists() and (not target.is_dir() or any(target.iterdir())):
        raise WslOpsError(
            f"Install directory is not empty: {target}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Use a new or empty directory for the distribution disk.",
        )
    return ImportPlan(
        distribution=name,
        install_dir=target,
        tarball=source,
        version=version,
        vhd=source.suffix.lower() in _VHD_SUFFIXES,
    )


def run_import(
    plan: ImportPlan,
    *,
    dry_run: bool = False,
    runner: Runner = subprocess.run,
    executable: str = DEFAULT_WSL_EXECUTABLE,
    echo: Callable[[str], None] = print,
) -> None:
    command = build_import_command(
        plan.distribution,
        plan.install_dir,
        plan.tarball,
        version=plan.version,
        vhd=plan.vhd,
        executable=executable,
    )
    if dry_run:
        echo(f"[DRY-RUN] {command_for_log(command)}")
        return

    plan.install_dir.mkdir(parents=True, exist_ok=True)
    echo(f"Importing {plan.tarball} as {plan.distribution}...")
    logger.info("Importing %s into %s", plan.distribution, plan.install_dir)
    returncode, stdout, stderr = run_command(command, runner=runner, capture=False)
    if returncode != 0:
        logger.error("Import of %s failed with code %s", plan.distribution, returncode)
        raise WslOpsError(
            f"Failed to import {plan.distribution}.",
            code=ExitCode.RUNTIME_ERROR,
            hint=(stderr or stdout or "Check the backup file and WSL status.").strip(),
        )
    echo(f"Imported {plan.distribution} into {plan.install_dir}")
