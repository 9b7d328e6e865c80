from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from wslops.errors import ExitCode, WslOpsError
from wslops.ops.restore import plan_import, run_import
from wslops.runtime.wsl_listing import DistroRecord


def _cp(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def tarball(tmp_path: Path) -> Path:
    path = tmp_path / "Debian_20240517_093005.tar"
    path.write_bytes(b"tar")
    return path


def test_plan_import_accepts_new_name(tmp_path: Path, tarball: Path) -> None:
    plan = plan_import("Debian2", tmp_path / "wsl" / "debian2", tarball, version=2)
    assert plan.distribution == "Debian2"
    assert plan.vhd is False
    assert plan.version == 2


def test_plan_import_detects_vhdx(tmp_path: Path) -> None:
    disk = tmp_path / "disk.VHDX"
    disk.write_bytes(b"vhd")
    assert plan_import("Debian2", tmp_path / "target", disk).vhd is True


def test_plan_import_rejects_registered_name(tmp_path: Path, tarball: Path) -> None:
    with pytest.raises(WslOpsError) as excinfo:
        plan_import(
            "Debian",
            tmp_path / "target",
            tarball,
            existing=[DistroRecord("Debian", "Stopped", 2)],
        )
    assert excinfo.value.code == ExitCode.VALIDATION_ERROR


def test_plan_import_rejects_missing_tarball(tmp_path: Path) -> None:
    with pytest.raises(WslOpsError):
        plan_import("Debian2", tmp_path / "target", tmp_path / "missing.tar")


def test_plan_import_rejects_non_empty_install_dir(tmp_path: Path, tarball: Path) -> None:
    target = tmp_path / "target"
    target.mkdir()
    (target / "ext4.vhdx").write_bytes(b"")
    with pytest.raises(WslOpsError):
        plan_import("Debian2", target, tarball)


def test_plan_import_rejects_blank_name(tmp_path: Path, tarball: Path) -> None:
    with pytest.raises(WslOpsError):
        plan_import("  ", tmp_path / "target", tarball)


def test_run_import_creates_install_dir(tmp_path: Path, tarball: Path) -> None:
    plan = plan_import("Debian2", tmp_path / "wsl" / "debian2", tarball, version=1)
    commands: list[list[str]] = []

    def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        commands.append(cmd)
        return _cp(0)

    run_import(plan, runner=runner, echo=lambda line: None)

    assert plan.install_dir.is_dir()
    assert commands == [
        [
            "wsl.exe",
            "--import",
            "Debian2",
            str(plan.install_dir),
            str(tarball),
            "--version",
            "1",
        ]
    ]


def test_run_import_failure_raises(tmp_path: Path, tarball: Path) -> None:
    plan = plan_import("Debian2", tmp_path / "target", tarball)
    with pytest.raises(WslOpsError) as excinfo:
        run_import(plan, runner=lambda *args, **kwargs: _cp(1, stderr="bad archive"), echo=lambda line: None)
    assert excinfo.value.hint == "bad archive"


def test_run_import_dry_run(tmp_path: Path, tarball: Path) -> None:
    plan = plan_import("Debian2", tmp_path / "target", tarball)
    lines: list[str] = []
    run_import(plan, dry_run=True, runner=lambda *args, **kwargs: _cp(1), echo=lines.append)
    assert lines[0].startswith("[DRY-RUN] wsl.exe --import Debian2")
    assert not plan.install_dir.exists()
