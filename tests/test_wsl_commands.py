from __future__ import annotations

import pytest

from wslops.errors import ExitCode, WslOpsError
from wslops.runtime.wsl_commands import (
    build_export_command,
    build_import_command,
    build_list_quiet_command,
    build_list_verbose_command,
    build_terminate_command,
    build_wsl_command,
)


def test_list_commands() -> None:
    assert build_list_verbose_command() == ["wsl.exe", "-l", "-v"]
    assert build_list_quiet_command("wsl") == ["wsl", "-l", "-q"]


def test_build_wsl_command() -> None:
    cmd = build_wsl_command("Ubuntu", ["cat", "/etc/os-release"])
    assert cmd == ["wsl.exe", "-d", "Ubuntu", "--", "cat", "/etc/os-release"]


def test_build_wsl_command_with_user() -> None:
    cmd = build_wsl_command("Ubuntu 20.04", ["id"], user="root")
    assert cmd == ["wsl.exe", "-d", "Ubuntu 20.04", "-u", "root", "--", "id"]


def test_build_wsl_command_requires_distribution_and_payload() -> None:
    with pytest.raises(WslOpsError) as excinfo:
        build_wsl_command("", ["id"])
    assert excinfo.value.code == ExitCode.VALIDATION_ERROR
    with pytest.raises(WslOpsError):
        build_wsl_command("Ubuntu", [])


def test_terminate_and_export_commands() -> None:
    assert build_terminate_command("Debian") == ["wsl.exe", "--terminate", "Debian"]
    assert build_export_command("Debian", "D:/backups/debian.tar") == [
        "wsl.exe",
        "--export",
        "Debian",
        "D:/backups/debian.tar",
    ]
    assert build_export_command("Debian", "d.vhdx", vhd=True)[-1] == "--vhd"


def test_import_command_with_version() -> None:
    cmd = build_import_command("Debian2", "D:/wsl/debian2", "debian.tar", version=2)
    assert cmd == ["wsl.exe", "--import", "Debian2", "D:/wsl/debian2", "debian.tar", "--version", "2"]


def test_import_command_rejects_unknown_version() -> None:
    with pytest.raises(WslOpsError) as excinfo:
        build_import_command("Debian2", "dir", "debian.tar", version=3)
    assert excinfo.value.code == ExitCode.VALIDATION_ERROR
