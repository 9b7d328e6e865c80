"""Parse `wsl.exe --list` output into distribution records.

The verbose listing is a human formatted table whose exact shape depends on
the WSL release, the console code page and the display language:

    Windows Subsystem for Linux Distributions:
      NAME            STATE           VERSION
    * Ubuntu-22.04    Running         2
      Ubuntu 20.04    Stopped         2

Columns are padded with runs of spaces (sometimes non-breaking ones) and the
text may arrive with stray NUL characters when UTF-16 output is decoded with a
narrow code page. Rows are read from the right, since only the name column may
contain a single embedded space. When nothing can be recovered from the
verbose table the quiet listing (one name per line) is used instead.
"""

from __future__ import annotations

import logging as py_logging
import re
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

from wslops.config import DEFAULT_WSL_EXECUTABLE
from wslops.errors import NoDistributionsFound
from wslops.runtime.process import Runner, run_command
from wslops.runtime.wsl_commands import build_list_quiet_command, build_list_verbose_command

logger = py_logging.getLogger(__name__)

UNKNOWN_STATE = "(unknown)"

_WIDE_SPACE = " \t\u00a0\u2007\u202f"
_COLUMN_SEPARATOR = re.compile(f"[{_WIDE_SPACE}]{{2,}}")
_DEFAULT_MARKER = re.compile(r"^\s*\*?\s*")
_HEADER_ROW = re.compile(r"^[\s*]*NAME\b.*\bVERSION\b", re.IGNORECASE)
_BANNERS = ("Windows Subsystem for Linux Distributions:",)
_VERSION = re.compile(r"^\d+$", re.ASCII)


@dataclass(frozen=True)
class DistroRecord:
    name: str
    state: str = UNKNOWN_STATE
    version: int | None = None


def _is_header(line: str) -> bool:
    stripped = line.strip()
    if any(stripped.startswith(banner) for banner in _BANNERS):
        return True
    return bool(_HEADER_ROW.match(line))


def split_columns(line: str) -> list[str]:
    """Split a table row on runs of two or more wide-space characters."""
    return [field for field in _COLUMN_SEPARATOR.split(line) if field]


def parse_verbose_row(line: str) -> DistroRecord | None:
    """Parse a single row of the verbose table, or None for non-data lines."""
    if not line.strip():
        return None
    line = line.replace("\x00", "")
    if not line.strip() or _is_header(line):
        return None

    body = _DEFAULT_MARKER.sub("", line, count=1).rstrip()
    fields = split_columns(body)
    if len(fields) < 3:
        return None

    version_field = fields[-1].strip()
    state_field = fields[-2].strip()
    name = " ".join(field.strip() for field in fields[:-2]).strip()
    if not name:
        return None
    version = int(version_field) if _VERSION.match(version_field) else None
    return DistroRecord(name=name, state=state_field or UNKNOWN_STATE, version=version)


def parse_verbose_listing(text: str, *, debug: bool = False) -> list[DistroRecord]:
    records: list[DistroRecord] = []
    for raw_line in text.splitlines():
        record = parse_verbose_row(raw_line)
        if debug:
            cleaned = raw_line.replace("\x00", "")
            fields = split_columns(_DEFAULT_MARKER.sub("", cleaned, count=1).rstrip())
            logger.debug("verbose row=%r fields=%r record=%r", cleaned, fields, record)
        if record is not None:
            records.append(record)
    return records


def parse_quiet_listing(text: str) -> list[DistroRecord]:
    records: list[DistroRecord] = []
    for raw_line in text.splitlines():
        name = raw_line.replace("\x00", "").strip()
        if name:
            records.append(DistroRecord(name=name))
    return records


class ListParser:
    """Take a snapshot of the registered distributions."""

    def __init__(
        self,
        *,
        runner: Runner = subprocess.run,
        executable: str = DEFAULT_WSL_EXECUTABLE,
        debug: bool = False,
        timeout_seconds: int | None = None,
    ) -> None:
        self.runner = runner
        self.executable = executable
        self.debug = debug
        self.timeout_seconds = timeout_seconds

    def parse(
        self,
        verbose_text: str,
        quiet_text: str | Callable[[], str] | None = None,
    ) -> list[DistroRecord]:
        """Parse injected listing output, falling back to the quiet listing."""
        records = parse_verbose_listing(verbose_text, debug=self.debug)
        if records:
            logger.debug("Parsed %s distributions from verbose listing", len(records))
            return records

        logger.debug("Verbose listing yielded no rows, falling back to quiet listing")
        if callable(quiet_text):
            quiet_text = quiet_text()
        records = parse_quiet_listing(quiet_text or "")
        if records:
            if self.debug:
                logger.debug("quiet names=%r", [record.name for record in records])
            return records

        logger.error("No WSL distributions discovered")
        raise NoDistributionsFound()

    def _read(self, command: list[str], *, strict: bool = False) -> str:
        # stderr is diagnostic only.
        returncode, stdout, _ = run_command(
            command,
            runner=self.runner,
            timeout_seconds=self.timeout_seconds,
        )
        if returncode != 0:
            logger.warning("%s exited with code %s", " ".join(command), returncode)
            if strict:
                # A failing quiet listing prints a message, not names.
                return ""
        return stdout

    def list_distributions(self) -> list[DistroRecord]:
        logger.debug("Listing WSL distributions using %s -l -v", self.executable)
        verbose_text = self._read(build_list_verbose_command(self.executable))
        return self.parse(
            verbose_text,
            lambda: self._read(build_list_quiet_command(self.executable), strict=True),
        )
