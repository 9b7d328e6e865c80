from __future__ import annotations

import subprocess

import pytest

from wslops.errors import ExitCode, NoDistributionsFound, WslOpsError
from wslops.runtime import wsl_listing
from wslops.runtime.wsl_listing import (
    UNKNOWN_STATE,
    DistroRecord,
    ListParser,
    parse_quiet_listing,
    parse_verbose_listing,
    parse_verbose_row,
    split_columns,
)

VERBOSE = (
    "  NAME            STATE           VERSION\n"
    "* Ubuntu-22.04    Running         2\n"
    "  Debian          Stopped         2\n"
    "  Legacy          Stopped         1\n"
)


def _cp(returncode: int, stdout: bytes | str = b"", stderr: bytes | str = b"") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_parse_verbose_listing_keeps_source_order() -> None:
    assert parse_verbose_listing(VERBOSE) == [
        DistroRecord("Ubuntu-22.04", "Running", 2),
        DistroRecord("Debian", "Stopped", 2),
        DistroRecord("Legacy", "Stopped", 1),
    ]


def test_parse_verbose_listing_is_deterministic() -> None:
    assert parse_verbose_listing(VERBOSE) == parse_verbose_listing(VERBOSE)


def test_name_with_embedded_space_is_rebuilt() -> None:
    record = parse_verbose_row("  Ubuntu 20.04    Stopped    2")
    assert record == DistroRecord("Ubuntu 20.04", "Stopped", 2)


@pytest.mark.parametrize("separator", ["  ", "\u00a0\u00a0", " \u2007 ", "\t\t", "\u202f \u00a0"])
def test_wide_whitespace_runs_separate_columns(separator: str) -> None:
    line = f"  Ubuntu 20.04{separator}Stopped{separator}2"
    assert parse_verbose_row(line) == DistroRecord("Ubuntu 20.04", "Stopped", 2)


def test_embedded_nul_characters_are_ignored() -> None:
    clean = "* Ubuntu-22.04    Running         2"
    dirty = "\x00".join(clean) + "\x00"
    assert parse_verbose_row(dirty) == parse_verbose_row(clean)


def test_utf16_decoded_as_narrow_text_still_parses() -> None:
    raw = VERBOSE.encode("utf-16le").decode("latin-1")
    assert [record.name for record in parse_verbose_listing(raw)] == [
        "Ubuntu-22.04",
        "Debian",
        "Legacy",
    ]


@pytest.mark.parametrize(
    "line",
    [
        "Windows Subsystem for Linux Distributions:",
        "  NAME      STATE     VERSION",
        "* name      state     version",
        "NAME    STATUS    VERSION",
    ],
)
def test_banner_and_header_lines_never_yield_records(line: str) -> None:
    assert parse_verbose_row(line) is None


@pytest.mark.parametrize("line", ["", "   ", "\x00\x00", "  Ubuntu    Running", "Ubuntu Running 2"])
def test_short_or_blank_lines_are_discarded(line: str) -> None:
    assert parse_verbose_row(line) is None


def test_non_numeric_version_is_absent() -> None:
    assert parse_verbose_row("  Ubuntu    Running    n/a") == DistroRecord("Ubuntu", "Running", None)


@pytest.mark.parametrize("digits", ["\u0662", "\uff12"])
def test_non_ascii_digits_are_not_a_version(digits: str) -> None:
    assert parse_verbose_row(f"  Ubuntu    Running    {digits}") == DistroRecord("Ubuntu", "Running", None)


def test_default_marker_is_not_part_of_the_name() -> None:
    record = parse_verbose_row("*   Arch    Running    2")
    assert record is not None
    assert record.name == "Arch"


def test_split_columns_discards_empty_fields() -> None:
    assert split_columns("Ubuntu    Running    2   ") == ["Ubuntu", "Running", "2"]


def test_records_are_immutable() -> None:
    record = DistroRecord("Ubuntu", "Running", 2)
    with pytest.raises(AttributeError):
        record.name = "Debian"  # type: ignore[misc]


def test_parse_quiet_listing_assigns_unknown_state() -> None:
    assert parse_quiet_listing("Ubuntu-20.04\n\nDebian\n") == [
        DistroRecord("Ubuntu-20.04", UNKNOWN_STATE, None),
        DistroRecord("Debian", UNKNOWN_STATE, None),
    ]


def test_parse_falls_back_to_quiet_listing() -> None:
    parser = ListParser()
    records = parser.parse("Something completely different\n", "Ubuntu-20.04\nDebian\n")
    assert records == [DistroRecord("Ubuntu-20.04"), DistroRecord("Debian")]
    assert all(record.state == "(unknown)" and record.version is None for record in records)


def test_quiet_listing_is_only_read_when_needed() -> None:
    calls: list[str] = []

    def quiet() -> str:
        calls.append("quiet")
        return "Debian\n"

    ListParser().parse(VERBOSE, quiet)
    assert calls == []
    assert ListParser().parse("", quiet) == [DistroRecord("Debian")]
    assert calls == ["quiet"]


def test_parse_raises_when_nothing_is_found() -> None:
    with pytest.raises(NoDistributionsFound) as excinfo:
        ListParser().parse("garbage\n", "\n  \n")
    assert excinfo.value.code == ExitCode.NO_DISTRIBUTIONS


def test_list_distributions_decodes_utf16_output() -> None:
    seen: list[list[str]] = []

    def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        seen.append(cmd)
        return _cp(0, VERBOSE.encode("utf-16le"))

    records = ListParser(runner=runner).list_distributions()
    assert [record.name for record in records] == ["Ubuntu-22.04", "Debian", "Legacy"]
    assert seen == [["wsl.exe", "-l", "-v"]]


def test_list_distributions_uses_quiet_mode_fallback() -> None:
    outputs = {
        "-v": _cp(0, "Ceci n'est pas une table\n"),
        "-q": _cp(0, "Ubuntu-20.04\r\nDebian\r\n"),
    }

    def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        return outputs[cmd[-1]]

    records = ListParser(runner=runner).list_distributions()
    assert records == [DistroRecord("Ubuntu-20.04"), DistroRecord("Debian")]


def test_list_distributions_ignores_failed_quiet_output() -> None:
    def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        message = "Windows Subsystem for Linux has no installed distributions.\n"
        return _cp(4294967295 if cmd[-1] == "-q" else 1, message, "error")

    with pytest.raises(NoDistributionsFound):
        ListParser(runner=runner).list_distributions()


def test_list_distributions_uses_configured_executable() -> None:
    seen: list[list[str]] = []

    def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        seen.append(cmd)
        return _cp(0, VERBOSE)

    ListParser(runner=runner, executable="wsl").list_distributions()
    assert seen[0][0] == "wsl"


def test_missing_executable_is_reported_as_unsupported_platform() -> None:
    def runner(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        raise FileNotFoundError(cmd[0])

    with pytest.raises(WslOpsError) as excinfo:
        ListParser(runner=runner).list_distributions()
    assert excinfo.value.code == ExitCode.UNSUPPORTED_PLATFORM


def test_debug_flag_traces_parsed_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    traced: list[str] = []

    def fake_debug(message: str, *args: object) -> None:
        traced.append(message % args)

    monkeypatch.setattr(wsl_listing.logger, "debug", fake_debug)

    ListParser(debug=False).parse(VERBOSE)
    assert not any("fields=" in line for line in traced)

    ListParser(debug=True).parse(VERBOSE)
    assert any("fields=['Ubuntu-22.04', 'Running', '2']" in line for line in traced)
