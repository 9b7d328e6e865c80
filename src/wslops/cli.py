"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import subprocess
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .config import AppConfig, load_config
from .errors import ExitCode, NoDistributionsFound, WslOpsError, user_facing_error
from .logging import configure_logging, default_log_path
from .manifest import DEFAULT_MANIFEST_PATH, DEFAULT_SCHEMA_PATH, validate_manifest
from .ops.backup import plan_export, run_export
from .ops.default_user import set_default_user
from .ops.preclean import run_preclean
from .ops.restore import plan_import, run_import
from .runtime.process import Runner
from .runtime.wsl_listing import DistroRecord, ListParser
from .runtime.wsl_selection import DistroSelector, render_distributions

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _keep_days_type(value: str) -> int:
    try:
        days = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--keep-journal-days must be an integer") from exc
    if days < 0 or days > 365:
        raise argparse.ArgumentTypeError("--keep-journal-days must be between 0 and 365")
    return days


def _prompt_stderr(text: str) -> str:
    print(text, end="", file=sys.stderr, flush=True)
    return input("")


def _echo(text: str) -> None:
    print(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wslops",
        description="List, select, back up and restore WSL distributions.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Trace parsed listing fields (same as WSLOPS_DEBUG=1)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="Show registered distributions")
    list_cmd.add_argument("--quiet", "-q", action="store_true", help="Print names only")

    select_cmd = commands.add_parser("select", help="Resolve a distribution name")
    select_cmd.add_argument("name", nargs="?", default=None)

    export_cmd = commands.add_parser("export", help="Back up a distribution to a file")
    export_cmd.add_argument("name", nargs="?", default=None)
    export_cmd.add_argument("--output-dir", type=Path, default=None)
    export_cmd.add_argument("--pre-clean", action="store_true", help="Clear caches before export")
    export_cmd.add_argument("--no-terminate", action="store_true", help="Export without stopping it")
    export_cmd.add_argument("--vhd", action="store_true", help="Export the VHDX instead of a tar")
    export_cmd.add_argument("--keep-journal-days", type=_keep_days_type, default=None)
    export_cmd.add_argument("--dry-run", action="store_true")

    import_cmd = commands.add_parser("import", help="Register a backup as a new distribution")
    import_cmd.add_argument("name")
    import_cmd.add_argument("install_dir", type=Path)
    import_cmd.add_argument("tarball", type=Path)
    import_cmd.add_argument("--version", type=int, choices=(1, 2), default=None)
    import_cmd.add_argument("--dry-run", action="store_true")

    clean_cmd = commands.add_parser("pre-clean", help="Shrink a distribution before export")
    clean_cmd.add_argument("name", nargs="?", default=None)
    clean_cmd.add_argument("--keep-journal-days", type=_keep_days_type, default=None)
    clean_cmd.add_argument("--dry-run", action="store_true")

    user_cmd = commands.add_parser("set-default-user", help="Set the default login user")
    user_cmd.add_argument("name", nargs="?", default=None)
    user_cmd.add_argument("--user", default=None)

    manifest_cmd = commands.add_parser("validate-manifest", help="Check manifest.json")
    manifest_cmd.add_argument("--manifest", type=Path, default=DEFAULT_MANIFEST_PATH)
    manifest_cmd.add_argument("--schema", type=Path, default=DEFAULT_SCHEMA_PATH)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


@dataclass
class CommandContext:
    config: AppConfig
    runner: Runner
    input_func: Callable[[str], str]

    def list_parser(self) -> ListParser:
        return ListParser(
            runner=self.runner,
            executable=self.config.wsl_executable,
            debug=self.config.debug,
            timeout_seconds=self.config.command_timeout_seconds,
        )

    def select(self, requested: str | None) -> DistroRecord:
        selector = DistroSelector(
            self.list_parser(),
            input_func=self.input_func,
            output=sys.stderr,
            cancel_tokens=self.config.cancel_tokens,
        )
        return selector.select(requested)


def _cmd_list(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    records = ctx.list_parser().list_distributions()
    if namespace.quiet:
        for record in records:
            print(record.name)
    else:
        for line in render_distributions(records):
            print(line)
    return int(ExitCode.SUCCESS)


def _cmd_select(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    record = ctx.select(namespace.name)
    print(record.name)
    return int(ExitCode.SUCCESS)


def _cmd_export(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    record = ctx.select(namespace.name)
    plan = plan_export(
        record.name,
        output_dir=namespace.output_dir or ctx.config.backup_dir or None,
        terminate_first=not namespace.no_terminate,
        vhd=namespace.vhd,
        pre_clean=namespace.pre_clean,
    )
    keep_days = namespace.keep_journal_days
    run_export(
        plan,
        dry_run=namespace.dry_run,
        keep_journal_days=ctx.config.keep_journal_days if keep_days is None else keep_days,
        runner=ctx.runner,
        executable=ctx.config.wsl_executable,
        echo=_echo,
    )
    return int(ExitCode.SUCCESS)


def _cmd_import(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    try:
        existing = ctx.list_parser().list_distributions()
    except NoDistributionsFound:
        existing = []
    plan = plan_import(
        namespace.name,
        namespace.install_dir,
        namespace.tarball,
        existing=existing,
        version=namespace.version,
    )
    run_import(
        plan,
        dry_run=namespace.dry_run,
        runner=ctx.runner,
        executable=ctx.config.wsl_executable,
        echo=_echo,
    )
    return int(ExitCode.SUCCESS)


def _cmd_preclean(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    record = ctx.select(namespace.name)
    keep_days = namespace.keep_journal_days
    failed = run_preclean(
        record.name,
        keep_journal_days=ctx.config.keep_journal_days if keep_days is None else keep_days,
        dry_run=namespace.dry_run,
        runner=ctx.runner,
        executable=ctx.config.wsl_executable,
        echo=_echo,
    )
    if failed:
        print(f"{len(failed)} cleanup step(s) failed; see log for details.", file=sys.stderr)
    return int(ExitCode.SUCCESS)


def _cmd_set_default_user(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    record = ctx.select(namespace.name)
    user = namespace.user or ctx.config.default_user or "root"
    set_default_user(
        record.name,
        user,
        runner=ctx.runner,
        executable=ctx.config.wsl_executable,
        echo=_echo,
    )
    return int(ExitCode.SUCCESS)


def _cmd_validate_manifest(namespace: argparse.Namespace, ctx: CommandContext) -> int:
    del ctx
    errors = validate_manifest(namespace.manifest, namespace.schema)
    if errors:
        print(f"{namespace.manifest} is INVALID", file=sys.stderr)
        for error in errors:
            print(f"  {error}", file=sys.stderr)
        return int(ExitCode.VALIDATION_ERROR)
    print(f"{namespace.manifest} is valid")
    return int(ExitCode.SUCCESS)


_COMMANDS: dict[str, Callable[[argparse.Namespace, CommandContext], int]] = {
    "list": _cmd_list,
    "select": _cmd_select,
    "export": _cmd_export,
    "import": _cmd_import,
    "pre-clean": _cmd_preclean,
    "set-default-user": _cmd_set_default_user,
    "validate-manifest": _cmd_validate_manifest,
}


def main(
    argv: Sequence[str] | None = None,
    *,
    runner: Runner = subprocess.run,
    input_func: Callable[[str], str] = _prompt_stderr,
    environ: Mapping[str, str] | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    config = load_config(namespace.config, environ=environ)
    if namespace.debug:
        config.debug = True
    level = namespace.log_level or ("DEBUG" if config.debug else "INFO")
    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=level, log_file=log_path)

    ctx = CommandContext(config=config, runner=runner, input_func=input_func)
    try:
        logger.debug("Running command %s", namespace.command)
        return _COMMANDS[namespace.command](namespace, ctx)
    except WslOpsError as exc:
        logger.error(
            "Handled WslOpsError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
