"""XDG config loading."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("~/.config/wslops/config.toml").expanduser()
DEFAULT_WSL_EXECUTABLE = "wsl.exe"
DEFAULT_KEEP_JOURNAL_DAYS = 3
DEFAULT_CANCEL_TOKENS = ("q", "Q")
DEFAULT_COMMAND_TIMEOUT = 120

DEBUG_ENV = "WSLOPS_DEBUG"
BACKUP_DIR_ENV = "WSLOPS_BACKUP_DIR"
KEEP_DAYS_ENV = "KEEP_DAYS"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    wsl_executable: str = DEFAULT_WSL_EXECUTABLE
    backup_dir: str = ""
    keep_journal_days: int = Field(default=DEFAULT_KEEP_JOURNAL_DAYS, ge=0, le=365)
    default_user: str = ""
    debug: bool = False
    cancel_tokens: list[str] = Field(default_factory=lambda: list(DEFAULT_CANCEL_TOKENS))
    command_timeout_seconds: int = Field(default=DEFAULT_COMMAND_TIMEOUT, ge=1, le=3600)

    @field_validator("wsl_executable")
    @classmethod
    def _validate_executable(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("wsl_executable must not be empty")
        return value.strip()

    @field_validator("cancel_tokens")
    @classmethod
    def _validate_cancel_tokens(cls, value: list[str]) -> list[str]:
        tokens = [item.strip() for item in value if item.strip()]
        if not tokens:
            raise ValueError("At least one cancel token is required")
        return tokens


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _env_flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _sanitize(raw: Mapping[str, object]) -> AppConfig:
    cfg = AppConfig()

    wsl_executable = raw.get("wsl_executable", cfg.wsl_executable)
    if isinstance(wsl_executable, str) and wsl_executable.strip():
        cfg.wsl_executable = wsl_executable

    backup_dir = raw.get("backup_dir", cfg.backup_dir)
    if isinstance(backup_dir, str):
        cfg.backup_dir = backup_dir

    keep_days = raw.get("keep_journal_days", cfg.keep_journal_days)
    if isinstance(keep_days, int) and not isinstance(keep_days, bool) and 0 <= keep_days <= 365:
        cfg.keep_journal_days = keep_days

    default_user = raw.get("default_user", cfg.default_user)
    if isinstance(default_user, str):
        cfg.default_user = default_user.strip()

    debug = raw.get("debug", cfg.debug)
    if isinstance(debug, bool):
        cfg.debug = debug

    cancel_tokens = raw.get("cancel_tokens", cfg.cancel_tokens)
    if isinstance(cancel_tokens, list):
        tokens = [item for item in cancel_tokens if isinstance(item, str) and item.strip()]
        if tokens:
            cfg.cancel_tokens = tokens

    timeout = raw.get("command_timeout_seconds", cfg.command_timeout_seconds)
    if isinstance(timeout, int) and not isinstance(timeout, bool) and 1 <= timeout <= 3600:
        cfg.command_timeout_seconds = timeout

    return cfg


def apply_environment(cfg: AppConfig, environ: Mapping[str, str] | None = None) -> AppConfig:
    env = os.environ if environ is None else environ

    debug_value = env.get(DEBUG_ENV, "")
    if debug_value.strip():
        cfg.debug = _env_flag(debug_value)

    backup_dir = env.get(BACKUP_DIR_ENV, "").strip()
    if backup_dir:
        cfg.backup_dir = backup_dir

    keep_days = env.get(KEEP_DAYS_ENV, "").strip()
    if keep_days.isdigit() and int(keep_days) <= 365:
        cfg.keep_journal_days = int(keep_days)
    return cfg


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    resolved = get_config_path(path)
    cfg = AppConfig()
    if resolved.exists():
        try:
            with resolved.open("rb") as handle:
                raw = tomllib.load(handle)
        except (tomllib.TOMLDecodeError, OSError):
            raw = {}
        if isinstance(raw, dict):
            cfg = _sanitize(raw)
    return apply_environment(cfg, environ)
