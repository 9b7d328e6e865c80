"""Application logging helpers."""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import TextIO

LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.config/wslops/logs/wslops.log")
_FALLBACK_LOG_PATH = Path(".wslops/logs/wslops.log")
_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def default_log_path() -> Path:
    try:
        resolved = DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        resolved = (Path.cwd() / _FALLBACK_LOG_PATH).resolve()
    else:
        if not resolved.is_absolute():
            resolved = resolved.resolve()
    return resolved


def resolve_level(level: str) -> int:
    normalized = level.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    return LOG_LEVELS.get(normalized, py_logging.INFO)


def _open_file_handler(log_file: str | Path) -> py_logging.FileHandler | None:
    try:
        log_path = Path(log_file).expanduser()
    except RuntimeError:
        log_path = Path(log_file)
    candidates = [log_path if log_path.is_absolute() else log_path.resolve()]
    fallback = (Path.cwd() / _FALLBACK_LOG_PATH).resolve()
    if fallback not in candidates:
        candidates.append(fallback)

    # Backups often run from restricted profiles; fall back to the working directory.
    for candidate in candidates:
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
            return py_logging.FileHandler(candidate, encoding="utf-8")
        except OSError:
            continue
    return None


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = resolve_level(level)
    formatter = py_logging.Formatter(_FORMAT)

    logger = py_logging.getLogger("wslops")
    logger.setLevel(resolved)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logger.addHandler(console)

    file_handler = _open_file_handler(log_file) if log_file else None
    if file_handler is not None:
        file_handler.setLevel(py_logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
