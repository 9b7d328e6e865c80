"""Resolve a single target distribution by name or interactive choice."""

from __future__ import annotations

import logging as py_logging
import re
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO

from wslops.config import DEFAULT_CANCEL_TOKENS
from wslops.errors import SelectionCancelled
from wslops.runtime.wsl_listing import DistroRecord, ListParser

logger = py_logging.getLogger(__name__)

_INDEX = re.compile(r"^\d+$", re.ASCII)
PROMPT = "Select a distribution by number or name ({cancel} to cancel): "


@dataclass(frozen=True)
class MatchResult:
    record: DistroRecord | None = None

    @property
    def found(self) -> bool:
        return self.record is not None


def find_exact(records: Sequence[DistroRecord], name: str | None) -> MatchResult:
    """Case-sensitive exact name lookup."""
    if not name:
        return MatchResult()
    for record in records:
        if record.name == name:
            return MatchResult(record)
    return MatchResult()


def render_distributions(records: Sequence[DistroRecord]) -> list[str]:
    index_width = len(str(len(records)))
    name_width = max((len(record.name) for record in records), default=0)
    state_width = max((len(record.state) for record in records), default=0)
    lines = []
    for position, record in enumerate(records, start=1):
        version = "" if record.version is None else str(record.version)
        line = (
            f"{position:>{index_width}}) {record.name:<{name_width}}  "
            f"{record.state:<{state_width}}  {version}"
        )
        lines.append(line.rstrip())
    return lines


def resolve_choice(records: Sequence[DistroRecord], answer: str) -> DistroRecord | None:
    """Map one line of user input to a record, or None when it matches nothing."""
    if _INDEX.match(answer):
        position = int(answer)
        if 1 <= position <= len(records):
            return records[position - 1]
    return find_exact(records, answer).record


class DistroSelector:
    def __init__(
        self,
        parser: ListParser,
        *,
        input_func: Callable[[str], str] = input,
        output: TextIO | None = None,
        cancel_tokens: Sequence[str] = DEFAULT_CANCEL_TOKENS,
        max_attempts: int | None = None,
    ) -> None:
        self.parser = parser
        self.input_func = input_func
        self.output = output
        self.cancel_tokens = tuple(cancel_tokens)
        self.max_attempts = max_attempts

    def _print(self, text: str = "") -> None:
        print(text, file=self.output or sys.stdout)

    def _ask(self) -> str:
        prompt = PROMPT.format(cancel="/".join(self.cancel_tokens))
        try:
            return self.input_func(prompt).strip()
        except (EOFError, KeyboardInterrupt) as exc:
            logger.info("Distribution selection input closed")
            raise SelectionCancelled(hint="Pass the distribution name explicitly.") from exc

    def select(self, requested: str | None = None) -> DistroRecord:
        """Take a listing snapshot and resolve exactly one record from it."""
        records = self.parser.list_distributions()
        return self.choose(records, requested)

    def choose(self, records: Sequence[DistroRecord], requested: str | None = None) -> DistroRecord:
        match = find_exact(records, requested)
        if match.record is not None:
            logger.debug("Requested distribution matched: %s", requested)
            return match.record

        if requested:
            logger.warning("Distribution '%s' not found; choose one from the list", requested)

        self._print("Available WSL distributions:")
        for line in render_distributions(records):
            self._print(f"  {line}")

        attempts = 0
        while True:
            if self.max_attempts is not None and attempts >= self.max_attempts:
                logger.info("Distribution selection gave up after %s attempts", attempts)
                raise SelectionCancelled(
                    "No valid distribution was chosen.",
                    hint="Pass the distribution name explicitly.",
                )
            attempts += 1
            answer = self._ask()
            if answer in self.cancel_tokens:
                logger.info("Distribution selection cancelled by user")
                raise SelectionCancelled()
            record = resolve_choice(records, answer)
            if record is not None:
                logger.debug("Selected distribution: %s", record.name)
                return record
            self._print(f"Invalid choice: {answer!r}")
