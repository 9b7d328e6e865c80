"""WSL listing, selection and command building."""

from .wsl_listing import UNKNOWN_STATE, DistroRecord, ListParser
from .wsl_selection import DistroSelector, MatchResult, find_exact

__all__ = [
    "DistroRecord",
    "DistroSelector",
    "find_exact",
    "ListParser",
    "MatchResult",
    "UNKNOWN_STATE",
]
