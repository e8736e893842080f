"""Response codes shared by steps, the evaluator, and scan results.

Codes are category-level outcomes, not exception types.  Plugin-supplied
steps may declare their own integer codes; they share this code space and
should avoid the values reserved here.
"""

from __future__ import annotations

from enum import IntEnum


class ResponseCode(IntEnum):
    """Category-level outcome of a step or a whole scan."""

    OK = 0
    MULTIPLE = 1
    FATAL = 2

    # Built-in check categories
    EXTENSION = 10
    CHECKSUM = 11
    SIGNATURE = 12
    SIZE = 13
    VIRUS_TOTAL = 14

    # Preparation failures
    PATH_NOT_FOUND = 20
    PATH_UNREADABLE = 21


def code_name(code: int) -> str:
    """Return a readable name for *code*, including plugin-declared codes."""
    try:
        return ResponseCode(code).name
    except ValueError:
        return f"CUSTOM_{code}"
