"""Reading settings from the process environment."""

from __future__ import annotations

import os
import re

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def get_env(key: str, fallback: str) -> str:
    """Return the variable's value, or fallback when it is not set."""
    return os.environ.get(key, fallback)


def get_env_int(key: str, fallback: int) -> int:
    """Return the variable as a 64-bit decimal integer, or fallback."""
    value = os.environ.get(key)
    if value is None or not _INT_PATTERN.fullmatch(value):
        return fallback
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return fallback
    return number