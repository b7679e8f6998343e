"""Soft-default coercions for loosely typed vendor fields."""

from __future__ import annotations

import re
from typing import Any, Optional

PLACEHOLDER = "—"
UNALLOCATED = "Unallocated"

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_INTEGRAL_DECIMAL_PATTERN = re.compile(r"^[+-]?\d+\.0*$")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def display_text(value: Any) -> str:
    """Return the trimmed text of ``value``, or the placeholder for null/blank."""
    text = _as_text(value)
    return text or PLACEHOLDER


def as_int(value: Any) -> Optional[int]:
    """
    Parse ``value`` as a base-10 integer; anything unparsable becomes ``None``.

    Integral floats (``3.0``) and their text form (``"3.0"``) count as integers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = _as_text(value)
    if _INT_PATTERN.match(text):
        return int(text)
    if _INTEGRAL_DECIMAL_PATTERN.match(text):
        return int(text.split(".", 1)[0])
    return None


def coalesce_int(*values: Any) -> Optional[int]:
    """Return the first value that parses as an integer."""
    for value in values:
        parsed = as_int(value)
        if parsed is not None:
            return parsed
    return None


def normalize_mac(value: Any) -> str:
    text = _as_text(value)
    if not text or text.lower() == "null":
        return UNALLOCATED
    return text


def normalize_status(value: Any) -> str:
    """Map a SIP account status flag onto Active / Inactive / Abnormal."""
    text = _as_text(value)
    if text == "1" or text.lower() == "up":
        return "Active"
    if text == "0" or text.lower() == "down":
        return "Inactive"
    return "Abnormal"


__all__ = [
    "PLACEHOLDER",
    "UNALLOCATED",
    "as_int",
    "coalesce_int",
    "display_text",
    "normalize_mac",
    "normalize_status",
]
