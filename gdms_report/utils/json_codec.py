"""
JSON helpers used for GDMS request signing and response decoding.

``serialize`` is byte-stable: object keys are emitted in sorted order with no
insignificant whitespace, integral floats are written as integers, and
non-ASCII text is written as-is. The signature scheme hashes this output, so
any change here invalidates every signed request.
"""

from __future__ import annotations

import json
import math
from typing import Any, Union

JsonValue = Union[None, bool, int, float, str, list, dict]


class MalformedJson(ValueError):
    """Raised when text cannot be decoded as a JSON document."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message if position is None else f"{message} at {position}")
        self.position = position


def _reject_constant(name: str) -> Any:
    raise MalformedJson(f"Unsupported literal {name!r}")


def parse(text: str | bytes) -> JsonValue:
    """Decode ``text`` into a tree of dicts, lists, strings, numbers, booleans and None."""
    if isinstance(text, (bytes, bytearray)):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedJson("Body is not valid UTF-8", exc.start) from exc
    if not text or not text.strip():
        raise MalformedJson("Unexpected end of input", 0)
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise MalformedJson(exc.msg, exc.pos) from exc
    except RecursionError as exc:
        raise MalformedJson("Nesting too deep") from exc


def _normalize(value: Any) -> JsonValue:
    if value is None or isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot serialize non-finite number {value!r}")
        return int(value) if value.is_integer() else value
    if isinstance(value, dict):
        return {str(key): _normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    return str(value)


def serialize(value: Any) -> str:
    """Encode ``value`` deterministically (sorted keys, compact separators)."""
    return json.dumps(
        _normalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def pretty(value: Any) -> str:
    """Human-readable rendering used for exported JSON files."""
    return json.dumps(_normalize(value), sort_keys=True, indent=2, ensure_ascii=False)


__all__ = ["JsonValue", "MalformedJson", "parse", "pretty", "serialize"]
