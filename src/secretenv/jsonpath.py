"""Strict JSON decoding and dotted-path navigation through decoded values."""

from __future__ import annotations

import json
import math
import re
from typing import Any

from secretenv.core.errors import (
    IndexOutOfBoundsError,
    InvalidIndexError,
    KeyNotFoundError,
    NotNavigableError,
)

PATH_SEPARATOR = "."
LAST_ELEMENT = "-"

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant: {name}")


def _parse_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"number out of range: {text}")
    return value


def load_json(text: str) -> Any:
    """
    Decode strict JSON.

    ``NaN``, ``Infinity`` and numbers that overflow a float are rejected with
    ``ValueError``, like any other malformed document.
    """
    return json.loads(text, parse_constant=_reject_constant, parse_float=_parse_float)


def split_path(key: str) -> list[str]:
    """``"db.hosts.0"`` -> ``["db", "hosts", "0"]``."""
    if not key:
        return []
    return key.split(PATH_SEPARATOR)


def resolve_index(segment: str, length: int) -> int:
    """
    Turn an array path segment into a concrete index.

    ``-`` is the last element and ``-N`` counts from the end, so ``-1`` and
    ``-`` are equivalent.
    """
    if segment == LAST_ELEMENT:
        if length == 0:
            raise IndexOutOfBoundsError(
                "array index '-' out of bounds", {"segment": segment, "length": length}
            )
        return length - 1

    if not _INTEGER.fullmatch(segment):
        raise InvalidIndexError(f"invalid array index: {segment}", {"segment": segment})

    value = int(segment)
    if segment.startswith("-"):
        if 0 < -value <= length:
            return length + value
        raise IndexOutOfBoundsError(
            f"negative index {value} out of bounds", {"segment": segment, "length": length}
        )

    if value >= length:
        raise IndexOutOfBoundsError(
            f"index {value} out of bounds", {"segment": segment, "length": length}
        )
    return value


def navigate(value: Any, segments: list[str]) -> Any:
    """
    Follow ``segments`` through nested dicts and lists.

    Raises:
        KeyNotFoundError: an object has no such member
        IndexOutOfBoundsError: an array index is outside the array
        InvalidIndexError: an array segment is not an integer or ``-``
        NotNavigableError: the path continues past a scalar
    """
    current = value
    for position, segment in enumerate(segments):
        if isinstance(current, dict):
            if segment not in current:
                raise KeyNotFoundError(
                    f"key '{segment}' not found",
                    {"position": position, "available_keys": ", ".join(sorted(current))},
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                index = resolve_index(segment, len(current))
            except (IndexOutOfBoundsError, InvalidIndexError) as e:
                e.details["position"] = position
                raise
            current = current[index]
        else:
            raise NotNavigableError(
                "cannot navigate further: not an object or array",
                {"segment": segment, "position": position},
            )
    return current
