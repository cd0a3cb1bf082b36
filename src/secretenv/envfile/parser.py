"""
Line-oriented parsing of env-style configuration files.

Every line is classified on its trimmed text:

- empty and ``#`` comment lines are dropped
- ``sem://`` lines become an entry whose key is the address
- ``KEY=value`` lines split on the first ``=``; the value is kept verbatim
- anything else becomes a key-only entry

Classification never fails; only unreadable or undecodable input raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from secretenv.address import ADDRESS_PREFIX
from secretenv.core.errors import ScanError

logger = structlog.get_logger()

UTF8_BOM = b"\xef\xbb\xbf"


class LineType(Enum):
    EMPTY = "empty"
    COMMENT = "comment"
    SECRET_ADDRESS = "secret_address"
    KEY_VALUE = "key_value"
    KEY_ONLY = "key_only"


@dataclass(frozen=True)
class Entry:
    """One meaningful line of a configuration file."""

    index: int
    key: str
    value: str = ""

    def is_empty(self) -> bool:
        return not self.key and not self.value

    def has_key_and_value(self) -> bool:
        return bool(self.key) and bool(self.value)


def classify_line(trimmed: str) -> LineType:
    if not trimmed:
        return LineType.EMPTY
    if trimmed.startswith("#"):
        return LineType.COMMENT
    if trimmed.startswith(ADDRESS_PREFIX):
        return LineType.SECRET_ADDRESS
    if "=" in trimmed:
        return LineType.KEY_VALUE
    return LineType.KEY_ONLY


def parse_line(content: str, index: int) -> Entry | None:
    """Parse one line; returns None for empty and comment lines."""
    trimmed = content.strip()
    line_type = classify_line(trimmed)

    if line_type in (LineType.EMPTY, LineType.COMMENT):
        return None
    if line_type is LineType.KEY_VALUE:
        key, _, value = trimmed.partition("=")
        entry = Entry(index=index, key=key.strip(), value=value)
    else:
        entry = Entry(index=index, key=trimmed)

    return None if entry.is_empty() else entry


def preprocess_content(data: bytes | str) -> str:
    """Decode, strip a UTF-8 BOM and normalize line endings to LF."""
    if isinstance(data, bytes):
        if data.startswith(UTF8_BOM):
            data = data[len(UTF8_BOM) :]
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ScanError("error scanning file content", {"reason": str(e)}) from e
    else:
        text = data.removeprefix("\ufeff")

    return text.replace("\r\n", "\n").replace("\r", "\n")


def parse_entries(data: bytes | str) -> list[Entry]:
    """Parse configuration text into entries, 1-indexed by line number."""
    text = preprocess_content(data)
    entries = []
    for number, line in enumerate(text.split("\n"), start=1):
        entry = parse_line(line, number)
        if entry is not None:
            entries.append(entry)

    logger.debug("parsed_entries", count=len(entries))
    return entries


def parse_file(path: str | Path) -> list[Entry]:
    """Read and parse a configuration file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ScanError(
            f"cannot read {path}", {"path": str(path), "reason": type(e).__name__}
        ) from e
    return parse_entries(data)
