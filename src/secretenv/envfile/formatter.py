"""
Rendering resolved variables as env-file or shell lines.

Output order is always lexicographic by key, so the same mapping renders
identically regardless of how it was built.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

import structlog

from secretenv.address import is_address
from secretenv.jsonpath import load_json

logger = structlog.get_logger()


@dataclass
class FormatOptions:
    """Options for rendering variables."""

    use_quotes: bool = False
    export: bool = False
    preferred_order: list[str] = field(default_factory=list)
    include_addresses: bool = False
    compact_json: bool = False


def unwrap_quotes(value: str) -> str:
    """Strip one layer of matching surrounding single or double quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def compact_json_value(value: str) -> str:
    """Re-serialize a JSON object/array compactly; other text is returned unchanged."""
    stripped = value.strip()
    if not stripped or stripped[0] not in "{[":
        return value
    try:
        data = load_json(stripped)
    except ValueError:
        return value
    if not isinstance(data, (dict, list)):
        return value
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def ordered_keys(values: dict[str, str], preferred_order: list[str] | None = None) -> list[str]:
    """
    Keys of ``values`` in emission order.

    Preferred keys that exist are gathered first, then the rest. The final
    list is always sorted, so the preferred order never changes the output.
    """
    # Input files may repeat a key, so the preferred order can too
    keys = list(dict.fromkeys(key for key in preferred_order or [] if key in values))
    seen = set(keys)
    keys.extend(key for key in values if key not in seen)
    return sorted(keys)


def format_key_value(key: str, value: str, use_quotes: bool = False) -> str:
    if use_quotes:
        return f"{key}='{value}'"
    return f"{key}={value}"


def format_export_line(key: str, value: str) -> str:
    """``export KEY='value'`` with embedded single quotes escaped for POSIX shells."""
    escaped = value.replace("'", "'\\''")
    return f"export {key}='{escaped}'"


def format_lines(values: dict[str, str], options: FormatOptions | None = None) -> list[str]:
    options = options or FormatOptions()
    lines = []
    for key in ordered_keys(values, options.preferred_order):
        if not key:
            logger.warning("skipped_empty_key")
            continue
        if is_address(key) and not options.include_addresses:
            continue

        value = unwrap_quotes(values[key])
        if options.compact_json:
            value = compact_json_value(value)

        if options.export:
            lines.append(format_export_line(key, value))
        else:
            lines.append(format_key_value(key, value, options.use_quotes))
    return lines


def format_content(values: dict[str, str], options: FormatOptions | None = None) -> str:
    """Rendered lines joined by newlines, with a trailing newline when non-empty."""
    lines = format_lines(values, options)
    if not lines:
        return ""
    return "\n".join(lines) + "\n"
