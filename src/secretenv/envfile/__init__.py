"""Reading and writing env-style files."""

from secretenv.envfile.formatter import (
    FormatOptions,
    format_content,
    format_export_line,
    format_lines,
    ordered_keys,
    unwrap_quotes,
)
from secretenv.envfile.parser import (
    Entry,
    LineType,
    classify_line,
    parse_entries,
    parse_file,
    parse_line,
    preprocess_content,
)

__all__ = [
    "Entry",
    "LineType",
    "classify_line",
    "parse_line",
    "parse_entries",
    "parse_file",
    "preprocess_content",
    "FormatOptions",
    "ordered_keys",
    "format_lines",
    "format_export_line",
    "format_content",
    "unwrap_quotes",
]
