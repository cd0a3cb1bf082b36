"""
Secret resolution engine.

Turns parsed configuration entries into a flat mapping of variable names to
values. Each entry goes through four steps:

1. Classify: the entry's value (or its key, for bare lines) is parsed as a
   secret address. Anything that is not an address is a literal.
2. Dispatch: the backend for the address platform fetches the raw secret.
   Unknown platforms are literals too.
3. Expand: JSON objects and arrays become one variable per leaf, prefixed by
   the entry key. A ``key=`` query or disabled expansion yields one variable.
4. Merge: results are merged in file order; later entries win.

Literal fallbacks are logged and never abort the run. Fetch failures and
bad ``key=`` lookups raise and stop resolution at the offending line.
"""

from __future__ import annotations

import json
import unicodedata
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog

from secretenv.address import SecretAddress, parse_address
from secretenv.backends import BaseSecretBackend, get_backend
from secretenv.core.errors import (
    AddressSyntaxError,
    BackendError,
    BackendUnavailableError,
    NotJSONError,
    SecretFetchError,
    SecretFormatError,
)
from secretenv.envfile.formatter import FormatOptions, format_lines, unwrap_quotes
from secretenv.envfile.parser import Entry
from secretenv.jsonpath import load_json, navigate, split_path

logger = structlog.get_logger()

KEY_SEPARATOR = "_"


@dataclass
class ResolveOptions:
    """Options that change how fetched secrets become variables."""

    no_expand_json: bool = False


def clean_control_chars(value: str) -> str:
    """Remove control and whitespace characters, keeping plain spaces."""
    return "".join(
        ch
        for ch in value
        if ch == " " or not (unicodedata.category(ch) == "Cc" or ch.isspace())
    )


def format_float(value: float) -> str:
    """
    Shortest text for a JSON number.

    Integral values drop the fraction (``1.0`` -> ``1``). Exponent form is
    used only below 1e-6 or from 1e21 up, with no zero padding (``1e-7``).
    """
    magnitude = abs(value)
    if magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21):
        mantissa, _, exponent = repr(value).partition("e")
        sign, digits = exponent[0], exponent[1:].lstrip("0")
        return f"{mantissa.removesuffix('.0')}e{sign}{digits}"

    text = format(Decimal(repr(value)), "f")
    return text.removesuffix(".0")


def format_scalar(value: Any) -> str:
    """Text form of a decoded JSON value."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def join_key(prefix: str, member: str) -> str:
    if not prefix:
        return member
    return f"{prefix}{KEY_SEPARATOR}{member}"


def flatten_json(prefix: str, value: Any) -> dict[str, str]:
    """
    Expand a decoded JSON container into ``prefix_member`` variables.

    Object members are visited in sorted order, array elements by index.
    Nested containers recurse with the composite key as their prefix.
    """
    result: dict[str, str] = {}
    if isinstance(value, dict):
        items = ((str(name), value[name]) for name in sorted(value))
    else:
        items = ((str(index), item) for index, item in enumerate(value))

    for member, item in items:
        key = join_key(prefix, member)
        if isinstance(item, (dict, list)):
            result.update(flatten_json(key, item))
        else:
            result[key] = format_scalar(item)
    return result


def determine_final_key(prefix: str, address: SecretAddress) -> str:
    """Variable name for a single-value secret."""
    return prefix or address.key or address.secret_name


def extract_value(raw: str, key: str) -> str:
    """
    Single value for a secret, optionally narrowed by a dotted ``key``.

    Raises:
        NotJSONError: a key was requested but the secret is not JSON
        JSONPathError: the key does not resolve inside the secret
    """
    if key:
        try:
            data = load_json(raw)
        except ValueError as e:
            raise NotJSONError(
                f"cannot retrieve key '{key}': secret is not in JSON format", {"key": key}
            ) from e
        value = format_scalar(navigate(data, split_path(key)))
    else:
        value = raw
    return unwrap_quotes(clean_control_chars(value))


class SecretResolver:
    """Resolves configuration entries against a set of backends."""

    def __init__(
        self,
        backends: dict[str, BaseSecretBackend],
        options: ResolveOptions | None = None,
    ):
        self.backends = backends
        self.options = options or ResolveOptions()

    def resolve(self, entries: list[Entry]) -> dict[str, str]:
        """Resolve all entries in order; later entries overwrite earlier keys."""
        values: dict[str, str] = {}
        for entry in entries:
            values.update(self.resolve_entry(entry))
        logger.info("resolved_entries", entries=len(entries), variables=len(values))
        return values

    def resolve_entry(self, entry: Entry) -> dict[str, str]:
        candidate = entry.value if entry.has_key_and_value() else entry.key
        try:
            address = parse_address(candidate)
        except AddressSyntaxError as e:
            return self._literal(entry, e.message)

        if not address.is_complete():
            return self._literal(entry, "incomplete address")

        try:
            backend = get_backend(self.backends, address.platform)
        except BackendUnavailableError as e:
            return self._literal(entry, e.message)

        try:
            raw = backend.get_secret(address)
        except BackendError as e:
            raise SecretFetchError(
                f"failed to retrieve secret for line {entry.index}",
                {"line": entry.index, "address": str(address), "cause": e.message},
            ) from e

        prefix = entry.key if entry.has_key_and_value() else ""
        try:
            return self.expand(prefix, address, raw)
        except SecretFormatError as e:
            e.details.update({"line": entry.index, "address": str(address)})
            raise

    def expand(self, prefix: str, address: SecretAddress, raw: str) -> dict[str, str]:
        """Turn one fetched secret into output variables."""
        if self.options.no_expand_json or address.key:
            return {determine_final_key(prefix, address): extract_value(raw, address.key)}

        try:
            data = load_json(raw)
        except ValueError:
            data = None
        if isinstance(data, (dict, list)):
            return flatten_json(prefix, data)

        return {determine_final_key(prefix, address): extract_value(raw, "")}

    def _literal(self, entry: Entry, reason: str) -> dict[str, str]:
        logger.info("entry_treated_as_literal", line=entry.index, reason=reason)
        if entry.has_key_and_value():
            return {entry.key: entry.value}
        return {entry.key: ""}


def resolve_configuration(
    entries: list[Entry],
    backends: dict[str, BaseSecretBackend],
    options: ResolveOptions | None = None,
    format_options: FormatOptions | None = None,
) -> list[str]:
    """Resolve entries and render them as sorted ``key=value`` lines."""
    values = SecretResolver(backends, options).resolve(entries)
    return format_lines(values, format_options)
