"""
Secret addresses.

A secret address names one version of one secret held by a cloud secret
store, optionally narrowed to a member of a JSON secret::

    sem://<platform>:<service>/<account>/<secret-name>[?version=..&key=..&region=..]

``account`` is the AWS profile or the Google Cloud project id. The secret
name may itself contain ``/``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qsl, quote_plus

from secretenv.core.errors import AddressSyntaxError

ADDRESS_PREFIX = "sem://"

AWS_PLATFORM = "aws"
GOOGLE_CLOUD_PLATFORM = "googlecloud"

AWS_DEFAULT_VERSION = "AWSCURRENT"
GOOGLE_CLOUD_DEFAULT_VERSION = "latest"
AWS_DEFAULT_REGION = "ap-northeast-1"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def default_version(platform: str) -> str:
    """Version used when the address does not pin one."""
    if platform == AWS_PLATFORM:
        return AWS_DEFAULT_VERSION
    if platform == GOOGLE_CLOUD_PLATFORM:
        return GOOGLE_CLOUD_DEFAULT_VERSION
    return ""


def default_region(platform: str) -> str:
    if platform == AWS_PLATFORM:
        return AWS_DEFAULT_REGION
    return ""


def build_cache_key(account: str, service: str, secret_name: str, version: str, region: str) -> str:
    return "|".join((account, service, secret_name, version, region))


def is_address(text: str) -> bool:
    """True when text starts like a secret address (no validation)."""
    return text.strip().startswith(ADDRESS_PREFIX)


@dataclass(frozen=True)
class SecretAddress:
    """Parsed secret address with defaults applied."""

    platform: str
    service: str
    account: str
    secret_name: str
    version: str = ""
    key: str = ""
    region: str = ""

    def is_complete(self) -> bool:
        return bool(self.platform and self.service and self.account and self.secret_name)

    @property
    def cache_key(self) -> str:
        return build_cache_key(
            self.account, self.service, self.secret_name, self.version, self.region
        )

    def to_uri(self) -> str:
        """Rebuild the canonical address text, including any non-empty query fields."""
        base = f"{ADDRESS_PREFIX}{self.platform}:{self.service}/{self.account}/{self.secret_name}"
        params = [
            f"{name}={quote_plus(value)}"
            for name, value in (
                ("version", self.version),
                ("key", self.key),
                ("region", self.region),
            )
            if value
        ]
        if not params:
            return base
        return f"{base}?{'&'.join(params)}"

    def __str__(self) -> str:
        return self.to_uri()


def _parse_query(query: str) -> dict[str, str]:
    if not query:
        return {}
    if ";" in query or _BAD_ESCAPE.search(query):
        raise AddressSyntaxError("invalid query", {"query": query})
    try:
        pairs = parse_qsl(query, keep_blank_values=True, errors="strict")
    except (UnicodeDecodeError, ValueError) as e:
        raise AddressSyntaxError("invalid query", {"query": query}) from e

    params: dict[str, str] = {}
    for name, value in pairs:
        # First occurrence wins
        params.setdefault(name, value)
    return params


def parse_address(text: str) -> SecretAddress:
    """
    Parse a secret address.

    Surrounding whitespace and trailing line breaks are ignored. Missing
    version and region are filled with the platform defaults.

    Raises:
        AddressSyntaxError: text is not a well-formed address
    """
    cleaned = text.strip().rstrip("\r\n")
    if not cleaned.startswith(ADDRESS_PREFIX):
        raise AddressSyntaxError(f"missing prefix: address must start with '{ADDRESS_PREFIX}'")

    path, _, query = cleaned[len(ADDRESS_PREFIX) :].partition("?")

    parts = path.split("/", 2)
    if len(parts) != 3:
        raise AddressSyntaxError(
            "missing required fields: expected '<platform>:<service>/<account>/<secret-name>'"
        )
    platform, sep, service = parts[0].partition(":")
    account, secret_name = parts[1], parts[2]
    if not sep or not platform or not service or not account or not secret_name:
        raise AddressSyntaxError("missing required fields")

    params = _parse_query(query)

    return SecretAddress(
        platform=platform,
        service=service,
        account=account,
        secret_name=secret_name,
        version=params.get("version") or default_version(platform),
        key=params.get("key", ""),
        region=params.get("region") or default_region(platform),
    )
