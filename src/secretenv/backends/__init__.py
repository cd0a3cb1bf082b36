"""
Secret storage backends with pluggable platform support.

Backends (loaded on demand):
- AWS Secrets Manager (``aws``, requires boto3)
- Google Cloud Secret Manager (``googlecloud``, requires google-cloud-secret-manager)

Each backend instance memoizes fetched secrets for its own lifetime, keyed
by the address cache key, and keeps one SDK client per connection target.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from secretenv.address import SecretAddress
from secretenv.core.errors import BackendUnavailableError

logger = structlog.get_logger()


class SecretPlatform(StrEnum):
    """Supported secret storage platforms."""

    AWS = "aws"
    GOOGLE_CLOUD = "googlecloud"


@dataclass
class BackendConfig:
    """Configuration for backend construction."""

    platforms: list[SecretPlatform] = field(
        default_factory=lambda: [SecretPlatform.AWS, SecretPlatform.GOOGLE_CLOUD]
    )

    # AWS config
    aws_endpoint_url: str | None = None


def _sanitize_error(exc: Exception) -> str:
    """Sanitize error message to avoid leaking sensitive details."""
    return type(exc).__name__


class BaseSecretBackend(ABC):
    """Base class for secret backends."""

    platform: SecretPlatform

    def __init__(self) -> None:
        self._secrets: dict[str, str] = {}
        self._secrets_lock = threading.Lock()
        self._clients: dict[str, Any] = {}
        self._clients_lock = threading.Lock()

    @abstractmethod
    def fetch_secret(
        self, account: str, service: str, secret_name: str, version: str, region: str
    ) -> str:
        """Fetch the raw secret string, raising BackendError on failure."""

    def get_secret(self, address: SecretAddress) -> str:
        """Return the raw secret for an address, fetching at most once per cache key."""
        cache_key = address.cache_key
        with self._secrets_lock:
            cached = self._secrets.get(cache_key)
        if cached is not None:
            logger.debug("secret_cache_hit", platform=address.platform, secret=address.secret_name)
            return cached

        value = self.fetch_secret(
            address.account,
            address.service,
            address.secret_name,
            address.version,
            address.region,
        )
        with self._secrets_lock:
            self._secrets.setdefault(cache_key, value)
        return value

    def _client_for(self, client_key: str, factory: Callable[[], Any]) -> Any:
        """Return the cached client for ``client_key``, creating it once."""
        with self._clients_lock:
            client = self._clients.get(client_key)
            if client is None:
                client = factory()
                self._clients[client_key] = client
            return client


def _load_backend(platform: SecretPlatform, config: BackendConfig) -> BaseSecretBackend | None:
    """Lazy-load a backend module. SDK imports are deferred until the first client."""
    if platform == SecretPlatform.AWS:
        from secretenv.backends.aws import AWSSecretBackend

        return AWSSecretBackend(endpoint_url=config.aws_endpoint_url)
    if platform == SecretPlatform.GOOGLE_CLOUD:
        from secretenv.backends.gcp import GoogleCloudSecretBackend

        return GoogleCloudSecretBackend()
    logger.debug("backend_unavailable", platform=str(platform))
    return None


def create_backends(config: BackendConfig | None = None) -> dict[str, BaseSecretBackend]:
    """Instantiate every enabled backend, keyed by platform name."""
    config = config or BackendConfig()
    backends: dict[str, BaseSecretBackend] = {}
    for platform in config.platforms:
        backend = _load_backend(platform, config)
        if backend is not None:
            backends[str(platform)] = backend
    logger.debug("backends_created", platforms=sorted(backends))
    return backends


def get_backend(backends: dict[str, BaseSecretBackend], platform: str) -> BaseSecretBackend:
    """
    Look up the backend for a platform.

    Raises:
        BackendUnavailableError: no backend is registered for the platform
    """
    backend = backends.get(platform)
    if backend is None:
        raise BackendUnavailableError(
            f"unsupported platform '{platform}'",
            {"platform": platform, "available": ", ".join(sorted(backends))},
        )
    return backend


__all__ = [
    "SecretPlatform",
    "BackendConfig",
    "BaseSecretBackend",
    "create_backends",
    "get_backend",
]
