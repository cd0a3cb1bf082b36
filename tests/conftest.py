"""Root test configuration."""

import logging

import pytest
import structlog

from secretenv.backends import BaseSecretBackend, SecretPlatform
from secretenv.config.settings import get_settings
from secretenv.core.errors import BackendError


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class StaticSecretBackend(BaseSecretBackend):
    """In-memory backend keyed by secret name.

    A value that is an exception instance is raised as a BackendError cause.
    """

    platform = SecretPlatform.AWS

    def __init__(self, secrets: dict[str, str | Exception] | None = None):
        super().__init__()
        self.secrets = dict(secrets or {})
        self.calls: list[tuple[str, str, str, str, str]] = []

    def fetch_secret(self, account, service, secret_name, version, region):
        self.calls.append((account, service, secret_name, version, region))
        value = self.secrets.get(secret_name)
        if value is None:
            raise BackendError(f"secret '{secret_name}' not found", {"cause": "NotFound"})
        if isinstance(value, Exception):
            raise BackendError(f"failed to get secret value for '{secret_name}'") from value
        return value


@pytest.fixture
def static_backend():
    """Factory for StaticSecretBackend instances."""
    return StaticSecretBackend


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
