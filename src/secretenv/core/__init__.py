"""Core definitions shared across secretenv."""

from secretenv.core.errors import (
    AddressSyntaxError,
    BackendError,
    BackendUnavailableError,
    BlockedError,
    ConfigurationError,
    ExitCode,
    IndexOutOfBoundsError,
    InvalidIndexError,
    JSONPathError,
    KeyNotFoundError,
    NotJSONError,
    NotNavigableError,
    OutputNotIgnoredError,
    ProviderError,
    ScanError,
    SecretEnvError,
    SecretFetchError,
    SecretFormatError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "SecretEnvError",
    "ConfigurationError",
    "ProviderError",
    "ValidationError",
    "BlockedError",
    # Domain errors
    "AddressSyntaxError",
    "BackendUnavailableError",
    "BackendError",
    "SecretFetchError",
    "SecretFormatError",
    "NotJSONError",
    "JSONPathError",
    "KeyNotFoundError",
    "IndexOutOfBoundsError",
    "InvalidIndexError",
    "NotNavigableError",
    "ScanError",
    "OutputNotIgnoredError",
    # Helpers
    "main_with_error_handling",
    "format_error_message",
]
