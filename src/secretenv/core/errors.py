"""
Unified error handling for secretenv commands.

This module provides the exception hierarchy, exit codes, and error
reporting shared by the resolver and the CLI.

Exit Codes:
- 0: Success
- 2: Blocked (operation refused, e.g. cache file not git-ignored)
- 10: Configuration error
- 11: Provider error (secret storage failure)
- 12: Validation error (bad input, bad secret payload)
- 127: Unknown/internal error

Errors raised while classifying a single line (``AddressSyntaxError``,
``BackendUnavailableError``) are recoverable: the resolver turns them into
literal values. Everything else aborts the run.
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    BLOCKED = 2
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class SecretEnvError(Exception):
    """Base exception for secretenv errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SecretEnvError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ProviderError(SecretEnvError):
    """Raised when a secret storage service fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class ValidationError(SecretEnvError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class BlockedError(SecretEnvError):
    """Raised when an operation is refused for safety reasons."""

    exit_code = ExitCode.BLOCKED


# --- Domain errors ---


class AddressSyntaxError(ValidationError):
    """Text is not a well-formed sem:// address."""


class BackendUnavailableError(ConfigurationError):
    """No backend is registered for an address platform."""


class BackendError(ProviderError):
    """A backend failed to fetch a secret."""


class SecretFetchError(ProviderError):
    """Fetching the secret for a configuration line failed."""


class SecretFormatError(ValidationError):
    """A fetched secret could not be turned into the requested value."""


class NotJSONError(SecretFormatError):
    """A key was requested from a secret that is not JSON."""


class JSONPathError(SecretFormatError):
    """Base class for dotted-key navigation failures."""


class KeyNotFoundError(JSONPathError):
    """Object has no member with the requested name."""


class IndexOutOfBoundsError(JSONPathError):
    """Array index falls outside the array."""


class InvalidIndexError(JSONPathError):
    """Array segment is neither an integer nor ``-``."""


class NotNavigableError(JSONPathError):
    """Path continues past a scalar value."""


class ScanError(ValidationError):
    """Configuration text could not be read or decoded."""


class OutputNotIgnoredError(BlockedError):
    """Refusing to write secrets to a file git would track."""


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
    report: Callable[[SecretEnvError], None] | None = None,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Args:
        show_traceback: If True, show full traceback for unexpected errors
        log_errors: If True, log errors to structlog
        report: Shows SecretEnvError to the user instead of the error log;
            the structured event is then emitted at debug level only

    Exit codes:
        - SecretEnvError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except SecretEnvError as e:
                if report is not None:
                    report(e)
                if log_errors:
                    log = logger.debug if report is not None else logger.error
                    log(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: SecretEnvError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
