"""
Cache files holding resolved variables.

``sem update`` writes resolved values next to the input file so that
``sem load`` can export them without calling the secret stores again. The
cache contains plaintext secrets, so it is written owner-only and must be
ignored by git.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import structlog

from secretenv.core.errors import ConfigurationError, OutputNotIgnoredError, ScanError
from secretenv.envfile.parser import parse_file

logger = structlog.get_logger()

SECURE_FILE_MODE = 0o600


def cache_file_name(input_file: str | os.PathLike[str]) -> str:
    """
    Name of the cache file for an input file.

    ``.env`` -> ``.cache.env``, ``config/dev.env`` -> ``.cache.config_dev.env``.
    """
    safe_name = Path(input_file).as_posix().replace("/", "_")
    if safe_name.startswith("."):
        return f".cache{safe_name}"
    return f".cache.{safe_name}"


def is_git_ignored(path: str | os.PathLike[str]) -> bool:
    """
    Ask git whether ``path`` is ignored.

    Raises:
        ConfigurationError: git is missing or the check failed (e.g. not a repository)
    """
    try:
        result = subprocess.run(
            ["git", "check-ignore", str(path)],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise ConfigurationError(
            "error checking git ignore status", {"path": str(path), "reason": type(e).__name__}
        ) from e

    if result.returncode == 1:
        return False
    if result.returncode != 0:
        raise ConfigurationError(
            "error checking git ignore status",
            {"path": str(path), "reason": result.stderr.strip() or f"exit {result.returncode}"},
        )
    return bool(result.stdout.strip())


def security_warning(path: str | os.PathLike[str]) -> str:
    return (
        f'The file "{path}" contains sensitive information (e.g., access keys).\n'
        "Managing this file with Git poses a severe risk of information leakage.\n"
        "Action required:\n"
        "  1. Open your '.gitignore' file.\n"
        f'  2. Add a line containing "{path}".\n'
        "  3. Commit the updated '.gitignore' file."
    )


def ensure_git_ignored(path: str | os.PathLike[str]) -> None:
    """Raise OutputNotIgnoredError unless git ignores ``path``."""
    if not is_git_ignored(path):
        raise OutputNotIgnoredError(
            f"output file '{path}' is not ignored by git, which poses a security risk",
            {"path": str(path)},
        )


def write_cache_file(path: str | os.PathLike[str], content: str) -> Path:
    """Write ``content`` with owner-only permissions."""
    path = Path(path)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SECURE_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)

    # O_CREAT ignores the mode for files that already exist
    try:
        os.chmod(path, SECURE_FILE_MODE)
    except OSError as e:
        logger.warning("cache_file_chmod_failed", path=str(path), error=type(e).__name__)

    logger.debug("cache_file_written", path=str(path))
    return path


def read_cache_file(path: str | os.PathLike[str]) -> dict[str, str]:
    """
    Read a cache file back into a mapping; later lines win.

    Raises:
        ScanError: the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise ScanError(
            f"cache file '{path}' not found, run 'sem update' first", {"path": str(path)}
        )

    values: dict[str, str] = {}
    for entry in parse_file(path):
        values[entry.key] = entry.value
    return values
