import logging
import sys
from typing import Any

import structlog


def configure_logging(level: int | str = logging.WARNING, fmt: str = "console") -> None:
    """Configure structlog/standard logging bridge.

    Logs always go to stderr; stdout is reserved for resolved variables so
    that ``eval "$(sem load -e)"`` stays clean.
    """

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)


def bind_context(**kwargs: Any) -> None:
    """Bind contextual fields (e.g. the input file) for downstream logs."""

    structlog.contextvars.bind_contextvars(**kwargs)
