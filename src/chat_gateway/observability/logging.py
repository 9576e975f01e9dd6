"""Structured logging configuration for chat-gateway."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

_CONFIGURED = False

# ── Optional structlog import ───────────────────────────────────
try:
    import structlog
    from structlog.contextvars import bound_contextvars, merge_contextvars

    HAS_STRUCTLOG = True
except ImportError:
    HAS_STRUCTLOG = False


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
) -> None:
    """Configure logging for chat-gateway.

    If structlog is installed, stdlib records (including their ``extra``
    fields) are rendered through structlog as JSON or console output.
    Otherwise falls back to stdlib logging.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        fmt: Output format, "json" or "console".
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if HAS_STRUCTLOG:
        _configure_structlog(numeric_level, fmt)
    else:
        logging.basicConfig(level=numeric_level, format="%(levelname)s %(name)s %(message)s")


def _configure_structlog(level: int, fmt: str) -> None:
    """Set up structlog processors and rendering."""
    shared_processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer(default=str)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


@contextmanager
def request_context(**fields: Any) -> Iterator[None]:
    """Tag every log line emitted inside the block with ``fields``.

    Uses structlog contextvars, so concurrent calls keep separate tags.
    A no-op without structlog.
    """
    if not HAS_STRUCTLOG:
        yield
        return
    with bound_contextvars(**fields):
        yield


def get_logger(name: str) -> Any:
    """Return a logger instance.

    Returns a structlog BoundLogger if structlog is installed,
    otherwise a stdlib logger.
    """
    if HAS_STRUCTLOG:
        return structlog.get_logger(name)
    return logging.getLogger(name)
