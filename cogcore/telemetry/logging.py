"""
CogCore — Structured Logging

All logging via structlog. Components bind a ``system`` key so every
entry can be traced back to the AtomSpace, the allocator, the scheduler
or the goal engine.

Entries from structlog and from the standard library share one handler.
JSON output carries exceptions as structured tracebacks so a failed task
or reasoning step stays a single parseable line.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from cogcore.config import LoggingConfig


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _render_processors(fmt: str, stream: TextIO) -> list[Any]:
    if fmt == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    isatty = getattr(stream, "isatty", None)
    return [structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))]


def setup_logging(
    config: LoggingConfig,
    instance_id: str = "",
    stream: TextIO | None = None,
) -> logging.Handler:
    """
    Route structlog and standard-library logging through one handler on
    ``stream`` (stdout by default). ``instance_id`` is bound into every
    entry. Returns the installed handler.
    """
    stream = stream if stream is not None else sys.stdout

    if instance_id:
        structlog.contextvars.bind_contextvars(instance_id=instance_id)

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_processors(config.format, stream),
        ],
    )
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
