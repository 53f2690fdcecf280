"""Logging setup for ingestion runs.

structlog renders every event; stdlib ``logging`` owns the handlers so
records from httpx and SQLAlchemy reach the same outputs in the same
format. Each output in ``LoggingConfig.outputs`` gets one handler with
its own level and renderer.

Every event emitted during ``run_ingest`` carries a ``run_id`` bound
through structlog's context variables, including events logged from
retriever tasks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from bridgepool.config.models import LoggingConfig, LogOutputConfig

# Chatty at INFO: one line per request or statement
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
]


def set_run_id(run_id: str | None = None) -> str:
    """Bind a run correlation ID (generated when not given) to the current context."""
    rid = run_id or uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(run_id=rid)
    return rid


def get_run_id() -> str | None:
    run_id: str | None = structlog.contextvars.get_contextvars().get("run_id")
    return run_id


def clear_run_id() -> None:
    structlog.contextvars.unbind_contextvars("run_id")


def get_log_file() -> Path | None:
    """First file the root logger writes to, for pointing users at details."""
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


class ConsoleSuppressingFilter(logging.Filter):
    """Drop console log records while a Rich spinner owns the terminal."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        # Deferred: progress imports this module
        from bridgepool.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _build_handler(output: LogOutputConfig, level: int) -> logging.Handler:
    handler: logging.Handler
    if output.destination in ("stderr", "stdout"):
        stream = getattr(sys, output.destination)
        handler = logging.StreamHandler(stream)
        handler.addFilter(ConsoleSuppressingFilter())
        colors = output.format == "console" and stream.isatty()
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a")
        colors = False

    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)

    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )
    return handler


def configure_logging(config: LoggingConfig) -> None:
    """Install one handler per configured output on the root logger.

    Safe to call repeatedly; previous handlers are replaced.
    """
    root_level = _level(config.level)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must reach loggers created at import time
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(root_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for output in config.outputs:
        root.addHandler(_build_handler(output, _level(output.level or config.level)))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
