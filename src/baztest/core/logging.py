"""structlog setup for baztest.

Lifecycle events (discovery refreshed, target finished, report skipped) go
through structlog to one or more outputs. Tool output from bazel itself does
not; the orchestrator streams it to an ``OutputSink`` instead.

Every event logged inside an orchestrated run carries that run's ``run_id``.
The id lives in structlog's contextvars, so concurrent targets in the same
run share it without passing it around.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from baztest.config.models import LoggingConfig, LogOutputConfig

_RUN_ID_KEY = "run_id"

_log_file_path: Path | None = None

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_CONSOLES = ("stderr", "stdout")


def _level(name: str | None, default: int = logging.INFO) -> int:
    return _LEVELS.get((name or "").upper(), default)


# Run correlation


def get_run_id() -> str | None:
    return structlog.contextvars.get_contextvars().get(_RUN_ID_KEY)


def set_run_id(run_id: str | None = None) -> str:
    """Bind ``run_id`` (12 hex chars when generated) to subsequent events."""
    rid = run_id or uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(**{_RUN_ID_KEY: rid})
    return rid


def clear_run_id() -> None:
    structlog.contextvars.unbind_contextvars(_RUN_ID_KEY)


@contextmanager
def bound_run(run_id: str | None = None) -> Iterator[str]:
    rid = set_run_id(run_id)
    try:
        yield rid
    finally:
        clear_run_id()


def get_log_file_path() -> Path | None:
    """Where the detailed log goes, for pointing users at it from a notice."""
    return _log_file_path


# Setup


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog through stdlib handlers, one per configured output.

    Without ``config`` a single stderr output is used, rendered as JSON when
    ``json_format`` is set. Calling again replaces the previous handlers.
    """
    global _log_file_path
    from baztest.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _level(config.level)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # reconfigured per CLI invocation and per test
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in root.handlers:
        old.close()
    root.handlers.clear()
    root.setLevel(root_level)
    # asyncio reports slow callbacks at DEBUG while bazel output streams
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _log_file_path = None
    for output in config.outputs:
        if output.destination not in _CONSOLES and _log_file_path is None:
            _log_file_path = Path(output.destination)
        handler = _handler_for(output.destination)
        handler.setLevel(_level(output.level or config.level, root_level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=_renderer_for(output),
                foreign_pre_chain=pre_chain,
            )
        )
        root.addHandler(handler)


def _handler_for(destination: str) -> logging.Handler:
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def _renderer_for(output: LogOutputConfig) -> structlog.types.Processor:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    colors = False
    if output.destination in _CONSOLES:
        stream = sys.stdout if output.destination == "stdout" else sys.stderr
        colors = stream.isatty()
    return structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Module logger, optionally tagged with ``logger=<name>``."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
