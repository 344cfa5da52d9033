"""supaprobe — Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names
across the adapter and the harness.  All log entries include:
    - timestamp (ISO-8601)
    - level
    - module (Python logger name)
    - scenario / check (bound via context variables when available)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

_ctx_scenario: ContextVar[str | None] = ContextVar("scenario", default=None)
_ctx_check: ContextVar[str | None] = ContextVar("check", default=None)


def bind_scenario_context(
    scenario: str | None = None,
    check: str | None = None,
) -> None:
    """Bind harness context to the current async task."""
    if scenario is not None:
        _ctx_scenario.set(scenario)
    if check is not None:
        _ctx_check.set(check)


def clear_scenario_context() -> None:
    _ctx_scenario.set(None)
    _ctx_check.set(None)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (scenario := _ctx_scenario.get()) is not None:
        event_dict["scenario"] = scenario
    if (check := _ctx_check.get()) is not None:
        event_dict["check"] = check
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_QUIET_LIBRARIES = ("httpx", "httpcore")


def _renderer(format: str) -> Any:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Route structlog through stdlib logging on stderr (and *log_file*).

    Call once at startup.  stdout belongs to the console report, so log
    lines never go there.  *format* is ``"console"`` or ``"json"``.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(format),
        ],
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())

    # One INFO line per request otherwise.
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("scenario_started", scenario="basic_fetches")
    """
    return structlog.get_logger(name)
