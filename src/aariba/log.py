"""Structured logging.

Loggers from ``get_logger`` sit on top of stdlib ``logging``, so library code
stays quiet below WARNING until an application calls ``configure_logging``.
"""

import logging
import sys

import structlog

_METHOD_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


class LevelCheckedLogger(structlog.stdlib.BoundLogger):
    """Drops events the stdlib logger would discard before any processor runs."""

    def _proxy_to_logger(self, method_name, event=None, *event_args, **event_kw):
        level = _METHOD_LEVELS.get(method_name, logging.NOTSET)
        if not self._logger.isEnabledFor(level):
            return None
        return super()._proxy_to_logger(method_name, event, *event_args, **event_kw)


def configure_logging(log_level: str = "warning", json_logs: bool = False) -> None:
    """Configure structlog on top of stdlib logging, writing to stderr."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=LevelCheckedLogger,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )


def get_logger(name: str) -> LevelCheckedLogger:
    """Get a structured logger backed by the stdlib logger ``name``."""
    return structlog.wrap_logger(logging.getLogger(name), wrapper_class=LevelCheckedLogger)
