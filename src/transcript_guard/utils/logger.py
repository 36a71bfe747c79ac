"""structlog setup for transcript-guard.

Structured events and stdlib records both go to stderr so the CLI can keep
stdout for its JSON reports. Outside CI the stdlib records are also copied
into an in-memory buffer that callers can read back with get_captured_logs().
"""

import io
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, List, Optional

import structlog
from structlog.types import Processor

_PLAIN_CAPTURE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_log_buffer: Optional[io.StringIO] = None


class JsonLogFormatter(logging.Formatter):
    """Render a stdlib record with the same keys JSONRenderer emits."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _processors(json_logs: bool) -> List[Processor]:
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        renderer,
    ]


def _stream_handler(
    stream: IO[str], formatter: logging.Formatter, level: int
) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def _capture_buffer() -> Optional[io.StringIO]:
    """Buffer for stdlib records; None when running under CI."""
    global _log_buffer
    if os.getenv("CI") is not None:
        _log_buffer = None
    elif _log_buffer is None:
        _log_buffer = io.StringIO()
    return _log_buffer


def setup_logging(level: str = "INFO", json_logs: bool = False):
    """Configure structlog and the root stdlib logger at ``level``."""
    numeric_level = getattr(logging, level.upper())

    structlog.configure(
        processors=_processors(json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()
    root.addHandler(
        _stream_handler(sys.stderr, logging.Formatter("%(message)s"), numeric_level)
    )

    buffer = _capture_buffer()
    if buffer is not None:
        formatter = (
            JsonLogFormatter()
            if json_logs
            else logging.Formatter(_PLAIN_CAPTURE_FORMAT)
        )
        root.addHandler(_stream_handler(buffer, formatter, numeric_level))


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def get_captured_logs() -> Optional[str]:
    """Everything captured since the last clear, or None under CI."""
    return _log_buffer.getvalue() if _log_buffer is not None else None


def clear_log_buffer():
    if _log_buffer is not None:
        _log_buffer.seek(0)
        _log_buffer.truncate()
