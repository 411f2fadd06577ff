"""Logging setup for erpsync.

Both formatters render the same field set: whatever LogContext has bound
plus the request fields the REST client and timers pass through
``extra=``. JSON lines suit long-running sync workers; the console form
is what the ``erpsync`` CLI prints, with each line tagged by the
channel or endpoint it concerns.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from erpsync.logging_config.config import LogFormat, LoggingConfig
from erpsync.logging_config.context import get_context_dict
from erpsync.settings import get_settings

# Attributes the REST client and PerformanceTimer attach via extra=
RECORD_FIELDS = ("method", "url", "status_code", "duration_ms")

# Held at WARNING whatever the root level is
NOISY_LOGGERS = ("asyncio", "websockets", "httpx", "httpcore")


def log_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Bound context merged with per-record fields; the record wins."""
    fields = get_context_dict()
    for key in RECORD_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Example output:
        {"timestamp": "...", "level": "WARNING", "logger": "erpsync.realtime.session",
         "message": "...", "service": "erpsync", "channel": "crm:contacts"}
    """

    def __init__(self, service_name: str = "erpsync", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        if self.include_caller:
            entry["source"] = f"{record.module}:{record.lineno}"

        entry.update(log_fields(record))

        if record.exc_info and record.exc_info[0] is not None:
            entry["error_type"] = record.exc_info[0].__name__
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line output for terminals.

        12:00:01.250 WARNING  [crm:contacts] Reconnecting in 3.0s request_id=...

    The channel (or, failing that, the endpoint) becomes the bracketed
    tag; any other fields trail the message as ``key=value``.
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[2m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = False):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        fields = log_fields(record)
        tag = fields.pop("channel", None) or fields.pop("endpoint", None)

        level = f"{record.levelname:8s}"
        if self.use_color and record.levelname in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelname]}{level}{self.RESET}"

        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        parts = [clock, level]
        if tag:
            parts.append(f"[{tag}]")
        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in fields.items())

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(config: Optional[LoggingConfig] = None, stream: Optional[TextIO] = None) -> None:
    """Install one handler on the root logger.

    Without *config* the level and format come from settings
    (``ERPSYNC_LOG_LEVEL``, ``ERPSYNC_LOG_FORMAT``). Output goes to
    stderr so ``erpsync fetch`` can keep stdout for JSON results.
    """
    config = config or LoggingConfig.from_settings(get_settings())
    stream = stream or sys.stderr

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(config.service_name, config.include_caller)
    else:
        formatter = ConsoleFormatter(use_color=stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(config.level.value)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
