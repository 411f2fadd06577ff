"""Logging Configuration.

Settings for structured logging, log levels, and output formats.
"""

from dataclasses import dataclass
from enum import Enum


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    slow_threshold_ms: float = 1000.0
    service_name: str = "erpsync"

    @classmethod
    def from_settings(cls, settings) -> "LoggingConfig":
        level = settings.log_level.upper()
        fmt = settings.log_format.lower()
        return cls(
            level=LogLevel(level) if level in LogLevel.__members__ else LogLevel.INFO,
            format=LogFormat(fmt) if fmt in [f.value for f in LogFormat] else LogFormat.JSON,
            slow_threshold_ms=settings.slow_request_ms,
        )


DEFAULT_LOGGING_CONFIG = LoggingConfig()
