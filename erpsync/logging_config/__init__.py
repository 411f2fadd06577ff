"""Structured Logging & Context Binding.

Provides structured JSON logging, request/channel context propagation,
and request timing for erpsync.
"""

from erpsync.logging_config.config import LogFormat, LoggingConfig, LogLevel
from erpsync.logging_config.context import LogContext, generate_request_id
from erpsync.logging_config.performance import PerformanceTimer, log_performance
from erpsync.logging_config.setup import ConsoleFormatter, StructuredFormatter, configure_logging

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ConsoleFormatter",
    "LogContext",
    "PerformanceTimer",
    "StructuredFormatter",
    "configure_logging",
    "generate_request_id",
    "log_performance",
]
