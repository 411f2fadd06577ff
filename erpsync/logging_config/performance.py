"""Performance Logging.

Decorator and timer for REST round trips and cache refreshes; both log
slow operations at WARNING.
"""

import functools
import inspect
import logging
import time
from typing import Any, Callable, Optional

from erpsync.logging_config.config import DEFAULT_LOGGING_CONFIG

logger = logging.getLogger(__name__)


def log_performance(
    threshold_ms: Optional[float] = None,
    logger_name: Optional[str] = None,
) -> Callable:
    """Decorator that logs how long a coroutine function takes.

    Every call is logged at DEBUG, calls above the threshold at WARNING
    and failures at ERROR (the exception still propagates).

    Example:
        @log_performance(threshold_ms=500)
        async def fetch(self, params=None):
            ...
    """
    if threshold_ms is None:
        threshold_ms = DEFAULT_LOGGING_CONFIG.slow_threshold_ms

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_performance expects a coroutine function, got {func!r}")
        _logger = logging.getLogger(logger_name or func.__module__)
        func_name = func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                _logger.error(
                    f"{func_name} failed after {duration_ms:.1f}ms: {type(exc).__name__}",
                    extra={"duration_ms": round(duration_ms, 2)},
                )
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                extra = {"duration_ms": round(duration_ms, 2)}
                if duration_ms >= threshold_ms:
                    _logger.warning(f"Slow operation: {func_name} took {duration_ms:.1f}ms", extra=extra)
                else:
                    _logger.debug(f"{func_name} completed in {duration_ms:.1f}ms", extra=extra)

        return wrapper

    return decorator


class PerformanceTimer:
    """Context manager for timing code blocks.

    Example:
        with PerformanceTimer("GET /crm/contacts") as timer:
            response = await client.get(url)
        print(f"Request took {timer.duration_ms:.1f}ms")
    """

    def __init__(
        self,
        operation_name: str,
        threshold_ms: Optional[float] = None,
        logger_name: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.threshold_ms = threshold_ms or DEFAULT_LOGGING_CONFIG.slow_threshold_ms
        self.start_time: float = 0
        self.duration_ms: float = 0
        self._logger = logging.getLogger(logger_name) if logger_name else logger

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        extra = {"duration_ms": round(self.duration_ms, 2)}

        if exc_type is not None:
            self._logger.error(
                f"{self.operation_name} failed after {self.duration_ms:.1f}ms: {exc_type.__name__}",
                extra=extra,
            )
        elif self.duration_ms >= self.threshold_ms:
            self._logger.warning(
                f"Slow operation: {self.operation_name} took {self.duration_ms:.1f}ms",
                extra=extra,
            )
        else:
            self._logger.debug(
                f"{self.operation_name} completed in {self.duration_ms:.1f}ms",
                extra=extra,
            )
