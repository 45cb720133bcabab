"""Logging service implementation."""

import asyncio
import functools
import sys
import time
from datetime import datetime
from typing import Callable, Optional, TextIO

from daily_alchemy.application.interfaces import ILoggingService

LEVEL_HIERARCHY = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3}
LEVEL_ICONS = {"DEBUG": "🔍", "INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌"}


class LoggingService(ILoggingService):
    """
    Console logging with timestamps and levels.

    Includes timing functionality for performance monitoring.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        stream: Optional[TextIO] = None,
        now_provider: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize logging service.

        Args:
            log_level: Minimum log level to output (DEBUG, INFO, WARNING, ERROR)
            stream: Where lines go (stdout when None)
            now_provider: Source of the timestamp shown on each line
        """
        self.log_level = log_level.upper()
        self._stream = stream
        self._now = now_provider

    def is_enabled(self, level: str) -> bool:
        return LEVEL_HIERARCHY.get(level.upper(), 1) >= LEVEL_HIERARCHY.get(self.log_level, 1)

    def log(self, level: str, message: str) -> None:
        """Log a message at the specified level."""
        level = level.upper()

        if not self.is_enabled(level):
            return

        timestamp = self._now().strftime("%H:%M:%S")
        icon = LEVEL_ICONS.get(level, "📝")

        print(f"[{timestamp}] {icon} {level}: {message}", file=self._stream or sys.stdout)

    def debug(self, message: str) -> None:
        """Log debug message."""
        self.log("DEBUG", message)

    def info(self, message: str) -> None:
        """Log info message."""
        self.log("INFO", message)

    def warning(self, message: str) -> None:
        """Log warning message."""
        self.log("WARNING", message)

    def error(self, message: str) -> None:
        """Log error message."""
        self.log("ERROR", message)

    def time_operation(self, operation_name: str):
        """Context manager for timing operations."""
        return TimingContext(self, operation_name)


class NullLoggingService(ILoggingService):
    """Discards everything; used when embedding the engine and in tests."""

    def is_enabled(self, level: str) -> bool:
        return False

    def log(self, level: str, message: str) -> None:
        pass

    def debug(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def time_operation(self, operation_name: str):
        return TimingContext(self, operation_name)


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, logging_service: ILoggingService, operation_name: str):
        """
        Initialize timing context.

        Args:
            logging_service: Service for logging results
            operation_name: Name of operation being timed
        """
        self.logger = logging_service
        self.operation_name = operation_name
        self.start_time = None

    def __enter__(self):
        """Start timing."""
        self.start_time = time.perf_counter()
        self.logger.debug(f"⏱️ Starting {self.operation_name}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """End timing and log result."""
        if self.start_time is not None:
            execution_time = time.perf_counter() - self.start_time

            if exc_type is None:
                self.logger.debug(f"✅ {self.operation_name} completed in {execution_time:.3f}s")
            else:
                self.logger.error(f"❌ {self.operation_name} failed after {execution_time:.3f}s: {exc_val}")


def timing_decorator(operation_name: str):
    """Decorator to time method execution (sync or async) and log results."""

    def decorator(func):
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                logger = getattr(self, "logger", None)
                if not logger:
                    return await func(self, *args, **kwargs)
                with TimingContext(logger, operation_name):
                    return await func(self, *args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            logger = getattr(self, "logger", None)
            if not logger:
                return func(self, *args, **kwargs)
            with TimingContext(logger, operation_name):
                return func(self, *args, **kwargs)

        return wrapper

    return decorator
