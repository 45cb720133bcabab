"""Interface for the engine's logging service."""

from abc import ABC, abstractmethod


class ILoggingService(ABC):
    """
    Logging contract shared by every engine service.

    Services receive an implementation by injection and keep it as `self.logger`.
    Levels are DEBUG, INFO, WARNING and ERROR; messages start with an emoji tag.
    """

    @abstractmethod
    def is_enabled(self, level: str) -> bool:
        """Whether a message at `level` would be written; lets callers skip costly summaries."""

    @abstractmethod
    def log(self, level: str, message: str) -> None:
        """Write a message at the given level if it passes the filter."""

    @abstractmethod
    def debug(self, message: str) -> None:
        """State transitions, cache hits, superseded writes."""

    @abstractmethod
    def info(self, message: str) -> None:
        """Puzzle loads, discoveries, solves, achievement unlocks."""

    @abstractmethod
    def warning(self, message: str) -> None:
        """Retries, storage tier fallback, unusable source data."""

    @abstractmethod
    def error(self, message: str) -> None:
        """Quarantined data, failed observers, unavailable puzzles."""

    @abstractmethod
    def time_operation(self, operation_name: str):
        """Context manager that logs how long an operation took."""
