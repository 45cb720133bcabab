"""Interface for wall and monotonic time."""

from abc import ABC, abstractmethod
from datetime import date, datetime


class IClock(ABC):
    """Time as seen by the engine, in the player's timezone."""

    @abstractmethod
    def now(self) -> datetime:
        """Aware datetime in the player's timezone."""

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds from an arbitrary origin; never goes backwards."""

    def today(self) -> date:
        """Local calendar date."""
        return self.now().date()
