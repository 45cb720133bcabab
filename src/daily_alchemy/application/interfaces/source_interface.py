"""Interfaces for combination and puzzle sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from daily_alchemy.domain.models import Puzzle


@dataclass(frozen=True)
class SourceElement:
    """A product as reported by a combination source."""

    name: str
    glyph: str
    is_global_first_discovery: bool = False


class ICombinationSource(ABC):
    """
    Opaque producer of combination outcomes.

    `combine` returns a SourceElement, raises CombinationRefused when the pair
    cannot combine, and SourceTransientError when the request may succeed later.
    """

    @abstractmethod
    async def combine(self, name_a: str, name_b: str) -> SourceElement:
        """Combine two case-insensitive element names."""

    async def close(self) -> None:
        """Release transport resources."""


class IPuzzleSource(ABC):
    """Supplies the daily puzzle for a date."""

    @abstractmethod
    async def get_puzzle_for_date(self, iso_date: str) -> Puzzle:
        """Return the puzzle or raise PuzzleUnavailable."""

    async def close(self) -> None:
        """Release transport resources."""
