"""Puzzle numbering from a fixed launch date - no external dependencies."""

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Optional

from ..errors import InvalidArgument

DEFAULT_LAUNCH_DATE = date(2025, 8, 15)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class MonthRange:
    """Puzzle numbers available in one calendar month."""

    start: int
    end: int
    count: int


class PuzzleClock:
    """
    Maps calendar days in the player's timezone onto puzzle numbers.

    Puzzle 1 is the launch date; puzzle N is the Nth local day on or after it.
    "Today" comes from an injected provider so the clock never consults a
    network time source and tests can pin the date.
    """

    def __init__(self, today_provider: Callable[[], date], launch_date: date = DEFAULT_LAUNCH_DATE):
        """
        Initialize puzzle clock.

        Args:
            today_provider: Returns the current local calendar date
            launch_date: Date of puzzle #1
        """
        self._today = today_provider
        self.launch_date = launch_date

    @staticmethod
    def parse_date(iso_date: str) -> date:
        """Parse a strict YYYY-MM-DD string."""
        if not isinstance(iso_date, str) or not _DATE_PATTERN.match(iso_date):
            raise InvalidArgument(f"Invalid date format: {iso_date!r}. Expected YYYY-MM-DD.")
        try:
            return date.fromisoformat(iso_date)
        except ValueError as e:
            raise InvalidArgument(f"Invalid date: {iso_date!r}") from e

    @classmethod
    def is_valid_date_string(cls, iso_date: str) -> bool:
        try:
            cls.parse_date(iso_date)
            return True
        except InvalidArgument:
            return False

    def today(self) -> date:
        return self._today()

    def current_date_string(self) -> str:
        return self.today().isoformat()

    def current_puzzle_number(self) -> int:
        """Puzzle number for today, never less than 1."""
        return max(1, (self.today() - self.launch_date).days + 1)

    def date_for_puzzle_number(self, number: int) -> str:
        if not isinstance(number, int) or isinstance(number, bool) or number < 1:
            raise InvalidArgument(f"Invalid puzzle number: {number!r}. Must be a positive integer.")
        return (self.launch_date + timedelta(days=number - 1)).isoformat()

    def puzzle_number_for_date(self, iso_date: str) -> int:
        """Puzzle number for a date; dates before launch map to puzzle 1."""
        day = self.parse_date(iso_date)
        if day < self.launch_date:
            return 1
        return (day - self.launch_date).days + 1

    def range_for_month(self, year: int, month: int) -> Optional[MonthRange]:
        """
        Puzzle numbers for a calendar month (month is 1-12).

        Returns None when the month lies wholly before launch or wholly in the
        future; the end is clamped to today's puzzle.
        """
        if not 1 <= month <= 12:
            raise InvalidArgument(f"Month must be 1-12, got {month}")

        first_day = date(year, month, 1)
        last_day = date(year, month, monthrange(year, month)[1])
        if last_day < self.launch_date:
            return None

        start = 1 if first_day < self.launch_date else self.puzzle_number_for_date(first_day.isoformat())
        end = min(self.puzzle_number_for_date(last_day.isoformat()), self.current_puzzle_number())
        if end < start:
            return None
        return MonthRange(start=start, end=end, count=end - start + 1)

    def yesterday_of(self, iso_date: str) -> str:
        return (self.parse_date(iso_date) - timedelta(days=1)).isoformat()

    def is_today(self, iso_date: str) -> bool:
        return iso_date == self.current_date_string()

    def is_puzzle_available(self, number: int) -> bool:
        """Future puzzles are locked."""
        return 1 <= number <= self.current_puzzle_number()

    def display_date(self, number: int) -> str:
        """Human readable date, e.g. "Aug 15, 2025"."""
        day = self.parse_date(self.date_for_puzzle_number(number))
        return f"{day.strftime('%b')} {day.day}, {day.year}"

    def days_between(self, earlier: str, later: str) -> int:
        return (self.parse_date(later) - self.parse_date(earlier)).days
