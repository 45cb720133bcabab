"""Puzzle source backed by in-process puzzle data."""

import json
from pathlib import Path
from typing import Dict, List, Optional

from daily_alchemy.application.interfaces import IPuzzleSource
from daily_alchemy.domain.errors import InvalidArgument, PuzzleUnavailable
from daily_alchemy.domain.models import Puzzle, SolutionStep
from daily_alchemy.domain.services import GameRules, PuzzleClock


def _steps(*triples) -> List[dict]:
    return [SolutionStep(a, b, result).to_dict() for a, b, result in triples]


# Templates solvable with the built-in rule table; rotated by puzzle number.
DEFAULT_TEMPLATES: List[dict] = [
    {
        "target": "Swamp",
        "targetGlyph": "🐊",
        "parMoves": 4,
        "solutionPath": _steps(("Earth", "Water", "Mud"), ("Air", "Water", "Rain"), ("Earth", "Rain", "Plant"), ("Mud", "Plant", "Swamp")),
    },
    {
        "target": "Glass",
        "targetGlyph": "🥛",
        "parMoves": 4,
        "solutionPath": _steps(("Earth", "Fire", "Lava"), ("Lava", "Water", "Stone"), ("Stone", "Air", "Sand"), ("Sand", "Fire", "Glass")),
    },
    {
        "target": "Forest",
        "targetGlyph": "🌲",
        "parMoves": 6,
        "solutionPath": _steps(
            ("Air", "Water", "Rain"),
            ("Earth", "Rain", "Plant"),
            ("Air", "Fire", "Energy"),
            ("Energy", "Plant", "Tree"),
            ("Tree", "Tree", "Forest"),
        ),
    },
    {
        "target": "Electricity",
        "targetGlyph": "🔌",
        "parMoves": 5,
        "solutionPath": _steps(
            ("Earth", "Fire", "Lava"),
            ("Lava", "Water", "Stone"),
            ("Stone", "Fire", "Metal"),
            ("Air", "Fire", "Energy"),
            ("Metal", "Energy", "Electricity"),
        ),
    },
    {
        "target": "Storm",
        "targetGlyph": "⛈️",
        "parMoves": 4,
        "solutionPath": _steps(("Fire", "Water", "Steam"), ("Steam", "Air", "Cloud"), ("Air", "Fire", "Energy"), ("Cloud", "Energy", "Storm")),
    },
]


class StaticPuzzleSource(IPuzzleSource):
    """
    Serves puzzles from a date-keyed mapping.

    Dates without an explicit entry fall back to the rotating templates when a
    puzzle clock is supplied; otherwise they raise PuzzleUnavailable.
    """

    def __init__(
        self,
        puzzles: Optional[Dict[str, dict]] = None,
        puzzle_clock: Optional[PuzzleClock] = None,
        templates: Optional[List[dict]] = None,
        time_limit_seconds: Optional[int] = GameRules.TIME_LIMIT_SECONDS,
        default_hints: int = GameRules.DEFAULT_HINTS,
    ):
        self._puzzles = dict(puzzles or {})
        self.puzzle_clock = puzzle_clock
        self._templates = DEFAULT_TEMPLATES if templates is None else templates
        self.time_limit_seconds = time_limit_seconds
        self.default_hints = default_hints

    async def get_puzzle_for_date(self, iso_date: str) -> Puzzle:
        data = self._puzzles.get(iso_date)
        if data is not None and "number" not in data and self.puzzle_clock is not None:
            data = {"number": self.puzzle_clock.puzzle_number_for_date(iso_date), **data}
        if data is None:
            data = self._from_template(iso_date)
        if data is None:
            raise PuzzleUnavailable(f"No puzzle for {iso_date}")

        try:
            return Puzzle.from_dict({"date": iso_date, **data}, default_hints=self.default_hints)
        except InvalidArgument as e:
            raise PuzzleUnavailable(f"Puzzle data for {iso_date} is invalid: {e}") from e

    def _from_template(self, iso_date: str) -> Optional[dict]:
        if self.puzzle_clock is None or not self._templates:
            return None
        number = self.puzzle_clock.puzzle_number_for_date(iso_date)
        template = self._templates[(number - 1) % len(self._templates)]
        return {"number": number, "timeLimitSeconds": self.time_limit_seconds, **template}

    @classmethod
    def from_json_file(cls, path: str, **kwargs) -> "StaticPuzzleSource":
        """Load a {"YYYY-MM-DD": puzzle} object from a JSON file."""
        try:
            puzzles = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise InvalidArgument(f"Cannot load puzzles from {path}: {e}") from e
        if not isinstance(puzzles, dict):
            raise InvalidArgument(f"Puzzle file {path} must contain an object keyed by date")
        return cls(puzzles=puzzles, **kwargs)
