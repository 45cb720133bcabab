"""Domain model for daily puzzles."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..errors import InvalidArgument
from .element import DEFAULT_GLYPH, NAME_SEPARATOR, Element


@dataclass(frozen=True)
class SolutionStep:
    """One step of a reference solution: element_a + element_b -> result."""

    element_a: str
    element_b: str
    result: str

    @property
    def inputs(self) -> Tuple[str, str]:
        return (self.element_a, self.element_b)

    @classmethod
    def from_dict(cls, data: dict) -> "SolutionStep":
        try:
            return cls(
                element_a=data.get("elementA", data.get("element_a")),
                element_b=data.get("elementB", data.get("element_b")),
                result=data["result"],
            )
        except (KeyError, AttributeError) as e:
            raise InvalidArgument(f"Malformed solution step: {data!r}") from e

    def to_dict(self) -> dict:
        return {"elementA": self.element_a, "elementB": self.element_b, "result": self.result}


@dataclass(frozen=True)
class Puzzle:
    """
    A daily puzzle as supplied by a puzzle source.

    `time_limit_seconds` of None means the puzzle has no time limit. Par and hint
    budget come from puzzle data; the engine never computes them. `hints` of None
    means the puzzle does not state a budget and the session default applies.
    """

    number: int
    date: str
    target: str
    target_glyph: str = DEFAULT_GLYPH
    par_moves: int = 0
    time_limit_seconds: Optional[int] = None
    hints: Optional[int] = None
    solution_path: List[SolutionStep] = field(default_factory=list)

    def __post_init__(self):
        if self.number < 1:
            raise InvalidArgument(f"Puzzle number must be >= 1, got {self.number}")
        if not self.target or not self.target.strip():
            raise InvalidArgument("Puzzle target cannot be empty")
        if NAME_SEPARATOR in self.target:
            raise InvalidArgument(f"Puzzle target cannot contain {NAME_SEPARATOR!r}")
        if self.par_moves < 0 or (self.hints is not None and self.hints < 0):
            raise InvalidArgument("Par and hint budget cannot be negative")
        if self.time_limit_seconds is not None and self.time_limit_seconds <= 0:
            raise InvalidArgument("Time limit must be positive when present")

    @property
    def target_element(self) -> Element:
        return Element(name=self.target, glyph=self.target_glyph or DEFAULT_GLYPH)

    @property
    def has_time_limit(self) -> bool:
        return self.time_limit_seconds is not None

    @classmethod
    def from_dict(cls, data: dict, default_hints: Optional[int] = None) -> "Puzzle":
        """Create a Puzzle from source data (camelCase or snake_case keys)."""

        def pick(*names, default=None):
            for name in names:
                if data.get(name) is not None:
                    return data[name]
            return default

        time_limit = pick("timeLimitSeconds", "time_limit_seconds")
        hints = pick("hints", "hintCount", default=default_hints)
        try:
            return cls(
                number=int(pick("number", "puzzleNumber", default=0)),
                date=str(pick("date", "puzzleDate", default="")),
                target=pick("target", "targetElement", default=""),
                target_glyph=pick("targetGlyph", "targetEmoji", "target_glyph", default=DEFAULT_GLYPH),
                par_moves=int(pick("parMoves", "par_moves", default=0)),
                time_limit_seconds=int(time_limit) if time_limit else None,
                hints=None if hints is None else int(hints),
                solution_path=[SolutionStep.from_dict(step) for step in pick("solutionPath", "solution_path", default=[])],
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, InvalidArgument):
                raise
            raise InvalidArgument(f"Malformed puzzle data: {e}") from e

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "date": self.date,
            "target": self.target,
            "targetGlyph": self.target_glyph,
            "parMoves": self.par_moves,
            "timeLimitSeconds": self.time_limit_seconds,
            "hints": self.hints,
            "solutionPath": [step.to_dict() for step in self.solution_path],
        }
