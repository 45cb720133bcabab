"""Domain models for per-day and aggregate statistics."""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class DayStats:
    """Outcome of one completed puzzle day."""

    completed: bool = True
    time_seconds: int = 0
    moves: int = 0
    par_moves: int = 0
    hints_used: int = 0
    first_discoveries: int = 0
    discoveries: int = 0
    perfect_solve: bool = False
    is_archive: bool = False
    mistakes: int = 0
    checks: int = 0
    reveals: int = 0
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "DayStats":
        return cls(
            completed=bool(data.get("completed", True)),
            time_seconds=int(data.get("timeSeconds") or 0),
            moves=int(data.get("moves") or 0),
            par_moves=int(data.get("parMoves") or 0),
            hints_used=int(data.get("hintsUsed") or 0),
            first_discoveries=int(data.get("firstDiscoveries") or 0),
            discoveries=int(data.get("discoveries") or 0),
            perfect_solve=bool(data.get("perfectSolve", False)),
            is_archive=bool(data.get("isArchive", False)),
            mistakes=int(data.get("mistakes") or 0),
            checks=int(data.get("checks") or 0),
            reveals=int(data.get("reveals") or 0),
            timestamp=str(data.get("timestamp") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "timeSeconds": self.time_seconds,
            "moves": self.moves,
            "parMoves": self.par_moves,
            "hintsUsed": self.hints_used,
            "firstDiscoveries": self.first_discoveries,
            "discoveries": self.discoveries,
            "perfectSolve": self.perfect_solve,
            "isArchive": self.is_archive,
            "mistakes": self.mistakes,
            "checks": self.checks,
            "reveals": self.reveals,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AggregateStats:
    """
    Aggregate statistics for one game type.

    Totals are always derivable from `completed_puzzles`; streak fields are not,
    because today's date decides whether a streak is still alive.
    """

    total_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_hints_used: int = 0
    perfect_solves: int = 0
    average_time: float = 0.0
    best_time: Optional[int] = None
    first_discoveries: int = 0
    total_moves: int = 0
    total_discoveries: int = 0
    under_par: int = 0
    at_par: int = 0
    over_par: int = 0
    completed_puzzles: Dict[str, DayStats] = field(default_factory=dict)
    last_played_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AggregateStats":
        best_time = data.get("bestTime")
        return cls(
            total_completed=int(data.get("totalCompleted") or 0),
            current_streak=int(data.get("currentStreak") or 0),
            longest_streak=int(data.get("longestStreak") or 0),
            total_hints_used=int(data.get("totalHintsUsed") or 0),
            perfect_solves=int(data.get("perfectSolves") or 0),
            average_time=float(data.get("averageTime") or 0),
            best_time=int(best_time) if best_time else None,
            first_discoveries=int(data.get("firstDiscoveries") or 0),
            total_moves=int(data.get("totalMoves") or 0),
            total_discoveries=int(data.get("totalDiscoveries") or 0),
            under_par=int(data.get("underPar") or 0),
            at_par=int(data.get("atPar") or 0),
            over_par=int(data.get("overPar") or 0),
            completed_puzzles={
                date: DayStats.from_dict(day) for date, day in (data.get("completedPuzzles") or {}).items()
            },
            last_played_date=data.get("lastPlayedDate") or None,
        )

    def to_dict(self) -> dict:
        return {
            "totalCompleted": self.total_completed,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "totalHintsUsed": self.total_hints_used,
            "perfectSolves": self.perfect_solves,
            "averageTime": self.average_time,
            "bestTime": self.best_time,
            "firstDiscoveries": self.first_discoveries,
            "totalMoves": self.total_moves,
            "totalDiscoveries": self.total_discoveries,
            "underPar": self.under_par,
            "atPar": self.at_par,
            "overPar": self.over_par,
            "completedPuzzles": {date: day.to_dict() for date, day in sorted(self.completed_puzzles.items())},
            "lastPlayedDate": self.last_played_date,
        }
