"""Domain model for a single puzzle playthrough."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set, Tuple

from .combination import CombinationResult, PathStep
from .discovery_bank import DiscoveryBank
from .element import Element
from .puzzle import Puzzle, SolutionStep


class SessionStatus(Enum):
    """States of the session state machine."""

    LOADING = "loading"
    WELCOME = "welcome"
    PLAYING = "playing"
    ADMIRE = "admire"  # Target found, waiting for acknowledgement
    COMPLETE = "complete"
    GAME_OVER = "game_over"
    ERROR = "error"

    @property
    def is_finished(self) -> bool:
        return self in (SessionStatus.COMPLETE, SessionStatus.GAME_OVER)


@dataclass(frozen=True)
class PendingHint:
    """The step a hint pointed at; a consecutive hint fills the second slot."""

    step: SolutionStep
    first: str
    second: str


@dataclass(frozen=True)
class CompletionSummary:
    """What the completion screen shows."""

    puzzle_number: int
    target: str
    elapsed_seconds: int
    moves: int
    par_moves: int
    par_comparison: str
    hints_used: int
    first_discoveries: int
    congratulation: str
    is_first_attempt: bool
    unlocked_achievements: Tuple[str, ...] = ()


@dataclass
class SessionState:
    """
    Mutable state of one playthrough.

    Owned by a GameSession; commands hand out copies via `view()`.
    """

    status: SessionStatus = SessionStatus.LOADING
    puzzle: Optional[Puzzle] = None
    target: Optional[Element] = None
    par_moves: int = 0
    time_limit: Optional[int] = None
    started_at: Optional[datetime] = None
    elapsed: int = 0
    moves: int = 0
    hints_remaining: int = 0
    hints_used: int = 0
    hints_used_positions: Set[int] = field(default_factory=set)
    selection_a: Optional[Element] = None
    selection_b: Optional[Element] = None
    last_result: Optional[CombinationResult] = None
    combination_error: Optional[str] = None
    combination_path: List[PathStep] = field(default_factory=list)
    recent_elements: List[Element] = field(default_factory=list)
    free_play_mode: bool = False
    is_combining: bool = False
    is_paused: bool = False
    has_saved_progress: bool = False
    is_first_attempt: bool = True
    first_discoveries: int = 0
    pending_hint: Optional[PendingHint] = None
    bank: DiscoveryBank = field(default_factory=DiscoveryBank.with_starters)
    completion: Optional[CompletionSummary] = None
    error_message: Optional[str] = None

    @property
    def puzzle_date(self) -> Optional[str]:
        return self.puzzle.date if self.puzzle else None

    @property
    def is_timed(self) -> bool:
        return self.time_limit is not None and not self.free_play_mode

    @property
    def slots_full(self) -> bool:
        return self.selection_a is not None and self.selection_b is not None

    @property
    def time_remaining(self) -> Optional[int]:
        if not self.is_timed:
            return None
        return max(0, self.time_limit - self.elapsed)

    def view(self) -> "SessionState":
        """Copy safe to hand to observers; the bank is shared because it only grows."""
        return replace(
            self,
            hints_used_positions=set(self.hints_used_positions),
            combination_path=list(self.combination_path),
            recent_elements=list(self.recent_elements),
        )

    def clear_slots(self) -> None:
        self.selection_a = None
        self.selection_b = None

    def to_snapshot(self) -> dict:
        """Persistent projection written after every mutation."""
        return {
            "status": self.status.value,
            "puzzleNumber": self.puzzle.number if self.puzzle else None,
            "puzzleDate": self.puzzle_date,
            "elapsed": self.elapsed,
            "moves": self.moves,
            "hintsRemaining": self.hints_remaining,
            "hintsUsed": self.hints_used,
            "hintsUsedPositions": sorted(self.hints_used_positions),
            "combinationPath": [step.to_dict() for step in self.combination_path],
            "recentElements": [element.name for element in self.recent_elements],
            "elementBank": self.bank.to_records(),
            "firstDiscoveries": self.first_discoveries,
            "freePlayMode": self.free_play_mode,
        }


@dataclass(frozen=True)
class SavedProgress:
    """Decoded session snapshot."""

    status: SessionStatus
    puzzle_date: str
    elapsed: int
    moves: int
    hints_remaining: int
    hints_used: int
    hints_used_positions: Tuple[int, ...]
    combination_path: Tuple[PathStep, ...]
    recent_names: Tuple[str, ...]
    bank_records: Tuple[dict, ...]
    first_discoveries: int
    free_play_mode: bool

    @property
    def is_finished(self) -> bool:
        return self.status in (SessionStatus.ADMIRE, SessionStatus.COMPLETE)

    @classmethod
    def from_snapshot(cls, data: dict) -> "SavedProgress":
        """Decode a snapshot; raises ValueError/TypeError/KeyError on bad shape."""
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        bank_records = data.get("elementBank") or []
        if not all(isinstance(record, dict) and record.get("name") for record in bank_records):
            raise ValueError("element bank contains malformed records")
        return cls(
            status=SessionStatus(data["status"]),
            puzzle_date=str(data.get("puzzleDate") or ""),
            elapsed=max(0, int(data.get("elapsed") or 0)),
            moves=max(0, int(data.get("moves") or 0)),
            hints_remaining=max(0, int(data.get("hintsRemaining") or 0)),
            hints_used=max(0, int(data.get("hintsUsed") or 0)),
            hints_used_positions=tuple(int(p) for p in data.get("hintsUsedPositions") or []),
            combination_path=tuple(PathStep.from_dict(step) for step in data.get("combinationPath") or []),
            recent_names=tuple(str(name) for name in data.get("recentElements") or []),
            bank_records=tuple(bank_records),
            first_discoveries=max(0, int(data.get("firstDiscoveries") or 0)),
            free_play_mode=bool(data.get("freePlayMode", False)),
        )
