"""Shared fakes for the engine tests."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple

import pytest

from daily_alchemy.application.interfaces import IClock, ICombinationSource, SourceElement
from daily_alchemy.application.services import (
    AlchemyEngine,
    EngineContext,
    EngineSettings,
    MemoryKeyValueStore,
    NullLoggingService,
    RetryPolicy,
    StaticPuzzleSource,
    StorageService,
)
from daily_alchemy.domain.errors import CombinationRefused, SourceTransientError
from daily_alchemy.domain.models import canonical_name
from daily_alchemy.domain.services import PuzzleClock

TODAY = "2025-08-20"

SWAMP_RULES: Dict[FrozenSet[str], Tuple[str, str]] = {
    frozenset({"fire", "water"}): ("Steam", "♨️"),
    frozenset({"air", "water"}): ("Rain", "🌧️"),
    frozenset({"earth", "water"}): ("Mud", "🟤"),
    frozenset({"earth", "rain"}): ("Plant", "🌱"),
    frozenset({"mud", "plant"}): ("Swamp", "🐊"),
}

SWAMP_PUZZLE = {
    "target": "Swamp",
    "targetGlyph": "🐊",
    "parMoves": 4,
    "timeLimitSeconds": 600,
    "hints": 4,
    "solutionPath": [
        {"elementA": "Earth", "elementB": "Water", "result": "Mud"},
        {"elementA": "Air", "elementB": "Water", "result": "Rain"},
        {"elementA": "Earth", "elementB": "Rain", "result": "Plant"},
        {"elementA": "Mud", "elementB": "Plant", "result": "Swamp"},
    ],
}


class ScriptedSource(ICombinationSource):
    """
    Combination source driven by a rule table.

    `failures` holds how many transient errors a pair raises before answering;
    `first` lists products reported as global first discoveries; `gate` holds
    every call until it is set.
    """

    def __init__(
        self,
        rules: Optional[Dict[FrozenSet[str], Tuple[str, str]]] = None,
        failures: Optional[Dict[FrozenSet[str], int]] = None,
        first: Tuple[str, ...] = (),
    ):
        self.rules = dict(SWAMP_RULES if rules is None else rules)
        self.failures = dict(failures or {})
        self.first = {canonical_name(name) for name in first}
        self.calls: List[Tuple[str, str]] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    @staticmethod
    def pair(name_a: str, name_b: str) -> FrozenSet[str]:
        return frozenset({canonical_name(name_a), canonical_name(name_b)})

    async def combine(self, name_a: str, name_b: str) -> SourceElement:
        self.calls.append((name_a, name_b))
        if self.gate is not None:
            await self.gate.wait()

        key = self.pair(name_a, name_b)
        if self.failures.get(key, 0) > 0:
            self.failures[key] -= 1
            raise SourceTransientError("503 from combination service")
        if key not in self.rules:
            raise CombinationRefused(f"{name_a} + {name_b} has no product")

        name, glyph = self.rules[key]
        return SourceElement(name=name, glyph=glyph, is_global_first_discovery=canonical_name(name) in self.first)

    async def close(self) -> None:
        self.closed = True


class FixedClock(IClock):
    """Clock pinned to a moment; `advance` moves wall and monotonic time together."""

    def __init__(self, today: str = TODAY):
        self._now = datetime.fromisoformat(f"{today}T09:00:00").replace(tzinfo=timezone.utc)
        self._monotonic = 1000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        self._monotonic += seconds

    def set_today(self, iso_date: str) -> None:
        self._now = datetime.fromisoformat(f"{iso_date}T09:00:00").replace(tzinfo=timezone.utc)


def memory_storage(quota_bytes: Optional[int] = None) -> StorageService:
    return StorageService([MemoryKeyValueStore(quota_bytes=quota_bytes)], NullLoggingService())


def make_engine(
    source: Optional[ScriptedSource] = None,
    clock: Optional[FixedClock] = None,
    storage: Optional[StorageService] = None,
    puzzle: Optional[dict] = None,
    max_retries: int = 3,
) -> AlchemyEngine:
    clock = clock or FixedClock()
    puzzle_clock = PuzzleClock(clock.today)
    puzzle_source = StaticPuzzleSource(
        puzzles={TODAY: dict(puzzle or SWAMP_PUZZLE)},
        puzzle_clock=puzzle_clock,
        templates=[dict(puzzle or SWAMP_PUZZLE)],
    )
    context = EngineContext(
        storage=storage or memory_storage(),
        combination_source=source or ScriptedSource(),
        puzzle_source=puzzle_source,
        clock=clock,
        logging_service=NullLoggingService(),
    )
    return AlchemyEngine(context, EngineSettings(retry_policy=RetryPolicy.immediate(max_retries=max_retries)))


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def source():
    return ScriptedSource()


@pytest.fixture
def launch():
    return date(2025, 8, 15)
