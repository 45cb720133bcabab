"""Achievement thresholds and unlock checking."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from ..models.stats import AggregateStats


class AchievementKind(Enum):
    STREAK = "streak"
    WINS = "wins"
    FIRST_DISCOVERIES = "first"


STREAK_THRESHOLDS: Tuple[int, ...] = (
    3, 5, 7, 10, 15, 20, 25, 30, 40, 50, 60, 75, 90, 100, 125, 150, 175, 200, 250, 300, 365, 500, 1000,
)
WINS_THRESHOLDS: Tuple[int, ...] = (1, 10, 25, 50, 100, 250, 500, 1000)
FIRST_DISCOVERY_THRESHOLDS: Tuple[int, ...] = (1, 10, 50, 100)


@dataclass(frozen=True)
class Achievement:
    """One threshold achievement."""

    kind: AchievementKind
    threshold: int

    @property
    def achievement_id(self) -> str:
        return f"alchemy.{self.kind.value}.{self.threshold}"

    @property
    def title(self) -> str:
        if self.kind == AchievementKind.STREAK:
            return f"{self.threshold}-Day Streak"
        if self.kind == AchievementKind.WINS:
            return "First Brew" if self.threshold == 1 else f"{self.threshold} Puzzles Solved"
        return "World First" if self.threshold == 1 else f"{self.threshold} First Discoveries"


@dataclass(frozen=True)
class AchievementUnlocked:
    """One-shot notification for a newly reached threshold."""

    achievement: Achievement
    value: int

    @property
    def achievement_id(self) -> str:
        return self.achievement.achievement_id


ALL_ACHIEVEMENTS: Tuple[Achievement, ...] = (
    tuple(Achievement(AchievementKind.STREAK, n) for n in STREAK_THRESHOLDS)
    + tuple(Achievement(AchievementKind.WINS, n) for n in WINS_THRESHOLDS)
    + tuple(Achievement(AchievementKind.FIRST_DISCOVERIES, n) for n in FIRST_DISCOVERY_THRESHOLDS)
)


class AchievementRules:
    """Threshold checks against aggregate stats."""

    @staticmethod
    def value_for(kind: AchievementKind, stats: AggregateStats) -> int:
        if kind == AchievementKind.STREAK:
            return max(stats.longest_streak, stats.current_streak)
        if kind == AchievementKind.WINS:
            return stats.total_completed
        return stats.first_discoveries

    @classmethod
    def qualifying(cls, stats: AggregateStats) -> List[Achievement]:
        """Every achievement the stats have reached, unlocked before or not."""
        return [a for a in ALL_ACHIEVEMENTS if cls.value_for(a.kind, stats) >= a.threshold]

    @classmethod
    def newly_unlocked(cls, stats: AggregateStats, already_unlocked: Iterable[str]) -> List[AchievementUnlocked]:
        seen = set(already_unlocked)
        return [
            AchievementUnlocked(achievement=a, value=cls.value_for(a.kind, stats))
            for a in cls.qualifying(stats)
            if a.achievement_id not in seen
        ]

    @classmethod
    def next_for(cls, kind: AchievementKind, stats: AggregateStats) -> Optional[Tuple[Achievement, int]]:
        """Next threshold of a kind and how far away it is."""
        value = cls.value_for(kind, stats)
        for achievement in ALL_ACHIEVEMENTS:
            if achievement.kind == kind and value < achievement.threshold:
                return achievement, achievement.threshold - value
        return None

    @staticmethod
    def progress(value: int, threshold: int) -> int:
        """Percent towards a threshold, capped at 100."""
        if value >= threshold:
            return 100
        return int(value * 100 / threshold)
