"""Stats and streak ledger with achievement notification."""

import json
from typing import Dict, List, Optional, Tuple

from daily_alchemy.application.interfaces import ILoggingService
from daily_alchemy.domain.errors import DataCorruption
from daily_alchemy.domain.models import AggregateStats, DayStats
from daily_alchemy.domain.services import AchievementRules, AchievementUnlocked, StatsLogic

from .event_service import ACHIEVEMENT, EngineEvents
from .json_repository import JsonRepository

STATS_KEY = "alchemy_stats"
ACHIEVEMENTS_KEY = "alchemy_unlocked_achievements"


class StatsLedger:
    """
    Read-modify-write access to the player's aggregate stats.

    Stats change only on completion. A damaged stats blob is quarantined and
    rebuilt from whatever per-day entries can still be read.
    """

    def __init__(
        self,
        repository: JsonRepository,
        logging_service: ILoggingService,
        events: Optional[EngineEvents] = None,
    ):
        self.repository = repository
        self.logger = logging_service
        self.events = events
        self._stats: Optional[AggregateStats] = None
        self._unlocked: Optional[List[str]] = None

    async def load(self) -> AggregateStats:
        """Load stats, recovering from the per-day map when the aggregate is unreadable."""
        if self._stats is not None:
            return self._stats

        data = await self.repository.load(STATS_KEY, None)
        if data is None:
            self._stats = AggregateStats()
            return self._stats

        try:
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            self._stats = AggregateStats.from_dict(data)
        except (ValueError, TypeError, AttributeError) as e:
            self._stats = self._recover(data)
            await self.repository.quarantine(STATS_KEY, json.dumps(data, ensure_ascii=False), DataCorruption(STATS_KEY, str(e)))
            await self.repository.save(STATS_KEY, self._stats.to_dict())
            self.logger.warning(f"🩹 Stats rebuilt from {len(self._stats.completed_puzzles)} completed days")
        return self._stats

    def _recover(self, data) -> AggregateStats:
        days: Dict[str, DayStats] = {}
        completed = data.get("completedPuzzles") if isinstance(data, dict) else None
        if isinstance(completed, dict):
            for puzzle_date, entry in completed.items():
                try:
                    days[puzzle_date] = DayStats.from_dict(entry)
                except (ValueError, TypeError, AttributeError):
                    self.logger.debug(f"🩹 Dropping unreadable day {puzzle_date!r}")
        return StatsLogic.recover_from_days(days)

    async def save(self, stats: AggregateStats) -> None:
        self._stats = stats
        await self.repository.save(STATS_KEY, stats.to_dict())

    async def record(self, puzzle_date: str, day: DayStats) -> Tuple[AggregateStats, List[AchievementUnlocked]]:
        """Fold a first-attempt completion into the stats and check achievements."""
        stats = StatsLogic.record_completion(await self.load(), puzzle_date, day)
        await self.save(stats)
        self.logger.info(
            f"📊 Recorded {puzzle_date}: {stats.total_completed} completed, streak {stats.current_streak}"
            f"{' (archive)' if day.is_archive else ''}"
        )
        return stats, await self.check_achievements(stats)

    async def merge_mirror(self, mirror: AggregateStats) -> AggregateStats:
        """Reconcile with stats from an external mirror."""
        merged = StatsLogic.merge(await self.load(), mirror)
        await self.save(merged)
        self.logger.info(f"🔀 Merged mirror stats: {merged.total_completed} completed")
        return merged

    async def unlocked_ids(self) -> List[str]:
        if self._unlocked is None:
            data = await self.repository.load(ACHIEVEMENTS_KEY, [])
            self._unlocked = [str(item) for item in data] if isinstance(data, list) else []
        return list(self._unlocked)

    async def check_achievements(self, stats: AggregateStats) -> List[AchievementUnlocked]:
        """Emit each newly reached threshold once; the unlocked set is persisted."""
        unlocked = await self.unlocked_ids()
        fresh = AchievementRules.newly_unlocked(stats, unlocked)
        if not fresh:
            return []

        self._unlocked = unlocked + [item.achievement_id for item in fresh]
        await self.repository.save(ACHIEVEMENTS_KEY, self._unlocked)

        for item in fresh:
            self.logger.info(f"🏅 Achievement unlocked: {item.achievement.title} ({item.achievement_id})")
            if self.events is not None:
                self.events.emit(ACHIEVEMENT, item)
        return fresh
