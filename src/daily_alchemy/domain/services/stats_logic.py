"""Business logic for statistics, streaks and sync merges."""

from dataclasses import replace
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from ..models.stats import AggregateStats, DayStats


def _previous_day(iso_date: str) -> str:
    return (date.fromisoformat(iso_date) - timedelta(days=1)).isoformat()


def _min_positive(a: int, b: int) -> int:
    positives = [value for value in (a, b) if value > 0]
    return min(positives) if positives else 0


def _earliest(a: str, b: str) -> str:
    stamps = [stamp for stamp in (a, b) if stamp]
    return min(stamps) if stamps else ""


class StatsLogic:
    """
    Pure statistics rules.

    Totals are always recomputed from the per-day map; only streak fields carry
    state that the map cannot reproduce on its own.
    """

    @classmethod
    def recompute_totals(cls, stats: AggregateStats) -> AggregateStats:
        """Rebuild every total from `completed_puzzles`."""
        days = [day for day in stats.completed_puzzles.values() if day.completed]
        times = [day.time_seconds for day in days if day.time_seconds > 0]
        with_par = [day for day in days if day.par_moves > 0]

        return replace(
            stats,
            total_completed=len(days),
            total_hints_used=sum(day.hints_used for day in days),
            perfect_solves=sum(1 for day in days if day.perfect_solve),
            average_time=round(sum(times) / len(times), 2) if times else 0.0,
            best_time=min(times) if times else None,
            first_discoveries=sum(day.first_discoveries for day in days),
            total_moves=sum(day.moves for day in days),
            total_discoveries=sum(day.discoveries for day in days),
            under_par=sum(1 for day in with_par if day.moves < day.par_moves),
            at_par=sum(1 for day in with_par if day.moves == day.par_moves),
            over_par=sum(1 for day in with_par if day.moves > day.par_moves),
        )

    @classmethod
    def next_streak(cls, current_streak: int, last_played: Optional[str], played: str) -> int:
        """Streak after a daily completion on `played`."""
        if last_played is None:
            return 1
        if last_played >= played:
            return current_streak
        if last_played == _previous_day(played):
            return current_streak + 1
        return 1

    @classmethod
    def record_completion(cls, stats: AggregateStats, puzzle_date: str, day: DayStats) -> AggregateStats:
        """
        Fold one first-attempt completion into the aggregate.

        `puzzle_date` is the canonical daily date: today for the daily puzzle, the
        puzzle's own date for archive play. Archive completions never touch the
        streak or `last_played_date`.
        """
        existing = stats.completed_puzzles.get(puzzle_date)
        entry = cls.merge_day(existing, day) if existing else day
        completed = dict(stats.completed_puzzles)
        completed[puzzle_date] = entry
        updated = cls.recompute_totals(replace(stats, completed_puzzles=completed))

        if day.is_archive:
            return updated

        streak = cls.next_streak(stats.current_streak, stats.last_played_date, puzzle_date)
        last_played = max(stats.last_played_date or puzzle_date, puzzle_date)
        return replace(
            updated,
            current_streak=streak,
            longest_streak=max(stats.longest_streak, streak),
            last_played_date=last_played,
        )

    @classmethod
    def streak_as_of(cls, stats: AggregateStats, today: str) -> int:
        """Displayed streak: zero once a whole day has been missed."""
        if not stats.last_played_date:
            return 0
        if stats.last_played_date in (today, _previous_day(today)):
            return stats.current_streak
        return 0

    @staticmethod
    def merge_day(a: DayStats, b: DayStats) -> DayStats:
        """Combine two records of the same day: best time, fewest aids, most discoveries."""
        return DayStats(
            completed=a.completed or b.completed,
            time_seconds=_min_positive(a.time_seconds, b.time_seconds),
            moves=min(a.moves, b.moves),
            par_moves=max(a.par_moves, b.par_moves),
            hints_used=min(a.hints_used, b.hints_used),
            first_discoveries=max(a.first_discoveries, b.first_discoveries),
            discoveries=max(a.discoveries, b.discoveries),
            perfect_solve=a.perfect_solve or b.perfect_solve,
            is_archive=a.is_archive and b.is_archive,
            mistakes=min(a.mistakes, b.mistakes),
            checks=min(a.checks, b.checks),
            reveals=min(a.reveals, b.reveals),
            timestamp=_earliest(a.timestamp, b.timestamp),
        )

    @staticmethod
    def _runs(dates: Iterable[str]) -> List[List[str]]:
        runs: List[List[str]] = []
        for day in sorted(set(dates)):
            if runs and _previous_day(day) == runs[-1][-1]:
                runs[-1].append(day)
            else:
                runs.append([day])
        return runs

    @classmethod
    def merge(cls, x: AggregateStats, y: AggregateStats) -> AggregateStats:
        """
        Reconcile two copies of the same player's stats (e.g. local and a sync mirror).

        Commutative and idempotent: per-day entries are merged field-wise, totals
        are recomputed from the union and never summed across sources.
        """
        merged_days: Dict[str, DayStats] = dict(x.completed_puzzles)
        for puzzle_date, day in y.completed_puzzles.items():
            merged_days[puzzle_date] = cls.merge_day(merged_days[puzzle_date], day) if puzzle_date in merged_days else day

        daily_dates = [d for d, day in merged_days.items() if day.completed and not day.is_archive]
        candidates = [d for d in (x.last_played_date, y.last_played_date) if d] + daily_dates
        last_played = max(candidates) if candidates else None

        runs = cls._runs(daily_dates)
        computed_current = len(runs[-1]) if runs and runs[-1][-1] == last_played else 0
        current = max(
            [computed_current]
            + [source.current_streak for source in (x, y) if source.last_played_date == last_played]
        )
        computed_longest = max((len(run) for run in runs), default=0)
        longest = max(computed_longest, x.longest_streak, y.longest_streak, current)

        return cls.recompute_totals(
            AggregateStats(
                current_streak=current,
                longest_streak=longest,
                completed_puzzles=merged_days,
                last_played_date=last_played,
            )
        )

    @classmethod
    def recover_from_days(cls, completed_puzzles: Dict[str, DayStats]) -> AggregateStats:
        """Rebuild an aggregate when only the per-day map survived."""
        return cls.merge(AggregateStats(), AggregateStats(completed_puzzles=dict(completed_puzzles)))
