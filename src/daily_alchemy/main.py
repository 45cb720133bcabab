#!/usr/bin/env python3
"""
Daily Alchemy - Main Entry Point.

Command line front end for the combination engine: puzzle numbering, a
line-oriented play loop, stats, share text and save import/export.
"""

import argparse
import asyncio
from pathlib import Path
from typing import Optional

from daily_alchemy.application.services import (
    AlchemyEngine,
    EngineSettings,
    GameSession,
    SystemClock,
    build_default_context,
)
from daily_alchemy.application.services.save_io import save_file_name
from daily_alchemy.config import config
from daily_alchemy.domain.errors import InputInvalid, InvalidArgument
from daily_alchemy.domain.models import BankOrder, SessionStatus
from daily_alchemy.domain.services import AchievementKind, AchievementRules, GameRules, PuzzleClock, StatsLogic

PLAY_HELP = """Commands:
  <element> + <element>   combine two elements (e.g. "water + fire")
  hint                    use a hint
  bank [query]            list discovered elements
  status                  show moves, hints and time
  quit                    leave (progress is saved)"""


def create_engine(rules_file: Optional[str] = None, puzzles_file: Optional[str] = None) -> AlchemyEngine:
    context = build_default_context(config, rules_file=rules_file, puzzles_file=puzzles_file)
    return AlchemyEngine(context, EngineSettings.from_config(config))


def create_puzzle_clock() -> PuzzleClock:
    return PuzzleClock(SystemClock(config.TIMEZONE or None).today, config.LAUNCH_DATE)


def print_status(session: GameSession) -> None:
    state = session.state
    timer = GameRules.format_time(state.elapsed)
    if state.time_remaining is not None:
        timer += f" ({GameRules.format_time(state.time_remaining)} left)"
    print(
        f"🎯 Target: {state.target.display_name}  🧮 Moves: {state.moves} (Par: {state.par_moves})"
        f"  💡 Hints: {state.hints_remaining}  ⏱️ {timer}"
    )


def print_completion(session: GameSession) -> None:
    summary = session.state.completion
    if summary is None:
        return
    print("\n" + "=" * 60)
    print(f"🎉 {summary.congratulation}")
    print("=" * 60)
    print(f"🏆 Made {summary.target} in {GameRules.format_time(summary.elapsed_seconds)}")
    print(f"🧮 {summary.moves} moves (Par: {summary.par_moves}, {summary.par_comparison})")
    if summary.hints_used:
        print(f"💡 Hints used: {summary.hints_used}")
    if summary.first_discoveries:
        print(f"🌟 First discoveries: {summary.first_discoveries}")
    for achievement_id in summary.unlocked_achievements:
        print(f"🏅 Unlocked: {achievement_id}")
    if not summary.is_first_attempt:
        print("📝 Replay - stats were not recorded")
    print("=" * 60)


async def play_loop(session: GameSession) -> None:
    """Read commands until the session finishes or the player quits."""
    print(PLAY_HELP)
    while session.state.status == SessionStatus.PLAYING:
        await session.tick()
        if session.state.status != SessionStatus.PLAYING:
            break
        print_status(session)

        line = (await asyncio.to_thread(input, "🧪 > ")).strip()
        if not line:
            continue
        command = line.lower()

        if command in ("quit", "exit", "q"):
            print("💾 Progress saved")
            return
        elif command == "hint":
            try:
                state = await session.use_hint()
            except InputInvalid as e:
                print(f"❌ {e}")
                continue
            picked = [e.name for e in (state.selection_a, state.selection_b) if e is not None]
            print(f"💡 Try: {' + '.join(picked) if picked else 'nothing new to suggest'}")
        elif command.startswith("bank"):
            query = line[4:].strip()
            elements = session.state.bank.search(query, BankOrder.NEWEST)
            print(" ".join(element.display_name for element in elements))
        elif command == "status":
            continue
        elif "+" in line:
            first, _, second = line.partition("+")
            try:
                session.clear_selections()
                session.select_element(first.strip())
                session.select_element(second.strip())
                state = await session.combine_selected()
            except InputInvalid as e:
                session.clear_selections()
                print(f"❌ {e}")
                continue

            if state.combination_error:
                print(f"💨 {state.combination_error}")
            elif state.last_result is not None and state.last_result.is_product:
                product = state.last_result.product
                tags = []
                if state.last_result.first_discovery:
                    tags.append("🌟 first discovery!")
                if state.last_result.cached:
                    tags.append("known")
                print(f"✨ {first.strip()} + {second.strip()} = {product.display_name} {' '.join(tags)}".rstrip())
        else:
            print("❓ Unknown command")
            print(PLAY_HELP)

    if session.state.status == SessionStatus.ADMIRE:
        await session.acknowledge_result()
    if session.state.status == SessionStatus.COMPLETE:
        print_completion(session)
        print()
        print(session.get_share_text())
    elif session.state.status == SessionStatus.GAME_OVER:
        print(f"⌛ {GameRules.game_over_message(session.state.puzzle.number)}")


async def run_play(date: Optional[str], free_play: bool, rules_file: Optional[str], puzzles_file: Optional[str]) -> int:
    async with create_engine(rules_file, puzzles_file) as engine:
        session = await engine.open_puzzle(date)
        state = session.state
        if state.status == SessionStatus.ERROR:
            print(f"❌ {state.error_message}")
            return 1

        print(f"🧪 Daily Alchemy #{state.puzzle.number} - {engine.puzzle_clock.display_date(state.puzzle.number)}")
        print(f"🎯 Make: {state.target.display_name}")

        if state.status == SessionStatus.COMPLETE:
            print("✅ Already solved")
            print_completion(session)
            print(session.get_share_text())
            return 0

        if state.has_saved_progress and not free_play:
            await session.resume_game()
            print("📂 Resumed saved progress")
        elif free_play:
            await session.start_free_play()
        else:
            await session.start_game()

        await play_loop(session)
        return 0


async def run_share(date: str) -> int:
    async with create_engine() as engine:
        session = await engine.open_puzzle(date)
        text = session.get_share_text()
        if not text:
            print(f"⚠️ Puzzle for {date} is not completed yet")
            return 1
        print(text)
        return 0


async def run_stats() -> int:
    async with create_engine() as engine:
        stats = await engine.get_stats()
        print("📊 DAILY ALCHEMY STATS")
        print("=" * 60)
        print(f"✅ Completed: {stats.total_completed}")
        streak = StatsLogic.streak_as_of(stats, engine.puzzle_clock.current_date_string())
        print(f"🔥 Current streak: {streak} (best {stats.longest_streak})")
        print(f"⏱️ Average time: {GameRules.format_time(stats.average_time)}  Best: {GameRules.format_time(stats.best_time) if stats.best_time else '-'}")
        print(f"🧮 Moves: {stats.total_moves}  Under/at/over par: {stats.under_par}/{stats.at_par}/{stats.over_par}")
        print(f"💡 Hints used: {stats.total_hints_used}  ⭐ Perfect solves: {stats.perfect_solves}")
        print(f"🌟 First discoveries: {stats.first_discoveries}  🧪 Discoveries: {stats.total_discoveries}")
        print(f"📚 Known elements: {len(engine.lifetime_bank)}")
        for kind in AchievementKind:
            upcoming = AchievementRules.next_for(kind, stats)
            if upcoming:
                achievement, remaining = upcoming
                print(f"🏅 Next: {achievement.title} ({remaining} to go)")
        print("=" * 60)
        return 0


async def run_export(path: Optional[str], slot_name: Optional[str]) -> int:
    async with create_engine() as engine:
        text = await engine.export_save(slot_name)
        target = Path(path) if path else Path(save_file_name(slot_name, engine.clock.now()))
        target.write_text(text, encoding="utf-8")
        print(f"💾 Exported {len(engine.lifetime_bank)} elements to {target}")
        return 0


async def run_import(path: str) -> int:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        print(f"❌ Cannot read {path}: {e}")
        return 1
    async with create_engine() as engine:
        result = await engine.import_save(text)
        if not result.success:
            print(f"❌ {result.error}")
            return 1
        print(f"📦 Imported {len(result.data.bank)} elements; {len(engine.lifetime_bank)} known now")
        return 0


def run_puzzle_number(date: Optional[str]) -> int:
    clock = create_puzzle_clock()
    try:
        iso_date = date or clock.current_date_string()
        number = clock.puzzle_number_for_date(iso_date)
    except InvalidArgument as e:
        print(f"❌ {e}")
        return 1
    print(f"🧪 {iso_date} is puzzle #{number} ({clock.display_date(number)})")
    return 0


def run_month(year: int, month: int) -> int:
    clock = create_puzzle_clock()
    try:
        month_range = clock.range_for_month(year, month)
    except InvalidArgument as e:
        print(f"❌ {e}")
        return 1
    if month_range is None:
        print(f"📅 No puzzles in {year}-{month:02d}")
    else:
        print(f"📅 {year}-{month:02d}: puzzles #{month_range.start}-#{month_range.end} ({month_range.count} puzzles)")
    return 0


def main():
    """Main entry point with command line interface."""
    parser = argparse.ArgumentParser(
        description="Daily Alchemy - Element Combination Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  daily-alchemy puzzle-number                 # Today's puzzle number
  daily-alchemy puzzle-number 2025-09-01      # Puzzle number for a date
  daily-alchemy month 2025 8                  # Puzzles released in August 2025
  daily-alchemy play                          # Play today's puzzle
  daily-alchemy play 2025-08-20 --free        # Free play an archive puzzle
  daily-alchemy share 2025-08-20              # Share text for a solved puzzle
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    number_parser = subparsers.add_parser("puzzle-number", help="Show the puzzle number for a date")
    number_parser.add_argument("date", nargs="?", help="Date as YYYY-MM-DD (default: today)")

    month_parser = subparsers.add_parser("month", help="Show the puzzle range of a month")
    month_parser.add_argument("year", type=int)
    month_parser.add_argument("month", type=int, help="Month 1-12")

    play_parser = subparsers.add_parser("play", help="Play a puzzle")
    play_parser.add_argument("date", nargs="?", help="Date as YYYY-MM-DD (default: today)")
    play_parser.add_argument("--free", action="store_true", help="Untimed free play")
    play_parser.add_argument("--rules", help="JSON rule table for the built-in combination source")
    play_parser.add_argument("--puzzles", help="JSON puzzle file keyed by date")

    subparsers.add_parser("stats", help="Show stats and streaks")

    share_parser = subparsers.add_parser("share", help="Print share text for a solved puzzle")
    share_parser.add_argument("date", help="Date as YYYY-MM-DD")

    export_parser = subparsers.add_parser("export", help="Export discoveries to a .da save file")
    export_parser.add_argument("path", nargs="?", help="Output file (default: generated name)")
    export_parser.add_argument("--slot", help="Slot name stored in the save")

    import_parser = subparsers.add_parser("import", help="Import discoveries from a .da save file")
    import_parser.add_argument("path")

    args = parser.parse_args()

    try:
        if args.command == "puzzle-number":
            return run_puzzle_number(args.date)
        elif args.command == "month":
            return run_month(args.year, args.month)
        elif args.command == "play":
            return asyncio.run(run_play(args.date, args.free, args.rules, args.puzzles))
        elif args.command == "stats":
            return asyncio.run(run_stats())
        elif args.command == "share":
            return asyncio.run(run_share(args.date))
        elif args.command == "export":
            return asyncio.run(run_export(args.path, args.slot))
        elif args.command == "import":
            return asyncio.run(run_import(args.path))
        else:
            parser.print_help()
            return 0
    except InputInvalid as e:
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted - progress is saved")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
