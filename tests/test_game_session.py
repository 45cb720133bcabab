import asyncio
import json

import pytest
from conftest import SWAMP_PUZZLE, TODAY, FixedClock, ScriptedSource, make_engine, memory_storage

from daily_alchemy.application.services import (
    AlchemyEngine,
    EngineContext,
    EngineSettings,
    NullLoggingService,
    RetryPolicy,
    StaticPuzzleSource,
)
from daily_alchemy.application.services.game_session import LIFETIME_BANK_KEY, attempted_key, session_key
from daily_alchemy.domain.errors import InputInvalid
from daily_alchemy.domain.models import SessionStatus
from daily_alchemy.domain.services import GameRules

SWAMP_STEPS = [("Earth", "Water"), ("Air", "Water"), ("Earth", "Rain"), ("Mud", "Plant")]


async def combine(session, first, second):
    session.select_element(first)
    session.select_element(second)
    return await session.combine_selected()


async def solve(session, steps=SWAMP_STEPS):
    state = None
    for first, second in steps:
        state = await combine(session, first, second)
    return state


def test_open_lands_in_welcome_with_the_puzzle_loaded():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle()
            return session.state.view()

    state = asyncio.run(scenario())
    assert state.status == SessionStatus.WELCOME
    assert state.puzzle.number == 6
    assert state.puzzle_date == TODAY
    assert state.target.name == "Swamp"
    assert state.hints_remaining == 4
    assert state.time_limit == 600
    assert state.is_first_attempt
    assert not state.has_saved_progress
    assert state.bank.names == ["Earth", "Water", "Fire", "Air"]


def test_solving_records_stats_and_unlocks_sharing(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            await solve(session, SWAMP_STEPS[:3])
            clock.advance(125)
            admire = await combine(session, "Mud", "Plant")
            share_before = session.get_share_text()
            complete = await session.acknowledge_result()
            stats = await engine.get_stats()
            return admire, share_before, complete, session.get_share_text(), stats, engine

    admire, share_before, complete, share, stats, engine = asyncio.run(scenario())
    assert admire.status == SessionStatus.ADMIRE
    assert admire.completion.moves == 4
    assert admire.completion.par_comparison == "0"
    assert admire.completion.elapsed_seconds == 125
    assert admire.completion.congratulation == GameRules.congratulation(6)
    assert admire.completion.unlocked_achievements == ("alchemy.wins.1",)
    assert share_before == ""

    assert complete.status == SessionStatus.COMPLETE
    assert share.split("\n")[:3] == ["Daily Alchemy #6", "⏱️ 2:05", "🧮 4 moves (Par: 4)"]
    assert "🟤 + 🌱 ➡️ 🐊" in share

    assert stats.total_completed == 1
    assert stats.current_streak == 1
    assert stats.completed_puzzles[TODAY].perfect_solve
    assert engine.lifetime_bank.contains("Swamp")


def test_blocked_pair_costs_a_move_and_clears_the_slots():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            return await combine(session, "Fire", "Fire")

    state = asyncio.run(scenario())
    assert state.moves == 1
    assert state.combination_error == GameRules.NO_COMBINATION_MESSAGE
    assert state.last_result.is_blocked
    assert state.selection_a is None and state.selection_b is None
    assert len(state.bank) == 4


def test_transient_failure_refunds_the_move_and_keeps_the_selection():
    source = ScriptedSource(failures={ScriptedSource.pair("Fire", "Water"): 10})

    async def scenario():
        async with make_engine(source=source, max_retries=1) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            return await combine(session, "Fire", "Water")

    state = asyncio.run(scenario())
    assert state.moves == 0
    assert state.combination_error == GameRules.TRANSIENT_FAILURE_MESSAGE
    assert state.selection_a.name == "Fire"
    assert state.selection_b.name == "Water"
    assert len(source.calls) == 2


def test_slot_selection_rules():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            session.select_element("Fire")
            state = session.select_element("fire")
            assert state.selection_a.name == "Fire" and state.selection_b.name == "Fire"

            state = session.select_element("Water")
            assert state.selection_b.name == "Fire"

            state = session.clear_slot("A")
            assert state.selection_a is None
            state = session.select_element("Water")
            assert state.selection_a.name == "Water"

            with pytest.raises(InputInvalid):
                session.select_element("Steam")
            with pytest.raises(InputInvalid):
                session.clear_slot("C")

            session.clear_selections()
            session.select_element("Earth")
            with pytest.raises(InputInvalid):
                await session.combine_selected()

    asyncio.run(scenario())


def test_commands_outside_playing_are_rejected():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle()
            with pytest.raises(InputInvalid):
                session.select_element("Fire")
            with pytest.raises(InputInvalid):
                await session.use_hint()
            with pytest.raises(InputInvalid):
                await session.resume_game()

    asyncio.run(scenario())


def test_hints_select_inputs_and_cost_moves():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            first = await session.use_hint()
            second = await session.use_hint()
            made = await session.combine_selected()
            return first, second, made

    first, second, made = asyncio.run(scenario())
    assert first.selection_a.name == "Air"
    assert first.hints_remaining == 3
    assert first.moves == 1
    assert second.selection_b.name == "Water"
    assert second.hints_used == 2
    assert second.hints_used_positions == {1, 2}
    assert made.bank.contains("Rain")
    assert made.moves == 3
    assert made.pending_hint is None


def test_hint_budget_runs_out():
    puzzle = {
        "target": "Swamp",
        "parMoves": 4,
        "timeLimitSeconds": 600,
        "hints": 1,
        "solutionPath": [{"elementA": "Air", "elementB": "Water", "result": "Rain"}],
    }

    async def scenario():
        async with make_engine(puzzle=puzzle) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            await session.use_hint()
            with pytest.raises(InputInvalid):
                await session.use_hint()

    asyncio.run(scenario())


def test_timer_expiry_ends_the_game_and_marks_the_attempt(clock):
    async def scenario():
        storage = memory_storage()
        async with make_engine(clock=clock, storage=storage) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            await combine(session, "Earth", "Water")
            clock.advance(599)
            assert (await session.tick()).status == SessionStatus.PLAYING
            clock.advance(5)
            over = await session.tick()
            with pytest.raises(InputInvalid):
                session.select_element("Fire")

            saved = await storage.get(session_key(TODAY))
            attempted = await storage.get(attempted_key(TODAY))
            reopened = (await engine.open_puzzle()).state.view()
            return over, saved, attempted, reopened

    over, saved, attempted, reopened = asyncio.run(scenario())
    assert over.status == SessionStatus.GAME_OVER
    assert over.elapsed == 600
    assert saved is None
    assert json.loads(attempted) is True
    assert reopened.status == SessionStatus.WELCOME
    assert not reopened.is_first_attempt


def test_the_target_cannot_be_made_once_time_has_run_out(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            await solve(session, SWAMP_STEPS[:3])
            clock.advance(900)
            state = await combine(session, "Mud", "Plant")
            return state, await engine.get_stats()

    state, stats = asyncio.run(scenario())
    assert state.status == SessionStatus.GAME_OVER
    assert state.elapsed == 600
    assert state.completion is None
    assert not state.bank.contains("Swamp")
    assert stats.total_completed == 0


def test_hint_after_time_has_run_out_ends_the_game(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            clock.advance(601)
            return await session.use_hint()

    state = asyncio.run(scenario())
    assert state.status == SessionStatus.GAME_OVER
    assert state.hints_remaining == 4


def test_pause_freezes_the_display_but_not_the_clock(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            session.pause()
            clock.advance(30)
            paused = await session.tick()
            resumed = await session.resume()
            session.pause()
            clock.advance(600)
            expired = await session.resume()
            return paused, resumed, expired

    paused, resumed, expired = asyncio.run(scenario())
    assert paused.is_paused
    assert paused.elapsed == 0
    assert not resumed.is_paused
    assert resumed.elapsed == 30
    assert expired.status == SessionStatus.GAME_OVER


def test_hint_budget_comes_from_the_puzzle():
    async def scenario(puzzle):
        async with make_engine(puzzle=puzzle) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            state = session.state.view()
            if state.hints_remaining == 0:
                with pytest.raises(InputInvalid):
                    await session.use_hint()
            return state

    no_hints = asyncio.run(scenario(dict(SWAMP_PUZZLE, hints=0)))
    unstated = asyncio.run(scenario({k: v for k, v in SWAMP_PUZZLE.items() if k != "hints"}))
    assert no_hints.hints_remaining == 0
    assert unstated.hints_remaining == GameRules.DEFAULT_HINTS


def test_exploring_continues_until_the_result_is_acknowledged(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            admire = await solve(session)
            explored = await combine(session, "Fire", "Water")
            complete = await session.acknowledge_result()
            return admire, explored, complete, await engine.get_stats()

    admire, explored, complete, stats = asyncio.run(scenario())
    assert admire.status == SessionStatus.ADMIRE
    assert explored.status == SessionStatus.ADMIRE
    assert explored.bank.contains("Steam")
    assert explored.moves == 4
    assert complete.status == SessionStatus.COMPLETE
    assert complete.completion.moves == 4
    assert stats.total_completed == 1


def test_replays_after_the_first_attempt_do_not_touch_stats(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            clock.advance(700)
            await session.tick()
            await session.reset_game()
            await session.start_game()
            admire = await solve(session)
            return admire, await engine.get_stats()

    admire, stats = asyncio.run(scenario())
    assert admire.status == SessionStatus.ADMIRE
    assert not admire.completion.is_first_attempt
    assert stats.total_completed == 0


def test_saved_progress_can_be_resumed(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            first = await engine.open_puzzle()
            await first.start_game()
            await combine(first, "Earth", "Water")
            clock.advance(30)
            await first.tick()
            first.close()

            clock.advance(3600)
            second = await engine.open_puzzle()
            welcome = second.state.view()
            resumed = await second.resume_game()
            return welcome, resumed

    welcome, resumed = asyncio.run(scenario())
    assert welcome.has_saved_progress
    assert resumed.status == SessionStatus.PLAYING
    assert resumed.moves == 1
    assert resumed.elapsed == 30
    assert resumed.bank.contains("Mud")
    assert [e.name for e in resumed.recent_elements] == ["Mud"]
    assert [step.result for step in resumed.combination_path] == ["Mud"]


def test_reset_discards_in_progress_saves():
    async def scenario():
        storage = memory_storage()
        async with make_engine(storage=storage) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            await combine(session, "Earth", "Water")
            state = await session.reset_game()
            return state, await storage.get(session_key(TODAY)), engine.lifetime_bank.contains("Mud")

    state, saved, lifetime_has_mud = asyncio.run(scenario())
    assert state.status == SessionStatus.WELCOME
    assert state.moves == 0
    assert not state.bank.contains("Mud")
    assert saved is None
    assert lifetime_has_mud


def test_completed_puzzle_reopens_as_complete():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            await solve(session)
            await session.acknowledge_result()
            again = await engine.open_puzzle()
            return again.state.view(), again.get_share_text()

    state, share = asyncio.run(scenario())
    assert state.status == SessionStatus.COMPLETE
    assert state.completion.moves == 4
    assert share.startswith("Daily Alchemy #6")


def test_free_play_has_no_timer_hints_or_ending(clock):
    async def scenario():
        async with make_engine(clock=clock) as engine:
            session = await engine.open_puzzle()
            state = await session.start_free_play()
            assert state.time_limit is None
            with pytest.raises(InputInvalid):
                await session.use_hint()
            state = await solve(session)
            clock.advance(10_000)
            return state, await session.tick(), await engine.get_stats()

    solved, ticked, stats = asyncio.run(scenario())
    assert solved.status == SessionStatus.PLAYING
    assert solved.bank.contains("Swamp")
    assert ticked.status == SessionStatus.PLAYING
    assert ticked.time_remaining is None
    assert stats.total_completed == 0


def test_result_arriving_after_a_reset_is_discarded():
    source = ScriptedSource()
    source.gate = asyncio.Event()

    async def scenario():
        async with make_engine(source=source) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
            session.select_element("Earth")
            session.select_element("Water")
            pending = asyncio.ensure_future(session.combine_selected())
            await asyncio.sleep(0)
            assert session.state.is_combining
            with pytest.raises(InputInvalid):
                session.select_element("Fire")

            await session.reset_game()
            source.gate.set()
            return await pending

    state = asyncio.run(scenario())
    assert state.status == SessionStatus.WELCOME
    assert state.moves == 0
    assert not state.bank.contains("Mud")


def test_archive_completion_leaves_the_streak_alone():
    async def scenario():
        async with make_engine() as engine:
            session = await engine.open_puzzle("2025-08-16")
            await session.start_game()
            state = await solve(session)
            return state, await engine.get_stats()

    state, stats = asyncio.run(scenario())
    assert state.puzzle.number == 2
    assert stats.total_completed == 1
    assert stats.completed_puzzles["2025-08-16"].is_archive
    assert stats.current_streak == 0


@pytest.mark.parametrize("iso_date", ["2025-08-21", "2025-08-14", "2025-8-20"])
def test_unplayable_dates_are_rejected(iso_date):
    async def scenario():
        async with make_engine() as engine:
            with pytest.raises(InputInvalid):
                await engine.open_puzzle(iso_date)

    asyncio.run(scenario())


def test_missing_puzzle_moves_the_session_to_error():
    async def scenario():
        context = EngineContext(
            storage=memory_storage(),
            combination_source=ScriptedSource(),
            puzzle_source=StaticPuzzleSource(puzzles={}),
            clock=FixedClock(),
            logging_service=NullLoggingService(),
        )
        async with AlchemyEngine(context, EngineSettings(retry_policy=RetryPolicy.immediate())) as engine:
            session = await engine.open_puzzle()
            return session.state.view()

    state = asyncio.run(scenario())
    assert state.status == SessionStatus.ERROR
    assert TODAY in state.error_message


def test_discoveries_are_announced_and_kept_for_life():
    async def scenario():
        storage = memory_storage()
        async with make_engine(storage=storage, source=ScriptedSource(first=("Mud",))) as engine:
            discoveries, changes = [], []
            engine.events.on_discovery(discoveries.append)
            engine.events.on_state_change(lambda old, new: changes.append((old, new)))
            session = await engine.open_puzzle()
            await session.start_game()
            state = await combine(session, "Earth", "Water")
            await combine(session, "Water", "Earth")
            return discoveries, changes, state, json.loads(await storage.get(LIFETIME_BANK_KEY))

    discoveries, changes, state, lifetime = asyncio.run(scenario())
    assert [event.name for event in discoveries] == ["Mud"]
    assert discoveries[0].was_first_global
    assert state.first_discoveries == 1
    assert (SessionStatus.WELCOME, SessionStatus.PLAYING) in changes
    assert "Mud" in [record["name"] for record in lifetime]
