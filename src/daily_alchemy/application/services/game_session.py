"""Game session: the state machine for one playthrough of one puzzle."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from daily_alchemy.application.interfaces import IClock, ILoggingService, IPuzzleSource
from daily_alchemy.domain.errors import AlchemyError, InputInvalid, InvalidArgument
from daily_alchemy.domain.models import (
    CombinationResult,
    CompletionSummary,
    DayStats,
    DiscoveryBank,
    Element,
    PathStep,
    SavedProgress,
    SessionState,
    SessionStatus,
)
from daily_alchemy.domain.services import (
    GameRules,
    HintPlanner,
    PuzzleClock,
    ShareInput,
    encode_share_text,
    winning_path,
)
from daily_alchemy.domain.services.hint_planner import SLOT_A, SLOT_B
from daily_alchemy.domain.services.share_encoder import DEFAULT_SHARE_URL, share_steps

from .combination_oracle import CombinationOracle
from .event_service import COMBINE_SETTLED, DISCOVERY, STATE_CHANGE, EngineEvents
from .json_repository import JsonRepository
from .stats_service import StatsLedger

SESSION_KEY_PREFIX = "alchemy_session_"
ATTEMPTED_KEY_PREFIX = "alchemy_attempted_"
LIFETIME_BANK_KEY = "alchemy_discovery_bank"

# Selecting and combining stay open after the target is found, until acknowledged
EXPLORING = (SessionStatus.PLAYING, SessionStatus.ADMIRE)


def session_key(puzzle_date: str) -> str:
    return f"{SESSION_KEY_PREFIX}{puzzle_date}"


def attempted_key(puzzle_date: str) -> str:
    return f"{ATTEMPTED_KEY_PREFIX}{puzzle_date}"


@dataclass(frozen=True)
class SessionSettings:
    """Per-engine knobs the session needs."""

    default_hints: int = GameRules.DEFAULT_HINTS
    recent_cap: int = GameRules.RECENT_ELEMENTS_CAP
    share_url: str = DEFAULT_SHARE_URL


class GameSession:
    """
    Drives one puzzle from LOADING to COMPLETE or GAME_OVER.

    Every command returns a copy of the resulting SessionState. Commands that are
    not admissible in the current state raise InputInvalid. Combining awaits the
    oracle; while a combine is outstanding the session rejects other mutations,
    and a result that arrives after a reset or navigation is discarded.
    """

    def __init__(
        self,
        puzzle_source: IPuzzleSource,
        oracle: CombinationOracle,
        repository: JsonRepository,
        stats_ledger: StatsLedger,
        lifetime_bank: DiscoveryBank,
        puzzle_clock: PuzzleClock,
        clock: IClock,
        events: EngineEvents,
        logging_service: ILoggingService,
        settings: SessionSettings = SessionSettings(),
    ):
        self.puzzle_source = puzzle_source
        self.oracle = oracle
        self.repository = repository
        self.stats_ledger = stats_ledger
        self.lifetime_bank = lifetime_bank
        self.puzzle_clock = puzzle_clock
        self.clock = clock
        self.events = events
        self.logger = logging_service
        self.settings = settings

        self.state = SessionState()
        self._generation = 0
        self._started_monotonic: Optional[float] = None
        self._saved: Optional[SavedProgress] = None

    # ------------------------------------------------------------------ helpers

    def _new_bank(self) -> DiscoveryBank:
        return DiscoveryBank.with_starters(now_provider=self.clock.now)

    def _transition(self, status: SessionStatus) -> None:
        previous = self.state.status
        if previous == status:
            return
        self.state.status = status
        self.logger.debug(f"🔀 Session {self.state.puzzle_date}: {previous.value} → {status.value}")
        self.events.emit(STATE_CHANGE, previous, status)

    def _require(self, *statuses: SessionStatus) -> None:
        if self.state.status not in statuses:
            allowed = ", ".join(status.value for status in statuses)
            raise InputInvalid(f"Not allowed while {self.state.status.value} (needs {allowed})")

    def _require_idle(self) -> None:
        if self.state.is_combining:
            raise InputInvalid("A combination is already in progress")

    def _logical_elapsed(self) -> int:
        if self._started_monotonic is None:
            return self.state.elapsed
        return max(0, int(self.clock.monotonic() - self._started_monotonic))

    def _time_is_up(self) -> bool:
        state = self.state
        return (
            state.status == SessionStatus.PLAYING
            and state.is_timed
            and self._started_monotonic is not None
            and self._logical_elapsed() >= state.time_limit
        )

    async def _expire_if_time_is_up(self) -> bool:
        """Move to GAME_OVER when the time limit has passed; True when it did."""
        if not self._time_is_up():
            return False
        self.state.elapsed = self.state.time_limit
        await self._game_over()
        return True

    async def _persist(self) -> None:
        if self.state.puzzle is None or self.state.status in (SessionStatus.LOADING, SessionStatus.ERROR):
            return
        await self.repository.save(session_key(self.state.puzzle.date), self.state.to_snapshot())

    async def _persist_lifetime_bank(self) -> None:
        await self.repository.save(LIFETIME_BANK_KEY, self.lifetime_bank.to_records())

    def _fresh_state(self, status: SessionStatus) -> SessionState:
        puzzle = self.state.puzzle
        state = SessionState(status=status, bank=self._new_bank())
        if puzzle is not None:
            state.puzzle = puzzle
            state.target = puzzle.target_element
            state.par_moves = puzzle.par_moves
            state.time_limit = puzzle.time_limit_seconds
            state.hints_remaining = self.settings.default_hints if puzzle.hints is None else puzzle.hints
        return state

    # ----------------------------------------------------------------- commands

    async def open_puzzle(self, iso_date: Optional[str] = None) -> SessionState:
        """Load the puzzle for a date (today when omitted) and land in WELCOME, COMPLETE or ERROR."""
        puzzle_date = iso_date or self.puzzle_clock.current_date_string()
        try:
            number = self.puzzle_clock.puzzle_number_for_date(puzzle_date)
        except InvalidArgument as e:
            raise InputInvalid(str(e)) from e
        if puzzle_date < self.puzzle_clock.launch_date.isoformat():
            raise InputInvalid(f"There is no puzzle before {self.puzzle_clock.launch_date.isoformat()}")
        if not self.puzzle_clock.is_puzzle_available(number) or puzzle_date > self.puzzle_clock.current_date_string():
            raise InputInvalid(f"Puzzle for {puzzle_date} is not available yet")

        self._generation += 1
        generation = self._generation
        previous = self.state.status
        self.state = SessionState(status=SessionStatus.LOADING, bank=self._new_bank())
        self._started_monotonic = None
        self._saved = None
        if previous != SessionStatus.LOADING:
            self.events.emit(STATE_CHANGE, previous, SessionStatus.LOADING)

        try:
            puzzle = await self.puzzle_source.get_puzzle_for_date(puzzle_date)
        except AlchemyError as e:
            if generation == self._generation:
                self.state.error_message = str(e)
                self.logger.error(f"❌ Could not load puzzle for {puzzle_date}: {e}")
                self._transition(SessionStatus.ERROR)
            return self.state.view()

        if generation != self._generation:
            return self.state.view()

        self.state.puzzle = puzzle
        self.state = self._fresh_state(SessionStatus.LOADING)
        self.state.is_first_attempt = not await self.repository.exists(attempted_key(puzzle.date))
        saved = await self.repository.load_model(session_key(puzzle.date), SavedProgress.from_snapshot)
        if generation != self._generation:
            return self.state.view()

        if saved is not None and saved.is_finished:
            self._apply_saved(saved)
            self.state.completion = self._summary(())
            self._transition(SessionStatus.COMPLETE)
        else:
            self._saved = saved
            self.state.has_saved_progress = saved is not None and saved.status == SessionStatus.PLAYING
            self._transition(SessionStatus.WELCOME)

        self.logger.info(f"🧪 Opened puzzle #{puzzle.number} ({puzzle.date}): make {puzzle.target}")
        return self.state.view()

    async def start_game(self) -> SessionState:
        """Start a timed playthrough from scratch."""
        return await self._start(free_play=False)

    async def start_free_play(self) -> SessionState:
        """Start an untimed playthrough; finding the target does not end it."""
        return await self._start(free_play=True)

    async def _start(self, free_play: bool) -> SessionState:
        self._require(SessionStatus.WELCOME)
        is_first_attempt = self.state.is_first_attempt
        self.state = self._fresh_state(SessionStatus.WELCOME)
        self.state.is_first_attempt = is_first_attempt
        self.state.free_play_mode = free_play
        if free_play:
            self.state.time_limit = None
        self._saved = None
        self.state.started_at = self.clock.now()
        self._started_monotonic = self.clock.monotonic()
        self._transition(SessionStatus.PLAYING)
        await self._persist()
        return self.state.view()

    async def resume_game(self) -> SessionState:
        """Continue from saved progress."""
        self._require(SessionStatus.WELCOME)
        if self._saved is None or self._saved.status != SessionStatus.PLAYING:
            raise InputInvalid("There is no saved progress to resume")

        is_first_attempt = self.state.is_first_attempt
        self.state = self._fresh_state(SessionStatus.WELCOME)
        self.state.is_first_attempt = is_first_attempt
        self._apply_saved(self._saved)
        if self.state.free_play_mode:
            self.state.time_limit = None
        self._saved = None
        self._started_monotonic = self.clock.monotonic() - self.state.elapsed
        self.state.started_at = self.clock.now() - timedelta(seconds=self.state.elapsed)
        self._transition(SessionStatus.PLAYING)
        return await self.tick()

    def _apply_saved(self, saved: SavedProgress) -> None:
        state = self.state
        state.elapsed = saved.elapsed
        state.moves = saved.moves
        state.hints_remaining = saved.hints_remaining
        state.hints_used = saved.hints_used
        state.hints_used_positions = set(saved.hints_used_positions)
        state.combination_path = list(saved.combination_path)
        state.first_discoveries = saved.first_discoveries
        state.free_play_mode = saved.free_play_mode
        state.bank = DiscoveryBank.from_records(saved.bank_records, now_provider=self.clock.now)
        state.recent_elements = [e for e in (state.bank.get(n) for n in saved.recent_names) if e is not None]

    def select_element(self, name: str) -> SessionState:
        """Put a bank element into the first empty slot; no-op when both are filled."""
        self._require(*EXPLORING)
        self._require_idle()
        element = self.state.bank.get(name)
        if element is None:
            raise InputInvalid(f"Unknown element: {name!r}")

        self.state.combination_error = None
        if self.state.selection_a is None:
            self.state.selection_a = element
        elif self.state.selection_b is None:
            self.state.selection_b = element
        return self.state.view()

    def clear_slot(self, slot: str) -> SessionState:
        """Empty one slot ("A" or "B")."""
        self._require(*EXPLORING)
        self._require_idle()
        if slot == SLOT_A:
            self.state.selection_a = None
        elif slot == SLOT_B:
            self.state.selection_b = None
        else:
            raise InputInvalid(f"Unknown slot: {slot!r}")
        return self.state.view()

    def clear_selections(self) -> SessionState:
        self._require(*EXPLORING)
        self._require_idle()
        self.state.clear_slots()
        self.state.pending_hint = None
        return self.state.view()

    async def combine_selected(self) -> SessionState:
        """Combine the two selected elements. After the target is found, combining no longer costs moves."""
        self._require(*EXPLORING)
        self._require_idle()
        if await self._expire_if_time_is_up():
            return self.state.view()
        first, second = self.state.selection_a, self.state.selection_b
        if first is None or second is None:
            raise InputInvalid("Select two elements before combining")

        generation = self._generation
        state = self.state
        status = state.status
        counts_move = status == SessionStatus.PLAYING
        if counts_move:
            state.moves += 1
        state.is_combining = True
        state.combination_error = None

        try:
            result = await self.oracle.combine(first, second)
        finally:
            state.is_combining = False

        if generation != self._generation or state is not self.state or state.status != status:
            self.logger.debug(f"🗑️ Discarding stale result for {first.name} + {second.name}")
            return self.state.view()

        if self._time_is_up():
            if counts_move:
                state.moves -= 1
            await self._expire_if_time_is_up()
            return self.state.view()

        state.last_result = result
        self.events.emit(COMBINE_SETTLED, result)

        if result.is_transient:
            if counts_move:
                state.moves -= 1
            state.combination_error = GameRules.TRANSIENT_FAILURE_MESSAGE
            return state.view()

        state.clear_slots()
        if result.is_blocked:
            state.combination_error = GameRules.NO_COMBINATION_MESSAGE
        else:
            await self._apply_product(first, second, result)

        await self._persist()
        return self.state.view()

    async def _apply_product(self, first: Element, second: Element, result: CombinationResult) -> None:
        state = self.state
        product = result.product
        state.combination_path.append(PathStep(first.name, second.name, product.name))

        event = state.bank.add(product, is_first_discovery=result.first_discovery)
        if event is not None:
            stamped = state.bank.get(product.name)
            state.recent_elements = ([stamped] + state.recent_elements)[: self.settings.recent_cap]
            if result.first_discovery:
                state.first_discoveries += 1
            if self.lifetime_bank.add(stamped) is not None:
                await self._persist_lifetime_bank()
            self.events.emit(DISCOVERY, event)

        if state.pending_hint is not None and state.bank.contains(state.pending_hint.step.result):
            state.pending_hint = None

        if state.status == SessionStatus.PLAYING and not state.free_play_mode and GameRules.is_target(product, state.target):
            await self._complete()

    async def _complete(self) -> None:
        state = self.state
        state.elapsed = self._logical_elapsed()
        self._started_monotonic = None
        self._transition(SessionStatus.ADMIRE)

        unlocked = ()
        if state.is_first_attempt:
            puzzle = state.puzzle
            day = DayStats(
                completed=True,
                time_seconds=state.elapsed,
                moves=state.moves,
                par_moves=state.par_moves,
                hints_used=state.hints_used,
                first_discoveries=state.first_discoveries,
                discoveries=len(state.bank) - len(GameRules.starter_names()),
                perfect_solve=GameRules.is_perfect_solve(state.hints_used),
                is_archive=not self.puzzle_clock.is_today(puzzle.date),
                reveals=state.hints_used,
                timestamp=self.clock.now().isoformat(),
            )
            _, fresh = await self.stats_ledger.record(puzzle.date, day)
            unlocked = tuple(item.achievement_id for item in fresh)
            await self.repository.save(attempted_key(puzzle.date), True)

        state.completion = self._summary(unlocked)
        self.logger.info(
            f"🎉 Solved #{state.puzzle.number} in {GameRules.format_time(state.elapsed)} "
            f"with {state.moves} moves (par {state.par_moves})"
        )

    def _summary(self, unlocked) -> CompletionSummary:
        state = self.state
        return CompletionSummary(
            puzzle_number=state.puzzle.number,
            target=state.puzzle.target,
            elapsed_seconds=state.elapsed,
            moves=state.moves,
            par_moves=state.par_moves,
            par_comparison=GameRules.par_comparison(state.moves, state.par_moves),
            hints_used=state.hints_used,
            first_discoveries=state.first_discoveries,
            congratulation=GameRules.congratulation(state.puzzle.number),
            is_first_attempt=state.is_first_attempt,
            unlocked_achievements=tuple(unlocked),
        )

    async def use_hint(self) -> SessionState:
        """Reveal the next solution step by selecting one of its inputs. Costs a move."""
        self._require(SessionStatus.PLAYING)
        self._require_idle()
        if await self._expire_if_time_is_up():
            return self.state.view()
        state = self.state
        if state.free_play_mode:
            raise InputInvalid("Hints are not available in free play")
        if state.hints_remaining <= 0:
            raise InputInvalid("No hints remaining")

        selection_a = state.selection_a.name if state.selection_a else None
        plan = HintPlanner.plan(state.puzzle.solution_path, state.bank.contains, state.pending_hint, selection_a)
        element = state.bank.get(plan.element_name) if plan else None
        if element is None:
            self.logger.debug("💡 No hint applies to the current bank")
            return state.view()

        state.hints_remaining = max(0, state.hints_remaining - 1)
        state.hints_used += 1
        state.moves += 1
        state.hints_used_positions.add(state.moves)
        state.combination_error = None

        if plan.slot == SLOT_B:
            state.selection_b = element
        else:
            state.clear_slots()
            state.selection_a = element
        state.pending_hint = plan.pending

        self.logger.debug(f"💡 Hint {state.hints_used}: {element.name} → slot {plan.slot}")
        await self._persist()
        return state.view()

    async def acknowledge_result(self) -> SessionState:
        """Leave ADMIRE for COMPLETE; in PLAYING it dismisses the last result."""
        if self.state.status == SessionStatus.ADMIRE:
            self._transition(SessionStatus.COMPLETE)
            await self._persist()
        elif self.state.status == SessionStatus.PLAYING:
            self.state.last_result = None
            self.state.combination_error = None
        else:
            raise InputInvalid(f"Nothing to acknowledge while {self.state.status.value}")
        return self.state.view()

    async def tick(self) -> SessionState:
        """Advance the timer from the monotonic clock; fires GAME_OVER when time runs out."""
        state = self.state
        if await self._expire_if_time_is_up():
            return self.state.view()
        if state.status != SessionStatus.PLAYING or state.is_paused or self._started_monotonic is None:
            return state.view()

        elapsed = self._logical_elapsed()
        if elapsed != state.elapsed:
            state.elapsed = elapsed
            await self._persist()
        return self.state.view()

    async def _game_over(self) -> None:
        state = self.state
        self._started_monotonic = None
        state.clear_slots()
        self._transition(SessionStatus.GAME_OVER)
        await self.repository.remove(session_key(state.puzzle.date))
        await self.repository.save(attempted_key(state.puzzle.date), True)
        state.is_first_attempt = False
        self.logger.info(f"⌛ {GameRules.game_over_message(state.puzzle.number)} Puzzle #{state.puzzle.number}")

    def pause(self) -> SessionState:
        """Freeze the displayed timer (host backgrounded). Logical time keeps running."""
        if self.state.status == SessionStatus.PLAYING:
            self.state.is_paused = True
        return self.state.view()

    async def resume(self) -> SessionState:
        """Unfreeze the display and recompute elapsed from the start time."""
        self.state.is_paused = False
        return await self.tick()

    async def reset_game(self) -> SessionState:
        """Back to WELCOME for the same puzzle; in-progress saves are discarded."""
        self._require(
            SessionStatus.WELCOME,
            SessionStatus.PLAYING,
            SessionStatus.ADMIRE,
            SessionStatus.COMPLETE,
            SessionStatus.GAME_OVER,
        )
        finished = self.state.status in (SessionStatus.ADMIRE, SessionStatus.COMPLETE)
        self._generation += 1
        self._started_monotonic = None
        self._saved = None

        previous = self.state.status
        puzzle_date = self.state.puzzle.date
        if not finished:
            await self.repository.remove(session_key(puzzle_date))

        self.state = self._fresh_state(previous)
        self.state.is_first_attempt = not await self.repository.exists(attempted_key(puzzle_date))
        self._transition(SessionStatus.WELCOME)
        return self.state.view()

    def get_share_text(self) -> str:
        """Share text for a completed session; empty otherwise."""
        state = self.state
        if state.status != SessionStatus.COMPLETE or state.puzzle is None:
            return ""

        def glyph_for(name: str) -> str:
            element = state.bank.get(name) or self.lifetime_bank.get(name)
            return element.glyph if element else "❔"

        steps = share_steps(winning_path(state.combination_path, state.puzzle.target), glyph_for)
        share = ShareInput(
            puzzle_number=state.puzzle.number,
            elapsed_seconds=state.elapsed,
            moves=state.moves,
            par_moves=state.par_moves,
            hints_used=state.hints_used,
            first_discoveries=state.first_discoveries,
            steps=steps,
        )
        return encode_share_text(share, self.settings.share_url)

    def close(self) -> None:
        """Navigation away: later results for this session are ignored."""
        self._generation += 1
        self._started_monotonic = None
