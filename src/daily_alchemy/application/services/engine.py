"""
Engine facade: wires storage, sources, oracle, stats and sessions together.

One engine per process. The oracle and the lifetime discovery bank are shared by
every session the engine creates.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, List, Optional

from daily_alchemy.application.interfaces import (
    IClock,
    ICombinationSource,
    ILoggingService,
    IKeyValueStore,
    IPuzzleSource,
    IStorageAdapter,
)
from daily_alchemy.domain.models import AggregateStats, DiscoveryBank
from daily_alchemy.domain.services import GameRules, PuzzleClock
from daily_alchemy.domain.services.puzzle_clock import DEFAULT_LAUNCH_DATE
from daily_alchemy.domain.services.share_encoder import DEFAULT_SHARE_URL

from .clock_service import SystemClock
from .combination_oracle import CombinationOracle
from .event_service import EngineEvents
from .game_session import LIFETIME_BANK_KEY, GameSession, SessionSettings
from .http_sources import HttpCombinationSource, HttpPuzzleSource
from .json_repository import JsonRepository
from .logging_service import LoggingService
from .rule_table_source import RuleTableCombinationSource
from .save_io import SaveData, SaveParseResult, dumps_save, parse_save_file
from .static_puzzle_source import StaticPuzzleSource
from .stats_service import StatsLedger
from .storage_service import StorageService
from .storage_tiers import FileKeyValueStore, SqliteKeyValueStore
from .timing_service import RetryPolicy, TimingService


@dataclass(frozen=True)
class EngineSettings:
    """Everything the engine reads from configuration."""

    launch_date: date = DEFAULT_LAUNCH_DATE
    retry_policy: RetryPolicy = RetryPolicy()
    default_hints: int = GameRules.DEFAULT_HINTS
    recent_cap: int = GameRules.RECENT_ELEMENTS_CAP
    share_url: str = DEFAULT_SHARE_URL

    @classmethod
    def from_config(cls, config) -> "EngineSettings":
        return cls(
            launch_date=config.LAUNCH_DATE,
            retry_policy=RetryPolicy(
                base_delay=config.COMBINE_RETRY_BASE_DELAY,
                factor=config.COMBINE_RETRY_FACTOR,
                max_retries=config.COMBINE_MAX_RETRIES,
                jitter=config.COMBINE_RETRY_JITTER,
                time_budget=config.COMBINE_TIME_BUDGET,
            ),
            default_hints=config.DEFAULT_HINTS,
            recent_cap=config.RECENT_ELEMENTS_CAP,
            share_url=config.SHARE_URL,
        )

    @property
    def session_settings(self) -> SessionSettings:
        return SessionSettings(default_hints=self.default_hints, recent_cap=self.recent_cap, share_url=self.share_url)


@dataclass
class EngineContext:
    """Collaborators supplied by the host."""

    storage: IStorageAdapter
    combination_source: ICombinationSource
    puzzle_source: IPuzzleSource
    clock: IClock
    logging_service: ILoggingService
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)


class AlchemyEngine:
    """
    Entry point for hosts.

    Usage:
        async with AlchemyEngine(context, settings) as engine:
            session = await engine.open_puzzle()
            await session.start_game()
    """

    def __init__(self, context: EngineContext, settings: EngineSettings = EngineSettings()):
        self.context = context
        self.settings = settings
        self.logger = context.logging_service
        self.clock = context.clock

        self.puzzle_clock = PuzzleClock(self.clock.today, settings.launch_date)
        self.repository = JsonRepository(context.storage, self.logger)
        self.events = EngineEvents(self.logger)
        self.timing = TimingService(self.logger, settings.retry_policy, sleep=context.sleep)
        self.lifetime_bank = DiscoveryBank.with_starters(now_provider=self.clock.now)
        self.oracle = CombinationOracle(
            context.combination_source,
            self.repository,
            self.logger,
            self.timing,
            name_lookup=lambda name: self.lifetime_bank.get(name),
        )
        self.stats = StatsLedger(self.repository, self.logger, self.events)

        self._sessions: List[GameSession] = []
        self._started = False
        self._closed = False

    async def __aenter__(self) -> "AlchemyEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        """Load the lifetime bank, the combination memo and stats."""
        if self._started:
            return
        self._started = True

        bank = await self.repository.load_model(
            LIFETIME_BANK_KEY, lambda records: DiscoveryBank.from_records(records, now_provider=self.clock.now)
        )
        if bank is not None:
            self.lifetime_bank = bank
        await self.oracle.load()
        await self.stats.load()
        self.logger.info(f"🚀 Engine ready: {len(self.lifetime_bank)} known elements, puzzle #{self.current_puzzle_number()}")

    def current_puzzle_number(self) -> int:
        return self.puzzle_clock.current_puzzle_number()

    def new_session(self) -> GameSession:
        """A fresh session in LOADING; call `open_puzzle` on it."""
        session = GameSession(
            puzzle_source=self.context.puzzle_source,
            oracle=self.oracle,
            repository=self.repository,
            stats_ledger=self.stats,
            lifetime_bank=self.lifetime_bank,
            puzzle_clock=self.puzzle_clock,
            clock=self.clock,
            events=self.events,
            logging_service=self.logger,
            settings=self.settings.session_settings,
        )
        self._sessions.append(session)
        return session

    async def open_puzzle(self, iso_date: Optional[str] = None) -> GameSession:
        """Create a session and open the puzzle for a date (today when omitted)."""
        await self.start()
        session = self.new_session()
        await session.open_puzzle(iso_date)
        return session

    async def get_stats(self) -> AggregateStats:
        return await self.stats.load()

    async def merge_stats(self, mirror: AggregateStats) -> AggregateStats:
        return await self.stats.merge_mirror(mirror)

    async def export_save(self, slot_name: Optional[str] = None) -> str:
        """Serialise the lifetime bank and totals as `.da` text."""
        stats = await self.stats.load()
        save = SaveData(
            bank=self.lifetime_bank,
            total_moves=stats.total_moves,
            total_discoveries=stats.total_discoveries,
            first_discoveries=len(self.lifetime_bank.first_discoveries()),
            first_discovery_elements=[element.name for element in self.lifetime_bank.first_discoveries()],
            slot_name=slot_name,
        )
        return dumps_save(save, exported_at=datetime.now(timezone.utc))

    async def import_save(self, text: str) -> SaveParseResult:
        """Merge a `.da` save into the lifetime bank; invalid files leave it untouched."""
        result = parse_save_file(text)
        if not result.success:
            self.logger.warning(f"⚠️ Save import rejected: {result.error}")
            return result

        added = self.lifetime_bank.absorb(result.data.bank)
        await self.repository.save(LIFETIME_BANK_KEY, self.lifetime_bank.to_records())
        self.logger.info(f"📦 Imported save: {added} new elements")
        return result

    async def close(self) -> None:
        """Detach sessions, cancel in-flight combines, flush and release resources."""
        if self._closed:
            return
        self._closed = True
        for session in self._sessions:
            session.close()
        await self.oracle.close()
        await self.context.puzzle_source.close()
        await self.context.storage.close()
        self.logger.debug("👋 Engine closed")


def build_storage(config, logging_service: ILoggingService, today_provider: Callable[[], date]) -> StorageService:
    """File tier, then the SQLite tier when configured; memory is always last."""
    tiers: List[IKeyValueStore] = [FileKeyValueStore(config.STORAGE_DIR, quota_bytes=config.STORAGE_QUOTA_BYTES)]
    if config.sqlite_path is not None:
        tiers.append(SqliteKeyValueStore(str(config.sqlite_path)))
    return StorageService(
        tiers,
        logging_service,
        today_provider=today_provider,
        retention_days=config.PROGRESS_RETENTION_DAYS,
    )


def build_default_context(
    config,
    logging_service: Optional[ILoggingService] = None,
    rules_file: Optional[str] = None,
    puzzles_file: Optional[str] = None,
) -> EngineContext:
    """
    Context for the command line and simple hosts.

    Uses the HTTP sources when API_BASE_URL is set, otherwise the built-in rule
    table and puzzle templates (or the given JSON files).
    """
    logger = logging_service or LoggingService(log_level=config.LOG_LEVEL)
    clock = SystemClock(config.TIMEZONE or None)
    storage = build_storage(config, logger, clock.today)

    if config.API_BASE_URL:
        combination_source = HttpCombinationSource(config.API_BASE_URL, config.HTTP_TIMEOUT, logging_service=logger)
        puzzle_source = HttpPuzzleSource(
            config.API_BASE_URL,
            config.HTTP_TIMEOUT,
            default_hints=config.DEFAULT_HINTS,
            logging_service=logger,
        )
    else:
        puzzle_clock = PuzzleClock(clock.today, config.LAUNCH_DATE)
        if rules_file:
            combination_source = RuleTableCombinationSource.from_json_file(rules_file, logging_service=logger)
        else:
            combination_source = RuleTableCombinationSource(logging_service=logger)
        if puzzles_file:
            puzzle_source = StaticPuzzleSource.from_json_file(
                puzzles_file, puzzle_clock=puzzle_clock, default_hints=config.DEFAULT_HINTS
            )
        else:
            puzzle_source = StaticPuzzleSource(puzzle_clock=puzzle_clock, default_hints=config.DEFAULT_HINTS)

    return EngineContext(
        storage=storage,
        combination_source=combination_source,
        puzzle_source=puzzle_source,
        clock=clock,
        logging_service=logger,
    )
