"""Application services for the Daily Alchemy engine."""

from .clock_service import SystemClock
from .combination_oracle import CombinationOracle
from .engine import AlchemyEngine, EngineContext, EngineSettings, build_default_context, build_storage
from .event_service import EngineEvents
from .game_session import GameSession, SessionSettings
from .http_sources import HttpCombinationSource, HttpPuzzleSource
from .json_repository import JsonRepository
from .logging_service import LoggingService, NullLoggingService, TimingContext, timing_decorator
from .rule_table_source import RuleTableCombinationSource
from .save_io import SaveData, SaveParseResult, parse_save_file, serialize_save
from .static_puzzle_source import StaticPuzzleSource
from .stats_service import StatsLedger
from .storage_service import StorageService
from .storage_tiers import FileKeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from .timing_service import RetryPolicy, TimingService

__all__ = [
    "AlchemyEngine",
    "CombinationOracle",
    "EngineContext",
    "EngineEvents",
    "EngineSettings",
    "FileKeyValueStore",
    "GameSession",
    "HttpCombinationSource",
    "HttpPuzzleSource",
    "JsonRepository",
    "LoggingService",
    "MemoryKeyValueStore",
    "NullLoggingService",
    "RetryPolicy",
    "RuleTableCombinationSource",
    "SaveData",
    "SaveParseResult",
    "SessionSettings",
    "SqliteKeyValueStore",
    "StaticPuzzleSource",
    "StatsLedger",
    "StorageService",
    "SystemClock",
    "TimingContext",
    "TimingService",
    "build_default_context",
    "build_storage",
    "parse_save_file",
    "serialize_save",
    "timing_decorator",
]
