"""Domain models for the Daily Alchemy engine."""

from .combination import CombinationKey, CombinationResult, CombinationStatus, PathStep
from .discovery_bank import BankOrder, DiscoveryBank, DiscoveryEvent
from .element import Element, ElementKind, ElementSource, canonical_name, grapheme_count
from .puzzle import Puzzle, SolutionStep
from .session import CompletionSummary, PendingHint, SavedProgress, SessionState, SessionStatus
from .stats import AggregateStats, DayStats

__all__ = [
    "Element",
    "ElementKind",
    "ElementSource",
    "canonical_name",
    "grapheme_count",
    "CombinationKey",
    "CombinationResult",
    "CombinationStatus",
    "PathStep",
    "BankOrder",
    "DiscoveryBank",
    "DiscoveryEvent",
    "Puzzle",
    "SolutionStep",
    "CompletionSummary",
    "PendingHint",
    "SavedProgress",
    "SessionState",
    "SessionStatus",
    "AggregateStats",
    "DayStats",
]
