"""Domain services for the Daily Alchemy engine."""

from .achievements import Achievement, AchievementKind, AchievementRules, AchievementUnlocked
from .game_rules import GameRules
from .hint_planner import HintPlan, HintPlanner
from .puzzle_clock import MonthRange, PuzzleClock
from .share_encoder import ShareInput, ShareStep, encode_share_text, winning_path
from .stats_logic import StatsLogic

__all__ = [
    "Achievement",
    "AchievementKind",
    "AchievementRules",
    "AchievementUnlocked",
    "GameRules",
    "HintPlan",
    "HintPlanner",
    "MonthRange",
    "PuzzleClock",
    "ShareInput",
    "ShareStep",
    "encode_share_text",
    "winning_path",
    "StatsLogic",
]
