"""Pure game rules and constants - no external dependencies."""

from typing import Tuple

from ..models.element import STARTER_ELEMENTS, Element, is_base_name


class GameRules:
    """
    Pure game rules.

    Holds the constants of the daily puzzle and the small formatting rules the
    session and share text depend on.
    """

    # Daily puzzle timing (free play has no limit)
    TIME_LIMIT_SECONDS = 600
    DEFAULT_HINTS = 4
    RECENT_ELEMENTS_CAP = 5

    # Player-facing messages
    NO_COMBINATION_MESSAGE = "These don't combine"
    TRANSIENT_FAILURE_MESSAGE = "Couldn't reach the cauldron. Try again."

    CONGRATS_MESSAGES: Tuple[str, ...] = (
        "Elemental Mastery!",
        "Alchemist Supreme!",
        "Perfect Concoction!",
        "Masterful Mixing!",
        "Element Genius!",
        "Pure Gold!",
        "Crafting Complete!",
        "Discovery Champion!",
        "Element Wizard!",
        "Cauldron King!",
    )

    GAME_OVER_MESSAGES: Tuple[str, ...] = (
        "Time's Up!",
        "The Cauldron Cooled!",
        "Out of Time!",
        "The Magic Faded!",
    )

    @classmethod
    def starter_names(cls) -> Tuple[str, ...]:
        return tuple(name for name, _ in STARTER_ELEMENTS)

    @classmethod
    def is_starter(cls, name: str) -> bool:
        """Check if a name refers to one of the four base elements (Wind counts as Air)."""
        return is_base_name(name)

    @classmethod
    def is_target(cls, element: Element, target: Element) -> bool:
        return element.canonical == target.canonical

    @classmethod
    def format_time(cls, seconds: int) -> str:
        """Format seconds as M:SS."""
        seconds = max(0, int(seconds))
        return f"{seconds // 60}:{seconds % 60:02d}"

    @classmethod
    def par_comparison(cls, moves: int, par: int) -> str:
        """Signed distance from par: "-2", "0" or "+4"."""
        diff = moves - par
        if diff == 0:
            return "0"
        return f"+{diff}" if diff > 0 else str(diff)

    @classmethod
    def congratulation(cls, puzzle_number: int) -> str:
        """Congratulation line; chosen by puzzle number so a replay shows the same one."""
        return cls.CONGRATS_MESSAGES[puzzle_number % len(cls.CONGRATS_MESSAGES)]

    @classmethod
    def game_over_message(cls, puzzle_number: int) -> str:
        return cls.GAME_OVER_MESSAGES[puzzle_number % len(cls.GAME_OVER_MESSAGES)]

    @classmethod
    def is_perfect_solve(cls, hints_used: int, mistakes: int = 0, reveals: int = 0) -> bool:
        return hints_used == 0 and mistakes == 0 and reveals == 0
