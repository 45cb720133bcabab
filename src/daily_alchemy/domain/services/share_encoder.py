"""Share text encoding for completed puzzles."""

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from ..models.combination import PathStep
from ..models.element import canonical_name
from .game_rules import GameRules

DEFAULT_SHARE_URL = "dailyalchemy.fun"
STEP_ARROW = "➡️"


@dataclass(frozen=True)
class ShareStep:
    """Glyphs of one winning combination."""

    glyph_a: str
    glyph_b: str
    glyph_result: str

    def render(self) -> str:
        return f"{self.glyph_a} + {self.glyph_b} {STEP_ARROW} {self.glyph_result}"


@dataclass(frozen=True)
class ShareInput:
    """Everything the share text shows."""

    puzzle_number: int
    elapsed_seconds: int
    moves: int
    par_moves: int
    hints_used: int = 0
    first_discoveries: int = 0
    steps: Tuple[ShareStep, ...] = field(default_factory=tuple)


def winning_path(combination_path: Sequence[PathStep], target: str) -> List[PathStep]:
    """
    Minimal subsequence of the path that produces the target.

    Walks back from the last step producing the target, pulling in the latest
    earlier step that produced each non-starter input. Steps keep their order.
    """
    chosen = set()

    def resolve(name: str, before: int) -> None:
        key = canonical_name(name)
        for index in range(before - 1, -1, -1):
            if canonical_name(combination_path[index].result) == key:
                if index not in chosen:
                    chosen.add(index)
                    step = combination_path[index]
                    for source in (step.first, step.second):
                        if not GameRules.is_starter(source):
                            resolve(source, index)
                return

    resolve(target, len(combination_path))
    return [combination_path[index] for index in sorted(chosen)]


def share_steps(path: Sequence[PathStep], glyph_for: Callable[[str], str]) -> Tuple[ShareStep, ...]:
    return tuple(ShareStep(glyph_for(step.first), glyph_for(step.second), glyph_for(step.result)) for step in path)


def encode_share_text(share: ShareInput, share_url: str = DEFAULT_SHARE_URL) -> str:
    """
    Render the share text. The line layout is stable; consumers parse it.

    Daily Alchemy #12
    ⏱️ 3:07
    🧮 14 moves (Par: 12)
    💡 Hints: 1
    🏆 First discoveries: 2
    💧 + 🔥 ➡️ 💨

    dailyalchemy.fun
    """
    lines = [
        f"Daily Alchemy #{share.puzzle_number}",
        f"⏱️ {GameRules.format_time(share.elapsed_seconds)}",
        f"🧮 {share.moves} moves (Par: {share.par_moves})",
    ]
    if share.hints_used > 0:
        lines.append(f"💡 Hints: {share.hints_used}")
    if share.first_discoveries > 0:
        lines.append(f"🏆 First discoveries: {share.first_discoveries}")
    lines.extend(step.render() for step in share.steps)
    lines.append("")
    lines.append(share_url)
    return "\n".join(lines)
