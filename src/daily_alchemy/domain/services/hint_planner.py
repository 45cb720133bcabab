"""Hint selection over a puzzle's reference solution."""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..models.element import canonical_name
from ..models.puzzle import SolutionStep
from ..models.session import PendingHint
from .game_rules import GameRules

SLOT_A = "A"
SLOT_B = "B"


@dataclass(frozen=True)
class HintPlan:
    """Which element a hint selects and into which slot."""

    slot: str
    element_name: str
    pending: Optional[PendingHint]


class HintPlanner:
    """
    Picks the next hint from a solution path.

    Prefers the step closest to the target that the player can make right now.
    When no such step exists it walks back from the last unfinished step to the
    step that produces its missing input. A second hint in a row for the same
    step completes the pair in slot B.
    """

    @classmethod
    def plan(
        cls,
        solution_path: Sequence[SolutionStep],
        is_discovered: Callable[[str], bool],
        pending: Optional[PendingHint] = None,
        selection_a: Optional[str] = None,
    ) -> Optional[HintPlan]:
        if not solution_path:
            return None

        if (
            pending is not None
            and selection_a is not None
            and canonical_name(selection_a) == canonical_name(pending.first)
            and not is_discovered(pending.step.result)
        ):
            return HintPlan(slot=SLOT_B, element_name=pending.second, pending=None)

        step = cls._ready_step(solution_path, is_discovered) or cls._feeder_step(solution_path, is_discovered)
        if step is None:
            return None

        first, second = cls._order_inputs(step)
        return HintPlan(slot=SLOT_A, element_name=first, pending=PendingHint(step=step, first=first, second=second))

    @staticmethod
    def _starter_count(step: SolutionStep) -> int:
        return sum(1 for name in step.inputs if GameRules.is_starter(name))

    @classmethod
    def _ready_step(
        cls, solution_path: Sequence[SolutionStep], is_discovered: Callable[[str], bool]
    ) -> Optional[SolutionStep]:
        ready: List[Tuple[int, SolutionStep]] = [
            (index, step)
            for index, step in enumerate(solution_path)
            if not is_discovered(step.result) and is_discovered(step.element_a) and is_discovered(step.element_b)
        ]
        if not ready:
            return None
        ready.sort(key=lambda item: (-item[0], cls._starter_count(item[1])))
        return ready[0][1]

    @staticmethod
    def _feeder_step(
        solution_path: Sequence[SolutionStep], is_discovered: Callable[[str], bool]
    ) -> Optional[SolutionStep]:
        unfinished = next((step for step in reversed(solution_path) if not is_discovered(step.result)), None)
        if unfinished is None:
            return None

        if not is_discovered(unfinished.element_a):
            needed = unfinished.element_a
        elif not is_discovered(unfinished.element_b):
            needed = unfinished.element_b
        else:
            return None

        needed_key = canonical_name(needed)
        return next(
            (
                step
                for step in solution_path
                if canonical_name(step.result) == needed_key
                and is_discovered(step.element_a)
                and is_discovered(step.element_b)
            ),
            None,
        )

    @staticmethod
    def _order_inputs(step: SolutionStep) -> Tuple[str, str]:
        """Non-starter input first; otherwise keep the recorded order."""
        a_is_starter = GameRules.is_starter(step.element_a)
        b_is_starter = GameRules.is_starter(step.element_b)
        if a_is_starter and not b_is_starter:
            return step.element_b, step.element_a
        return step.element_a, step.element_b
