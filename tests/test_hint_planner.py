from conftest import SWAMP_PUZZLE

from daily_alchemy.domain.models import Puzzle, canonical_name
from daily_alchemy.domain.services import HintPlanner

STARTERS = {"earth", "water", "fire", "air"}


def solution():
    return Puzzle.from_dict(dict(SWAMP_PUZZLE, number=6, date="2025-08-20")).solution_path


def discovered(*extra):
    known = STARTERS | {canonical_name(name) for name in extra}
    return lambda name: canonical_name(name) in known


def test_first_hint_points_at_the_latest_makeable_step():
    plan = HintPlanner.plan(solution(), discovered())
    assert plan.slot == "A"
    assert plan.element_name == "Air"
    assert plan.pending.second == "Water"
    assert plan.pending.step.result == "Rain"


def test_consecutive_hint_fills_the_second_slot():
    first = HintPlanner.plan(solution(), discovered())
    second = HintPlanner.plan(solution(), discovered(), pending=first.pending, selection_a="air")
    assert second.slot == "B"
    assert second.element_name == "Water"
    assert second.pending is None


def test_pending_hint_is_ignored_once_its_step_is_made():
    first = HintPlanner.plan(solution(), discovered())
    plan = HintPlanner.plan(solution(), discovered("Rain"), pending=first.pending, selection_a="Air")
    assert plan.slot == "A"
    assert plan.pending.step.result == "Plant"


def test_non_starter_input_goes_first():
    plan = HintPlanner.plan(solution(), discovered("Rain"))
    assert plan.element_name == "Rain"
    assert plan.pending.second == "Earth"


def test_final_step_once_both_inputs_exist():
    plan = HintPlanner.plan(solution(), discovered("Mud", "Rain", "Plant"))
    assert plan.pending.step.result == "Swamp"
    assert plan.element_name == "Mud"


def test_no_hint_without_a_path_or_when_everything_is_made():
    assert HintPlanner.plan([], discovered()) is None
    assert HintPlanner.plan(solution(), discovered("Mud", "Rain", "Plant", "Swamp")) is None
