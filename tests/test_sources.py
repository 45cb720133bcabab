import asyncio
import json

import pytest

from daily_alchemy.application.services import RuleTableCombinationSource, StaticPuzzleSource, SystemClock
from daily_alchemy.domain.errors import CombinationRefused, InvalidArgument, PuzzleUnavailable
from daily_alchemy.domain.services import PuzzleClock
from daily_alchemy.domain.services.puzzle_clock import DEFAULT_LAUNCH_DATE


def test_rule_table_is_order_and_case_insensitive():
    source = RuleTableCombinationSource()

    async def scenario():
        return await source.combine("WATER", "fire"), await source.combine("Fire", "Water")

    first, second = asyncio.run(scenario())
    assert (first.name, first.glyph) == ("Steam", "♨️")
    assert first.is_global_first_discovery
    assert not second.is_global_first_discovery
    assert source.calls == 2


def test_rule_table_refuses_unknown_pairs_and_handles_self_combination():
    source = RuleTableCombinationSource()
    assert asyncio.run(source.combine("Water", "Water")).name == "Sea"
    with pytest.raises(CombinationRefused):
        asyncio.run(source.combine("Fire", "Fire"))


def test_shared_seen_set_attributes_first_discovery_once():
    seen = set()
    alice = RuleTableCombinationSource(seen=seen)
    bob = RuleTableCombinationSource(seen=seen)
    assert asyncio.run(alice.combine("Earth", "Water")).is_global_first_discovery
    assert not asyncio.run(bob.combine("Water", "Earth")).is_global_first_discovery


def test_every_template_is_solvable_with_the_default_rules():
    source = RuleTableCombinationSource()
    products = set(source.products())
    for iso_date in ["2025-08-15", "2025-08-16", "2025-08-17", "2025-08-18", "2025-08-19"]:
        puzzle = asyncio.run(StaticPuzzleSource(puzzle_clock=PuzzleClock(lambda: DEFAULT_LAUNCH_DATE)).get_puzzle_for_date(iso_date))
        assert puzzle.target in products
        for step in puzzle.solution_path:
            made = asyncio.run(source.combine(step.element_a, step.element_b))
            assert made.name == step.result


def test_rule_table_from_json_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([{"a": "Fire", "b": "Ice", "name": "Water", "glyph": "💧"}]), encoding="utf-8")
    source = RuleTableCombinationSource.from_json_file(str(path))
    assert source.rule_count == 1
    assert asyncio.run(source.combine("ice", "FIRE")).name == "Water"

    broken = tmp_path / "broken.json"
    broken.write_text('[{"a": "Fire"}]', encoding="utf-8")
    with pytest.raises(InvalidArgument):
        RuleTableCombinationSource.from_json_file(str(broken))


def test_static_puzzles_rotate_templates_and_number_by_date():
    clock = PuzzleClock(lambda: DEFAULT_LAUNCH_DATE)
    source = StaticPuzzleSource(puzzle_clock=clock, default_hints=3)

    async def scenario():
        return [await source.get_puzzle_for_date(d) for d in ("2025-08-15", "2025-08-16", "2025-08-20")]

    first, second, sixth = asyncio.run(scenario())
    assert (first.number, first.target, first.time_limit_seconds, first.hints) == (1, "Swamp", 600, 3)
    assert second.target == "Glass"
    assert sixth.number == 6
    assert sixth.target == "Swamp"


def test_static_puzzle_errors(tmp_path):
    with pytest.raises(PuzzleUnavailable):
        asyncio.run(StaticPuzzleSource().get_puzzle_for_date("2025-08-20"))

    bad = StaticPuzzleSource(puzzles={"2025-08-20": {"number": 6, "target": ""}})
    with pytest.raises(PuzzleUnavailable):
        asyncio.run(bad.get_puzzle_for_date("2025-08-20"))

    path = tmp_path / "puzzles.json"
    path.write_text(json.dumps({"2025-08-20": {"number": 6, "target": "Mud", "parMoves": 1}}), encoding="utf-8")
    puzzle = asyncio.run(StaticPuzzleSource.from_json_file(str(path)).get_puzzle_for_date("2025-08-20"))
    assert (puzzle.number, puzzle.target, puzzle.time_limit_seconds) == (6, "Mud", None)

    path.write_text("[]", encoding="utf-8")
    with pytest.raises(InvalidArgument):
        StaticPuzzleSource.from_json_file(str(path))


def test_system_clock_zones():
    clock = SystemClock("UTC")
    assert clock.now().utcoffset().total_seconds() == 0
    assert clock.today() == clock.now().date()
    assert SystemClock().now().tzinfo is not None
    with pytest.raises(InvalidArgument):
        SystemClock("Mars/Olympus_Mons")
