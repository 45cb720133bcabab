"""In-process combination source backed by a rule table."""

import json
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from daily_alchemy.application.interfaces import ICombinationSource, ILoggingService, SourceElement
from daily_alchemy.domain.errors import CombinationRefused, InvalidArgument
from daily_alchemy.domain.models import CombinationKey, canonical_name

RuleKey = FrozenSet[str]

DEFAULT_RULES: Dict[RuleKey, Tuple[str, str]] = {
    frozenset({"fire", "water"}): ("Steam", "♨️"),
    frozenset({"air", "water"}): ("Rain", "🌧️"),
    frozenset({"air", "fire"}): ("Energy", "⚡"),
    frozenset({"air", "earth"}): ("Dust", "🌫️"),
    frozenset({"earth", "water"}): ("Mud", "🟤"),
    frozenset({"earth", "fire"}): ("Lava", "🌋"),
    frozenset({"water"}): ("Sea", "🌊"),
    frozenset({"earth"}): ("Land", "🏞️"),
    frozenset({"air"}): ("Pressure", "🎈"),
    frozenset({"earth", "rain"}): ("Plant", "🌱"),
    frozenset({"mud", "plant"}): ("Swamp", "🐊"),
    frozenset({"lava", "water"}): ("Stone", "🪨"),
    frozenset({"air", "lava"}): ("Stone", "🪨"),
    frozenset({"plant", "water"}): ("Algae", "🦠"),
    frozenset({"fire", "stone"}): ("Metal", "⚙️"),
    frozenset({"air", "stone"}): ("Sand", "🏖️"),
    frozenset({"fire", "sand"}): ("Glass", "🥛"),
    frozenset({"fire", "plant"}): ("Ash", "⚱️"),
    frozenset({"air", "steam"}): ("Cloud", "☁️"),
    frozenset({"cloud", "water"}): ("Rain", "🌧️"),
    frozenset({"energy", "plant"}): ("Tree", "🌳"),
    frozenset({"fire", "tree"}): ("Charcoal", "🪵"),
    frozenset({"tree"}): ("Forest", "🌲"),
    frozenset({"energy", "metal"}): ("Electricity", "🔌"),
    frozenset({"glass", "sand"}): ("Hourglass", "⌛"),
    frozenset({"cloud", "energy"}): ("Storm", "⛈️"),
    frozenset({"electricity", "glass"}): ("Light Bulb", "💡"),
    frozenset({"sea", "earth"}): ("Island", "🏝️"),
    frozenset({"land", "plant"}): ("Garden", "🪴"),
    frozenset({"lava", "sea"}): ("Volcano", "🌋"),
    frozenset({"dust", "fire"}): ("Gunpowder", "🧨"),
    frozenset({"algae", "sea"}): ("Life", "🧬"),
}


def _rule_key(name_a: str, name_b: str) -> RuleKey:
    return frozenset(CombinationKey.of(name_a, name_b).names)


class RuleTableCombinationSource(ICombinationSource):
    """
    Combination source that looks pairs up in a rule table.

    Unknown pairs are refused. Global first-discovery attribution uses a "seen"
    set that can be shared between sources to simulate other players.
    """

    def __init__(
        self,
        rules: Optional[Dict[RuleKey, Tuple[str, str]]] = None,
        seen: Optional[Set[str]] = None,
        logging_service: Optional[ILoggingService] = None,
    ):
        source_rules = DEFAULT_RULES if rules is None else rules
        self._rules: Dict[RuleKey, Tuple[str, str]] = {
            frozenset(canonical_name(name) for name in key): value for key, value in source_rules.items()
        }
        self._seen = seen if seen is not None else set()
        self.logger = logging_service
        self.calls = 0

    @property
    def rule_count(self) -> int:
        return len(self._rules)

    async def combine(self, name_a: str, name_b: str) -> SourceElement:
        self.calls += 1
        rule = self._rules.get(_rule_key(name_a, name_b))
        if rule is None:
            raise CombinationRefused(f"{name_a} + {name_b} has no product")

        name, glyph = rule
        key = canonical_name(name)
        first = key not in self._seen
        self._seen.add(key)
        if self.logger:
            self.logger.debug(f"📖 Rule {name_a} + {name_b} → {name}{' (first)' if first else ''}")
        return SourceElement(name=name, glyph=glyph, is_global_first_discovery=first)

    def products(self) -> Iterable[str]:
        return sorted({name for name, _ in self._rules.values()})

    @classmethod
    def from_json_file(cls, path: str, **kwargs) -> "RuleTableCombinationSource":
        """
        Load rules from JSON: a list of {"a", "b", "name", "glyph"} objects.
        """
        try:
            entries = json.loads(Path(path).read_text(encoding="utf-8"))
            rules = {
                frozenset({canonical_name(entry["a"]), canonical_name(entry["b"])}): (entry["name"], entry["glyph"])
                for entry in entries
            }
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise InvalidArgument(f"Cannot load rule table from {path}: {e}") from e
        return cls(rules=rules, **kwargs)
