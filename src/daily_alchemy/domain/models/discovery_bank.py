"""Domain model for the player's discovery bank."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .element import BASE_ALIASES, Element, canonical_name, starter_elements

NEW_BADGE_LIMIT = 5


class BankOrder(Enum):
    """Sort orders offered by the element bank."""

    NEWEST = "newest"
    ALPHABETICAL = "alphabetical"
    FIRST_DISCOVERIES = "first_discoveries"


@dataclass(frozen=True)
class DiscoveryEvent:
    """Emitted once when an element enters the bank."""

    element: Element
    was_first_global: bool

    @property
    def name(self) -> str:
        return self.element.name

    @property
    def glyph(self) -> str:
        return self.element.glyph


DiscoveryListener = Callable[[DiscoveryEvent], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DiscoveryBank:
    """
    Ordered set of elements the player has seen.

    Keeps two indices: insertion order (never reordered) and canonical name.
    The bank only ever grows; there is no removal operation.
    """

    def __init__(self, elements: Iterable[Element] = (), now_provider: Callable[[], datetime] = _utc_now):
        self._order: List[Element] = []
        self._by_name: Dict[str, Element] = {}
        self._listeners: List[DiscoveryListener] = []
        self._now = now_provider
        self._version = 0
        self._views: Dict[BankOrder, Tuple[int, Tuple[Element, ...]]] = {}

        for element in elements:
            self._append(element)

    @classmethod
    def with_starters(cls, now_provider: Callable[[], datetime] = _utc_now) -> "DiscoveryBank":
        """Create a bank seeded with the four base elements."""
        return cls(starter_elements(), now_provider=now_provider)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Element]:
        return iter(tuple(self._order))

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    @property
    def version(self) -> int:
        """Incremented on every insertion; lets callers detect change cheaply."""
        return self._version

    @property
    def names(self) -> List[str]:
        return [element.name for element in self._order]

    def _lookup_key(self, name: str) -> Optional[str]:
        key = canonical_name(name)
        if key in self._by_name:
            return key
        alias = BASE_ALIASES.get(key)
        if alias and alias in self._by_name and self._by_name[alias].is_base:
            return alias
        return None

    def contains(self, name: str) -> bool:
        """Case-insensitive membership test."""
        return self._lookup_key(name) is not None

    def get(self, name: str) -> Optional[Element]:
        key = self._lookup_key(name)
        return self._by_name[key] if key is not None else None

    def subscribe(self, listener: DiscoveryListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: DiscoveryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _append(self, element: Element) -> bool:
        key = element.canonical
        if key in self._by_name:
            return False
        self._order.append(element)
        self._by_name[key] = element
        self._version += 1
        return True

    def add(self, element: Element, is_first_discovery: Optional[bool] = None) -> Optional[DiscoveryEvent]:
        """
        Add an element, stamping its discovery time.

        Returns the DiscoveryEvent (also delivered to listeners) or None when the
        element was already present.
        """
        if self.contains(element.name):
            return None

        first = element.is_first_discovery if is_first_discovery is None else is_first_discovery
        stamped = element.discovered(element.discovered_at or self._now(), first)
        self._append(stamped)

        event = DiscoveryEvent(element=stamped, was_first_global=first)
        for listener in list(self._listeners):
            listener(event)
        return event

    def absorb(self, elements: Iterable[Element]) -> int:
        """Add already-stamped elements silently (e.g. restoring progress). Returns count added."""
        return sum(1 for element in elements if self._append(element))

    def sorted(self, order: BankOrder = BankOrder.NEWEST) -> Tuple[Element, ...]:
        """
        View of the bank in the requested order.

        Views are cached per order and reused until the next insertion, so repeated
        calls do not copy.
        """
        cached = self._views.get(order)
        if cached is not None and cached[0] == self._version:
            return cached[1]

        if order == BankOrder.NEWEST:
            view = tuple(reversed(self._order))
        elif order == BankOrder.ALPHABETICAL:
            view = tuple(sorted(self._order, key=lambda element: element.canonical))
        else:
            newest = list(reversed(self._order))
            view = tuple([e for e in newest if e.is_first_discovery] + [e for e in newest if not e.is_first_discovery])

        self._views[order] = (self._version, view)
        return view

    def search(self, query: str, order: BankOrder = BankOrder.NEWEST) -> List[Element]:
        """Case-insensitive substring filter over names."""
        needle = canonical_name(query or "")
        view = self.sorted(order)
        if not needle:
            return list(view)
        return [element for element in view if needle in element.canonical]

    def recent(self, n: int = NEW_BADGE_LIMIT) -> List[Element]:
        """Last n non-base discoveries, newest first."""
        if n <= 0:
            return []
        discovered = [element for element in reversed(self._order) if not element.is_base]
        return discovered[:n]

    def is_new(self, name: str, limit: int = NEW_BADGE_LIMIT) -> bool:
        """Whether an element should carry the NEW badge."""
        key = canonical_name(name)
        return any(element.canonical == key for element in self.recent(limit))

    def first_discoveries(self) -> List[Element]:
        return [element for element in self._order if element.is_first_discovery]

    def to_records(self) -> List[dict]:
        return [element.to_dict() for element in self._order]

    @classmethod
    def from_records(
        cls, records: Iterable[dict], now_provider: Callable[[], datetime] = _utc_now
    ) -> "DiscoveryBank":
        """Rebuild a bank from persisted records, ensuring the base elements are present."""
        bank = cls(starter_elements(), now_provider=now_provider)
        bank.absorb(Element.from_dict(record) for record in records)
        return bank
