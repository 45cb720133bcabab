"""Domain model for element combinations."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from ..errors import InvalidArgument
from .element import NAME_SEPARATOR, Element, canonical_name

KEY_SEPARATOR = NAME_SEPARATOR


@dataclass(frozen=True)
class CombinationKey:
    """
    Unordered pair of element names in canonical form.

    Both names are canonicalised and sorted by code point, so {Fire, Water} and
    {water, FIRE} produce the same key. Self-combination keys repeat the name.
    """

    first: str
    second: str

    def __post_init__(self):
        if not self.first or not self.second:
            raise InvalidArgument("Combination key needs two non-empty names")
        if KEY_SEPARATOR in self.first or KEY_SEPARATOR in self.second:
            raise InvalidArgument(f"Combination key names cannot contain {KEY_SEPARATOR!r}")
        if self.first > self.second:
            raise InvalidArgument(f"Combination key is not sorted: {self.first!r} > {self.second!r}")

    def __str__(self) -> str:
        return f"{self.first}{KEY_SEPARATOR}{self.second}"

    @property
    def is_self_combination(self) -> bool:
        return self.first == self.second

    @property
    def names(self) -> Tuple[str, str]:
        return (self.first, self.second)

    @classmethod
    def of(cls, name_a: str, name_b: str) -> "CombinationKey":
        """Build the canonical key for two names in any order or casing."""
        first, second = sorted((canonical_name(name_a), canonical_name(name_b)))
        return cls(first, second)

    @classmethod
    def for_elements(cls, a: Element, b: Element) -> "CombinationKey":
        return cls.of(a.name, b.name)

    @classmethod
    def parse(cls, text: str) -> "CombinationKey":
        """Parse the persisted `a|b` form, re-canonicalising both halves."""
        parts = text.split(KEY_SEPARATOR)
        if len(parts) != 2:
            raise InvalidArgument(f"Malformed combination key: {text!r}")
        return cls.of(parts[0], parts[1])


class CombinationStatus(Enum):
    """Outcome tag of a combination attempt."""

    PRODUCT = "product"  # The pair produced an element
    BLOCKED = "blocked"  # The source says these cannot combine (cached like a product)
    TRANSIENT = "transient"  # Source failed after retries; nothing was cached


@dataclass(frozen=True)
class CombinationResult:
    """
    Result of asking the oracle to combine two elements.

    A tagged outcome: PRODUCT carries the element, BLOCKED is the cached
    "cannot combine" answer, TRANSIENT means the move did not happen.
    """

    key: CombinationKey
    status: CombinationStatus
    product: Optional[Element] = None
    cached: bool = False
    first_discovery: bool = False
    error_message: Optional[str] = None

    def __post_init__(self):
        """Validate result on creation."""
        if self.status == CombinationStatus.PRODUCT and self.product is None:
            raise InvalidArgument("Product status requires a product element")

        if self.status != CombinationStatus.PRODUCT and self.product is not None:
            raise InvalidArgument("Only a product result can carry an element")

        if self.status == CombinationStatus.TRANSIENT and not self.error_message:
            raise InvalidArgument("Transient status requires an error message")

    @property
    def is_product(self) -> bool:
        return self.status == CombinationStatus.PRODUCT

    @property
    def is_blocked(self) -> bool:
        return self.status == CombinationStatus.BLOCKED

    @property
    def is_transient(self) -> bool:
        """Check if the caller should offer a retry."""
        return self.status == CombinationStatus.TRANSIENT

    def as_cached(self) -> "CombinationResult":
        """Copy of this result as seen by a caller that did not trigger the source call."""
        return replace(self, cached=True, first_discovery=False)

    @classmethod
    def product_of(
        cls, key: CombinationKey, product: Element, cached: bool = False, first_discovery: bool = False
    ) -> "CombinationResult":
        """Create a product result."""
        return cls(
            key=key,
            status=CombinationStatus.PRODUCT,
            product=product,
            cached=cached,
            first_discovery=first_discovery,
        )

    @classmethod
    def blocked(cls, key: CombinationKey, cached: bool = False) -> "CombinationResult":
        """Create a "these don't combine" result."""
        return cls(key=key, status=CombinationStatus.BLOCKED, cached=cached)

    @classmethod
    def transient(cls, key: CombinationKey, reason: str) -> "CombinationResult":
        """Create a transient-failure result."""
        return cls(key=key, status=CombinationStatus.TRANSIENT, error_message=reason)


@dataclass(frozen=True)
class PathStep:
    """One successful combination recorded in a session's combination path."""

    first: str
    second: str
    result: str

    def to_dict(self) -> dict:
        return {"from": [self.first, self.second], "result": self.result}

    @classmethod
    def from_dict(cls, data: dict) -> "PathStep":
        sources = data.get("from") or []
        if len(sources) != 2 or not data.get("result"):
            raise InvalidArgument(f"Malformed path step: {data!r}")
        return cls(first=sources[0], second=sources[1], result=data["result"])

    def produces(self, name: str) -> bool:
        return canonical_name(self.result) == canonical_name(name)


def path_to_dicts(path: List[PathStep]) -> List[dict]:
    return [step.to_dict() for step in path]
