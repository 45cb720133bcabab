"""Domain model for alchemy elements."""

import hashlib
import unicodedata
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from ..errors import InvalidArgument

# Starting elements (same every day), in bank order
STARTER_ELEMENTS: Tuple[Tuple[str, str], ...] = (
    ("Earth", "🌍"),
    ("Water", "💧"),
    ("Fire", "🔥"),
    ("Air", "💨"),
)

# Older puzzle data calls the fourth base element "Wind"
BASE_ALIASES: Dict[str, str] = {"wind": "air"}

MAX_GLYPH_CLUSTERS = 8
DEFAULT_GLYPH = "✨"

# Joins the two names of a combination key, so it cannot appear inside a name
NAME_SEPARATOR = "|"

_ZWJ = 0x200D


def canonical_name(name: str) -> str:
    """
    Canonical form of an element name: trimmed, NFC-normalised and case-folded.

    This is the only notion of name equality in the engine; the visible casing
    of a name is a display attribute.
    """
    if name is None:
        raise InvalidArgument("Element name cannot be None")
    folded = unicodedata.normalize("NFC", name.strip()).casefold()
    return unicodedata.normalize("NFC", folded)


def element_id_for(name: str) -> str:
    """Stable identifier derived from the canonical name."""
    return hashlib.sha1(canonical_name(name).encode("utf-8")).hexdigest()[:16]


def _extends_cluster(code_point: int, char: str) -> bool:
    if unicodedata.category(char) in ("Mn", "Me", "Mc"):
        return True
    return (
        0xFE00 <= code_point <= 0xFE0F  # variation selectors
        or 0x1F3FB <= code_point <= 0x1F3FF  # skin tone modifiers
        or 0xE0020 <= code_point <= 0xE007F  # tag sequences
        or code_point == _ZWJ
    )


def grapheme_count(text: str) -> int:
    """
    Count user-perceived characters in a glyph.

    Follows the extended grapheme cluster rules that matter for emoji: combining
    marks, variation selectors, skin tones, ZWJ sequences, tag sequences and
    regional-indicator pairs all stay inside one cluster.
    """
    count = 0
    joined = False
    regional_run = 0

    for char in text:
        code_point = ord(char)
        is_regional = 0x1F1E6 <= code_point <= 0x1F1FF

        if count == 0:
            count = 1
        elif joined or _extends_cluster(code_point, char):
            pass
        elif is_regional and regional_run % 2 == 1:
            pass
        else:
            count += 1

        joined = code_point == _ZWJ
        regional_run = regional_run + 1 if is_regional else 0

    return count


class ElementKind(Enum):
    """How an element entered the game."""

    BASE = "base"  # One of the four starters
    COMBINATION = "combination"  # Produced by combining two elements


@dataclass(frozen=True)
class ElementSource:
    """Provenance of an element."""

    kind: ElementKind = ElementKind.COMBINATION
    parents: Optional[Tuple[str, str]] = None

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "parents": list(self.parents) if self.parents else None}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ElementSource":
        if not data:
            return cls()
        parents = data.get("parents")
        return cls(
            kind=ElementKind(data.get("kind", ElementKind.COMBINATION.value)),
            parents=(parents[0], parents[1]) if parents else None,
        )


@dataclass(frozen=True, eq=False)
class Element:
    """
    Domain model representing an alchemy element.

    Immutable; identity is the canonical name, so two records for "Steam" and
    "steam" compare equal and hash identically regardless of glyph or timestamps.
    """

    name: str
    glyph: str = DEFAULT_GLYPH
    element_id: str = ""
    discovered_at: Optional[datetime] = None
    is_first_discovery: bool = False
    source: ElementSource = field(default_factory=ElementSource)

    def __post_init__(self):
        """Validate element data on creation."""
        if not self.name or not self.name.strip():
            raise InvalidArgument("Element name cannot be empty")
        if NAME_SEPARATOR in self.name:
            raise InvalidArgument(f"Element name cannot contain {NAME_SEPARATOR!r}: {self.name!r}")

        clusters = grapheme_count(self.glyph or "")
        if not 1 <= clusters <= MAX_GLYPH_CLUSTERS:
            raise InvalidArgument(
                f"Glyph for '{self.name}' must be 1-{MAX_GLYPH_CLUSTERS} characters, got {clusters}"
            )

        if not self.element_id:
            object.__setattr__(self, "element_id", element_id_for(self.name))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self.canonical == other.canonical

    def __hash__(self) -> int:
        return hash(self.canonical)

    @property
    def canonical(self) -> str:
        """Canonical (case-folded) name used for every comparison."""
        return canonical_name(self.name)

    @property
    def display_name(self) -> str:
        """Get display name with glyph."""
        return f"{self.glyph} {self.name}"

    @property
    def glyph_width(self) -> int:
        """Number of grapheme clusters in the glyph; layouts widen for 3 or more."""
        return grapheme_count(self.glyph)

    @property
    def is_base(self) -> bool:
        return self.source.kind == ElementKind.BASE

    def discovered(self, discovered_at: datetime, is_first_discovery: bool = False) -> "Element":
        """Copy of this element stamped with discovery details."""
        return replace(self, discovered_at=discovered_at, is_first_discovery=is_first_discovery)

    def renamed(self, name: str, glyph: Optional[str] = None) -> "Element":
        """Copy carrying a different display casing (and optionally glyph)."""
        return replace(self, name=name, glyph=glyph or self.glyph, element_id=element_id_for(name))

    @classmethod
    def base(cls, name: str, glyph: str) -> "Element":
        return cls(name=name, glyph=glyph, source=ElementSource(kind=ElementKind.BASE))

    @classmethod
    def from_dict(cls, data: dict) -> "Element":
        """Create Element from a persisted record."""
        discovered_at = data.get("discovered_at")
        return cls(
            name=data["name"],
            glyph=data.get("glyph") or DEFAULT_GLYPH,
            element_id=data.get("id", ""),
            discovered_at=datetime.fromisoformat(discovered_at) if discovered_at else None,
            is_first_discovery=bool(data.get("is_first_discovery", False)),
            source=ElementSource.from_dict(data.get("source")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.element_id,
            "name": self.name,
            "glyph": self.glyph,
            "discovered_at": self.discovered_at.isoformat() if self.discovered_at else None,
            "is_first_discovery": self.is_first_discovery,
            "source": self.source.to_dict(),
        }


def starter_elements() -> Tuple[Element, ...]:
    """The four base elements present in every bank from genesis."""
    return tuple(Element.base(name, glyph) for name, glyph in STARTER_ELEMENTS)


def is_base_name(name: str) -> bool:
    key = canonical_name(name)
    key = BASE_ALIASES.get(key, key)
    return any(canonical_name(starter) == key for starter, _ in STARTER_ELEMENTS)
