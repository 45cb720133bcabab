"""
Export and import of free-play saves as `.da` files.

The file is JSON:
    {"version": 1, "exportedAt": ..., "game": "daily-alchemy-creative",
     "save": {"slotName", "elementBank", "totalMoves", "totalDiscoveries",
              "firstDiscoveries", "firstDiscoveryElements"}}
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from daily_alchemy.domain.errors import InvalidArgument
from daily_alchemy.domain.models import DiscoveryBank, Element

SAVE_VERSION = 1
SAVE_GAME_ID = "daily-alchemy-creative"
SAVE_FILE_EXTENSION = ".da"
MAX_BANK_SIZE = 10000
MAX_NAME_LENGTH = 200
MAX_SLOT_NAME_LENGTH = 30


@dataclass
class SaveData:
    """Contents of a free-play save."""

    bank: DiscoveryBank
    total_moves: int = 0
    total_discoveries: int = 0
    first_discoveries: int = 0
    first_discovery_elements: List[str] = field(default_factory=list)
    slot_name: Optional[str] = None


@dataclass(frozen=True)
class SaveParseResult:
    success: bool
    data: Optional[SaveData] = None
    error: Optional[str] = None


def serialize_save(save: SaveData, exported_at: Optional[datetime] = None) -> dict:
    """Build the JSON-ready `.da` document."""
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "version": SAVE_VERSION,
        "exportedAt": exported_at.isoformat(),
        "game": SAVE_GAME_ID,
        "save": {
            "slotName": save.slot_name,
            "elementBank": [
                {"name": element.name, "emoji": element.glyph, "isFirstDiscovery": element.is_first_discovery}
                for element in save.bank
            ],
            "totalMoves": save.total_moves,
            "totalDiscoveries": save.total_discoveries,
            "firstDiscoveries": save.first_discoveries,
            "firstDiscoveryElements": list(save.first_discovery_elements),
        },
    }


def dumps_save(save: SaveData, exported_at: Optional[datetime] = None) -> str:
    return json.dumps(serialize_save(save, exported_at), ensure_ascii=False, indent=2)


def save_file_name(slot_name: Optional[str], now: datetime) -> str:
    """File name like "Save-1 (Feb 10, 2026, 09-24 AM).da"."""
    name = re.sub(r"[^a-zA-Z0-9 _-]", "", slot_name or "Creative Save").strip() or "Creative Save"
    stamp = f"{now.strftime('%b')} {now.day}, {now.year}, {now.strftime('%I-%M %p')}"
    return f"{name} ({stamp}){SAVE_FILE_EXTENSION}"


def validate_save_data(data) -> Optional[str]:
    """Return an error message for an invalid document, None when it is valid."""
    if not isinstance(data, dict):
        return "Invalid file structure."

    version = data.get("version")
    if not isinstance(version, int) or isinstance(version, bool) or version < 1:
        return "Invalid or missing save version."
    if version > SAVE_VERSION:
        return f"This save was created with a newer version (v{version}). Please update the app."

    if data.get("game") != SAVE_GAME_ID:
        return "This file is not a Daily Alchemy creative mode save."

    save = data.get("save")
    if not isinstance(save, dict):
        return "Save data is missing."

    bank = save.get("elementBank")
    if not isinstance(bank, list) or not bank:
        return "Element bank is empty or missing."
    if len(bank) > MAX_BANK_SIZE:
        return "Element bank is too large."

    for i, record in enumerate(bank):
        if not isinstance(record, dict):
            return f"Invalid element at position {i}."
        name = record.get("name")
        if not isinstance(name, str) or not name.strip():
            return f"Element at position {i} has an invalid name."
        if len(name) > MAX_NAME_LENGTH:
            return f"Element name at position {i} is too long."
        glyph = record.get("emoji")
        if not isinstance(glyph, str) or not glyph.strip():
            return f"Element at position {i} has an invalid emoji."

    for key in ("totalMoves", "totalDiscoveries", "firstDiscoveries"):
        value = save.get(key)
        if value is not None and (not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0):
            return f"Invalid value for {key}."

    firsts = save.get("firstDiscoveryElements")
    if firsts is not None:
        if not isinstance(firsts, list):
            return "Invalid firstDiscoveryElements."
        if not all(isinstance(name, str) for name in firsts):
            return "Invalid entries in firstDiscoveryElements."

    slot_name = save.get("slotName")
    if slot_name is not None and (not isinstance(slot_name, str) or len(slot_name) > MAX_SLOT_NAME_LENGTH):
        return "Invalid slot name in save file."

    return None


def parse_save_file(text: str) -> SaveParseResult:
    """Parse and validate `.da` text; failures come back as an error message."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return SaveParseResult(success=False, error="Invalid file format. The file could not be parsed.")

    error = validate_save_data(data)
    if error:
        return SaveParseResult(success=False, error=error)

    save = data["save"]
    try:
        elements = [
            Element(name=record["name"].strip(), glyph=record["emoji"], is_first_discovery=bool(record.get("isFirstDiscovery")))
            for record in save["elementBank"]
        ]
    except InvalidArgument as e:
        return SaveParseResult(success=False, error=f"Invalid element in save file: {e}")

    bank = DiscoveryBank.with_starters()
    bank.absorb(elements)
    return SaveParseResult(
        success=True,
        data=SaveData(
            bank=bank,
            total_moves=int(save.get("totalMoves") or 0),
            total_discoveries=int(save.get("totalDiscoveries") or 0),
            first_discoveries=int(save.get("firstDiscoveries") or 0),
            first_discovery_elements=list(save.get("firstDiscoveryElements") or []),
            slot_name=save.get("slotName"),
        ),
    )
