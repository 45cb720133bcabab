"""JSON persistence on top of the storage adapter."""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from daily_alchemy.application.interfaces import ILoggingService, IStorageAdapter
from daily_alchemy.domain.errors import DataCorruption

T = TypeVar("T")

CORRUPT_SUFFIX = "__corrupt_"


class JsonRepository:
    """
    Reads and writes JSON values by key.

    Undecodable values are quarantined under `<key>__corrupt_<UTC stamp>` and the
    caller receives its default, so a damaged blob never blocks the engine.
    """

    def __init__(
        self,
        storage: IStorageAdapter,
        logging_service: ILoggingService,
        now_provider: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.storage = storage
        self.logger = logging_service
        self._now = now_provider

    async def load(self, key: str, default: Any = None) -> Any:
        """Parse the JSON stored under key, or return default when absent or corrupt."""
        raw = await self.storage.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            await self.quarantine(key, raw, DataCorruption(key, str(e)))
            return default

    async def load_model(self, key: str, parse: Callable[[Any], T], default: Optional[T] = None) -> Optional[T]:
        """
        Load and convert a value; conversion errors count as corruption.

        Args:
            key: Storage key
            parse: Converts decoded JSON into a model, raising on bad shape
            default: Returned when the key is absent or corrupt
        """
        raw = await self.storage.get(key)
        if raw is None:
            return default
        try:
            return parse(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            await self.quarantine(key, raw, DataCorruption(key, str(e)))
            return default

    async def save(self, key: str, value: Any) -> None:
        await self.storage.set(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))

    async def remove(self, key: str) -> None:
        await self.storage.remove(key)

    async def exists(self, key: str) -> bool:
        return await self.storage.get(key) is not None

    async def quarantine(self, key: str, raw: str, error: DataCorruption) -> str:
        """Move a corrupt value aside and clear the original key."""
        stamp = self._now().strftime("%Y%m%dT%H%M%S%fZ")
        quarantine_key = f"{key}{CORRUPT_SUFFIX}{stamp}"
        self.logger.error(f"❌ {error}; quarantined as {quarantine_key}")
        await self.storage.set(quarantine_key, raw)
        await self.storage.remove(key)
        return quarantine_key
