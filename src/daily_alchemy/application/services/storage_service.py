"""Storage adapter: one key/value contract over a chain of tiers."""

import asyncio
import re
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Set

from daily_alchemy.application.interfaces import IKeyValueStore, ILoggingService, IStorageAdapter
from daily_alchemy.domain.errors import StorageQuotaExceeded, StorageUnavailable

from .storage_tiers import MemoryKeyValueStore

SESSION_KEY_PATTERN = re.compile(r"^alchemy_session_(\d{4}-\d{2}-\d{2})$")


class StorageService(IStorageAdapter):
    """
    Key/value adapter over ordered tiers with quota-tolerant fallback.

    Reads consult tiers in order and return the first hit. Writes start at the
    current write floor; a tier that runs out of space (after one cleanup of
    stale session snapshots) or fails outright is skipped for every later write.
    An in-process map is always the final tier, so writes never fail: when it is
    reached the adapter is in memory-only mode and says so once.

    Writes and removals of the same key are serialised in issue order; one that
    is still waiting when a newer one for the key is issued is dropped.
    """

    def __init__(
        self,
        tiers: Sequence[IKeyValueStore],
        logging_service: ILoggingService,
        today_provider: Optional[Callable[[], date]] = None,
        retention_days: int = 90,
    ):
        """
        Initialize storage adapter.

        Args:
            tiers: Durable tiers, most preferred first
            logging_service: Service for logging operations
            today_provider: Current local date, used to age session snapshots
            retention_days: Session snapshots older than this are removed on quota errors
        """
        self.logger = logging_service
        self._tiers: List[IKeyValueStore] = list(tiers)
        if not self._tiers or not isinstance(self._tiers[-1], MemoryKeyValueStore):
            self._tiers.append(MemoryKeyValueStore())
        self._durable_count = sum(1 for tier in self._tiers if not isinstance(tier, MemoryKeyValueStore))
        self._today = today_provider or date.today
        self.retention_days = retention_days

        self._write_floor = 0
        self._warned_tiers: Set[str] = set()
        self._memory_warning_shown = False
        self._issued: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def tiers(self) -> List[IKeyValueStore]:
        return list(self._tiers)

    @property
    def active_tier(self) -> IKeyValueStore:
        """Tier that receives the next write."""
        return self._tiers[self._write_floor]

    @property
    def is_memory_only(self) -> bool:
        return self._write_floor >= self._durable_count

    async def get(self, key: str) -> Optional[str]:
        for tier in self._tiers:
            try:
                value = await tier.get(key)
            except StorageUnavailable as e:
                self.logger.debug(f"🗄️ {tier.name} read skipped: {e}")
                continue
            if value is not None:
                return value
        return None

    def _issue(self, key: str) -> int:
        sequence = self._issued.get(key, 0) + 1
        self._issued[key] = sequence
        return sequence

    async def set(self, key: str, value: str) -> None:
        sequence = self._issue(key)
        async with self._locks.setdefault(key, asyncio.Lock()):
            if self._issued[key] != sequence:
                self.logger.debug(f"🗄️ Write to {key} superseded by a newer write")
                return
            written_index = await self._write_through_tiers(key, value)
            await self._evict_elsewhere(key, written_index)

    async def _write_through_tiers(self, key: str, value: str) -> int:
        cleaned = False
        index = self._write_floor
        while index < len(self._tiers):
            tier = self._tiers[index]
            try:
                await tier.set(key, value)
                return index
            except StorageQuotaExceeded as e:
                if not cleaned and index < self._durable_count:
                    cleaned = True
                    removed = await self.cleanup_stale_progress(tier)
                    if removed:
                        continue
                self._demote(index, f"quota exceeded ({e})")
            except StorageUnavailable as e:
                self._demote(index, f"unavailable ({e})")
            index = self._write_floor
        raise StorageUnavailable(f"No storage tier accepted {key}")

    def _demote(self, index: int, reason: str) -> None:
        tier = self._tiers[index]
        if index == len(self._tiers) - 1:
            raise StorageUnavailable(f"{tier.name} refused a write: {reason}")

        self._write_floor = max(self._write_floor, index + 1)
        if tier.name not in self._warned_tiers:
            self._warned_tiers.add(tier.name)
            self.logger.warning(f"⚠️ Storage tier '{tier.name}' {reason}; falling back to '{self.active_tier.name}'")

        if self.is_memory_only and not self._memory_warning_shown:
            self._memory_warning_shown = True
            self.logger.warning("⚠️ All durable storage refused writes; progress is kept in memory only")

    async def _evict_elsewhere(self, key: str, keep_index: int) -> None:
        for index, tier in enumerate(self._tiers):
            if index == keep_index:
                continue
            try:
                await tier.remove(key)
            except StorageUnavailable as e:
                self.logger.debug(f"🗄️ Could not evict {key} from {tier.name}: {e}")

    async def remove(self, key: str) -> None:
        """Delete a key from every tier; ordered with writes to the same key."""
        sequence = self._issue(key)
        async with self._locks.setdefault(key, asyncio.Lock()):
            if self._issued[key] != sequence:
                self.logger.debug(f"🗄️ Removal of {key} superseded by a newer write")
                return
            for tier in self._tiers:
                try:
                    await tier.remove(key)
                except StorageUnavailable as e:
                    self.logger.warning(f"⚠️ Could not remove {key} from {tier.name}: {e}")

    async def keys(self) -> List[str]:
        found: Set[str] = set()
        for tier in self._tiers:
            try:
                found.update(await tier.keys())
            except StorageUnavailable as e:
                self.logger.debug(f"🗄️ {tier.name} key listing skipped: {e}")
        return sorted(found)

    async def cleanup_stale_progress(self, tier: Optional[IKeyValueStore] = None) -> int:
        """
        Remove session snapshots older than the retention window.

        Returns the number of keys removed.
        """
        cutoff = (self._today() - timedelta(days=self.retention_days)).isoformat()
        targets = [tier] if tier is not None else self._tiers
        removed = 0

        for target in targets:
            try:
                for key in await target.keys():
                    match = SESSION_KEY_PATTERN.match(key)
                    if match and match.group(1) < cutoff:
                        await target.remove(key)
                        removed += 1
            except StorageUnavailable as e:
                self.logger.debug(f"🗄️ Cleanup skipped on {target.name}: {e}")

        if removed:
            self.logger.info(f"🧹 Removed {removed} session snapshots older than {cutoff}")
        return removed

    async def close(self) -> None:
        for tier in self._tiers:
            await tier.close()
