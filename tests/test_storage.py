import asyncio
from datetime import date

import pytest

from daily_alchemy.application.interfaces import IKeyValueStore
from daily_alchemy.application.services import (
    FileKeyValueStore,
    MemoryKeyValueStore,
    NullLoggingService,
    SqliteKeyValueStore,
    StorageService,
)
from daily_alchemy.domain.errors import StorageQuotaExceeded, StorageUnavailable


class RecordingLogger(NullLoggingService):
    def __init__(self):
        self.warnings = []

    def warning(self, message: str) -> None:
        self.warnings.append(message)


class DictStore(IKeyValueStore):
    """Durable-looking tier backed by a dict, with an optional byte quota."""

    def __init__(self, name: str = "dict", quota_bytes=None, broken: bool = False):
        self.name = name
        self.quota_bytes = quota_bytes
        self.broken = broken
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        if self.broken:
            raise StorageUnavailable("disk is read-only")
        if self.quota_bytes is not None:
            used = sum(len(k) + len(v) for k, v in self.data.items() if k != key)
            if used + len(key) + len(value) > self.quota_bytes:
                raise StorageQuotaExceeded(f"{key} does not fit")
        self.data[key] = value

    async def remove(self, key):
        self.data.pop(key, None)

    async def keys(self):
        return list(self.data)


class SlowStore(DictStore):
    """Holds the first write until released so later writes can queue behind it."""

    def __init__(self):
        super().__init__(name="slow")
        self.release = None
        self.writes = []

    async def set(self, key, value):
        first = not self.writes
        self.writes.append(value)
        if self.release is not None and first:
            await self.release.wait()
        await super().set(key, value)


def test_file_tier_round_trip(tmp_path):
    async def scenario():
        store = FileKeyValueStore(str(tmp_path / "kv"))
        await store.set("alchemy_session_2025-08-20", '{"moves": 3}')
        await store.set("odd/key name", "x")
        assert await store.get("alchemy_session_2025-08-20") == '{"moves": 3}'
        assert sorted(await store.keys()) == ["alchemy_session_2025-08-20", "odd/key name"]
        await store.remove("odd/key name")
        await store.remove("missing")
        assert await store.get("odd/key name") is None

    asyncio.run(scenario())


def test_file_tier_enforces_its_quota(tmp_path):
    async def scenario():
        store = FileKeyValueStore(str(tmp_path / "kv"), quota_bytes=10)
        await store.set("a", "12345")
        await store.set("a", "1234567890")
        with pytest.raises(StorageQuotaExceeded):
            await store.set("b", "1")

    asyncio.run(scenario())


def test_sqlite_tier_round_trip(tmp_path):
    async def scenario():
        store = SqliteKeyValueStore(str(tmp_path / "db" / "alchemy.sqlite3"))
        try:
            await store.set("alchemy_stats", "{}")
            await store.set("alchemy_stats", '{"totalCompleted": 1}')
            assert await store.get("alchemy_stats") == '{"totalCompleted": 1}'
            assert await store.keys() == ["alchemy_stats"]
            await store.remove("alchemy_stats")
            assert await store.get("alchemy_stats") is None
        finally:
            await store.close()

    asyncio.run(scenario())


def test_memory_tier_is_always_last():
    storage = StorageService([FileKeyValueStore("unused")], NullLoggingService())
    assert isinstance(storage.tiers[-1], MemoryKeyValueStore)
    assert not storage.is_memory_only


def test_unavailable_tier_falls_back_and_warns_once():
    async def scenario():
        logger = RecordingLogger()
        storage = StorageService([DictStore(name="broken", broken=True)], logger)
        await storage.set("a", "1")
        await storage.set("b", "2")
        assert await storage.get("a") == "1"
        assert storage.is_memory_only
        return logger.warnings

    warnings = asyncio.run(scenario())
    assert len([w for w in warnings if "broken" in w]) == 1
    assert len([w for w in warnings if "memory only" in w]) == 1


def test_quota_triggers_cleanup_of_stale_sessions_before_demoting():
    async def scenario():
        primary = DictStore(name="primary", quota_bytes=150)
        storage = StorageService(
            [primary], NullLoggingService(), today_provider=lambda: date(2025, 12, 1), retention_days=90
        )
        await primary.set("alchemy_session_2025-08-16", "x" * 60)
        await primary.set("alchemy_session_2025-11-30", "y" * 10)

        await storage.set("alchemy_stats", "z" * 50)
        assert await primary.get("alchemy_stats") == "z" * 50
        assert await primary.get("alchemy_session_2025-08-16") is None
        assert await primary.get("alchemy_session_2025-11-30") == "y" * 10
        assert not storage.is_memory_only

    asyncio.run(scenario())


def test_write_evicts_stale_copies_from_other_tiers():
    async def scenario():
        first, second = DictStore(name="first"), DictStore(name="second")
        storage = StorageService([first, second], NullLoggingService())
        await second.set("k", "old")
        await storage.set("k", "new")
        assert await second.get("k") is None
        assert await storage.get("k") == "new"
        assert await storage.keys() == ["k"]

    asyncio.run(scenario())


def test_newer_write_supersedes_a_queued_older_one():
    async def scenario():
        slow = SlowStore()
        slow.release = asyncio.Event()
        storage = StorageService([slow], NullLoggingService())

        first = asyncio.ensure_future(storage.set("k", "v1"))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(storage.set("k", "v2"))
        third = asyncio.ensure_future(storage.set("k", "v3"))
        await asyncio.sleep(0)
        slow.release.set()
        await asyncio.gather(first, second, third)
        return slow.writes, await storage.get("k")

    writes, final = asyncio.run(scenario())
    assert writes == ["v1", "v3"]
    assert final == "v3"


def test_remove_issued_after_a_write_in_progress_wins():
    async def scenario():
        slow = SlowStore()
        slow.release = asyncio.Event()
        storage = StorageService([slow], NullLoggingService())

        write = asyncio.ensure_future(storage.set("alchemy_session_2025-08-20", "{}"))
        await asyncio.sleep(0)
        removal = asyncio.ensure_future(storage.remove("alchemy_session_2025-08-20"))
        await asyncio.sleep(0)
        slow.release.set()
        await asyncio.gather(write, removal)
        return await storage.get("alchemy_session_2025-08-20")

    assert asyncio.run(scenario()) is None


def test_write_issued_after_a_queued_remove_wins():
    async def scenario():
        slow = SlowStore()
        slow.release = asyncio.Event()
        storage = StorageService([slow], NullLoggingService())

        first = asyncio.ensure_future(storage.set("k", "v1"))
        await asyncio.sleep(0)
        removal = asyncio.ensure_future(storage.remove("k"))
        latest = asyncio.ensure_future(storage.set("k", "v2"))
        await asyncio.sleep(0)
        slow.release.set()
        await asyncio.gather(first, removal, latest)
        return await storage.get("k")

    assert asyncio.run(scenario()) == "v2"


def test_remove_clears_every_tier():
    async def scenario():
        first, second = DictStore(name="first"), DictStore(name="second")
        storage = StorageService([first, second], NullLoggingService())
        await first.set("k", "a")
        await second.set("k", "b")
        await storage.remove("k")
        assert await storage.get("k") is None

    asyncio.run(scenario())


def test_interface_default_close_is_harmless():
    class Minimal(IKeyValueStore):
        async def get(self, key):
            return None

        async def set(self, key, value):
            pass

        async def remove(self, key):
            pass

        async def keys(self):
            return []

    asyncio.run(Minimal().close())
