"""Storage tiers: file directory, SQLite database and in-process map."""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column
from sqlalchemy.types import TEXT, String

from daily_alchemy.application.interfaces import IKeyValueStore
from daily_alchemy.domain.errors import StorageQuotaExceeded, StorageUnavailable

VALUE_SUFFIX = ".val"


def _size_of(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryKeyValueStore(IKeyValueStore):
    """In-process map; the last resort tier. Optional byte quota for tests."""

    name = "memory"

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(_size_of(k, v) for k, v in self._data.items() if k != key)
            if used + _size_of(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(f"{self.name}: {key} does not fit in {self.quota_bytes} bytes")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self._data)


class FileKeyValueStore(IKeyValueStore):
    """
    One file per key inside a directory.

    Writes go to a temporary file that is renamed over the target, so a reader
    sees either the old value or the new one. The total size of all values is
    capped by `quota_bytes`.
    """

    name = "file"

    def __init__(self, directory: str, quota_bytes: int = 5 * 1024 * 1024):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{VALUE_SUFFIX}"

    def _ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"{self.name}: cannot create {self.directory}: {e}") from e

    def _used_bytes(self, excluding: Path) -> int:
        total = 0
        for path in self.directory.glob(f"*{VALUE_SUFFIX}"):
            if path != excluding:
                total += path.stat().st_size
        return total

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"{self.name}: cannot read {key}: {e}") from e

    def _write(self, key: str, value: str) -> None:
        self._ensure_directory()
        path = self._path_for(key)
        payload = value.encode("utf-8")

        if self._used_bytes(excluding=path) + len(payload) > self.quota_bytes:
            raise StorageQuotaExceeded(f"{self.name}: {key} does not fit in {self.quota_bytes} bytes")

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageUnavailable(f"{self.name}: cannot write {key}: {e}") from e

    def _delete(self, key: str) -> None:
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageUnavailable(f"{self.name}: cannot remove {key}: {e}") from e

    def _list_keys(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return [unquote(path.name[: -len(VALUE_SUFFIX)]) for path in self.directory.glob(f"*{VALUE_SUFFIX}")]

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def keys(self) -> List[str]:
        return await asyncio.to_thread(self._list_keys)


class StorageBase(DeclarativeBase):
    pass


class KeyValueRow(StorageBase):
    __tablename__ = "kv"
    key = Column(String, primary_key=True, index=True)
    value = Column(TEXT, nullable=False)


class SqliteKeyValueStore(IKeyValueStore):
    """Indexed tier backed by an SQLite file through SQLAlchemy's async engine."""

    name = "sqlite"

    def __init__(self, database_path: str, engine: Optional[AsyncEngine] = None):
        self.database_path = database_path
        self.engine = engine or create_async_engine(url=f"sqlite+aiosqlite:///{database_path}", echo=False)
        self.session = async_sessionmaker(bind=self.engine, class_=AsyncSession, expire_on_commit=False)
        self._ready = False
        self._init_lock = asyncio.Lock()

    async def _ensure_schema(self) -> None:
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            try:
                if self.database_path != ":memory:":
                    Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
                async with self.engine.begin() as conn:
                    await conn.run_sync(StorageBase.metadata.create_all)
            except (OSError, SQLAlchemyError) as e:
                raise StorageUnavailable(f"{self.name}: cannot open {self.database_path}: {e}") from e
            self._ready = True

    @staticmethod
    def _translate(key: str, error: SQLAlchemyError) -> Exception:
        if isinstance(error, OperationalError) and "full" in str(error).lower():
            return StorageQuotaExceeded(f"sqlite: {key} does not fit: {error}")
        return StorageUnavailable(f"sqlite: operation on {key} failed: {error}")

    async def get(self, key: str) -> Optional[str]:
        await self._ensure_schema()
        try:
            async with self.session() as session:
                result = await session.execute(select(KeyValueRow.value).where(KeyValueRow.key == key))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._translate(key, e) from e

    async def set(self, key: str, value: str) -> None:
        await self._ensure_schema()
        stmt = sqlite_insert(KeyValueRow).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(index_elements=[KeyValueRow.key], set_={"value": stmt.excluded.value})
        try:
            async with self.session() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise self._translate(key, e) from e

    async def remove(self, key: str) -> None:
        await self._ensure_schema()
        try:
            async with self.session() as session:
                await session.execute(delete(KeyValueRow).where(KeyValueRow.key == key))
                await session.commit()
        except SQLAlchemyError as e:
            raise self._translate(key, e) from e

    async def keys(self) -> List[str]:
        await self._ensure_schema()
        try:
            async with self.session() as session:
                result = await session.execute(select(KeyValueRow.key))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._translate("*", e) from e

    async def close(self) -> None:
        await self.engine.dispose()
