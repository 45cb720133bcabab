"""Interfaces for key/value persistence."""

from abc import ABC, abstractmethod
from typing import List, Optional


class IKeyValueStore(ABC):
    """
    One storage tier.

    Values are opaque UTF-8 strings. A tier raises StorageQuotaExceeded when a
    write does not fit and StorageUnavailable when it cannot be used at all.
    """

    name: str = "store"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Read a value, or None when the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one as a whole."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key; absent keys are ignored."""

    @abstractmethod
    async def keys(self) -> List[str]:
        """List stored keys."""

    async def close(self) -> None:
        """Release resources held by the tier."""


class IStorageAdapter(IKeyValueStore):
    """The engine-facing store: a tier chain that never raises on write failure."""

    @property
    @abstractmethod
    def is_memory_only(self) -> bool:
        """True once every durable tier has refused a write."""
