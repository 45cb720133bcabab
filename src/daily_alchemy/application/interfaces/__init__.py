"""Application service interfaces for dependency injection."""

from .clock_interface import IClock
from .logging_interface import ILoggingService
from .source_interface import ICombinationSource, IPuzzleSource, SourceElement
from .storage_interface import IKeyValueStore, IStorageAdapter

__all__ = [
    "IClock",
    "ICombinationSource",
    "IKeyValueStore",
    "ILoggingService",
    "IPuzzleSource",
    "IStorageAdapter",
    "SourceElement",
]
