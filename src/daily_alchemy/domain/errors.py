"""Error taxonomy for the alchemy engine."""


class AlchemyError(Exception):
    """Base class for every error raised by the engine."""


class InvalidArgument(AlchemyError, ValueError):
    """A value handed to pure domain code is malformed (date, puzzle number, name, glyph)."""


class InputInvalid(InvalidArgument):
    """A command was issued that the current session state does not admit."""


class StorageQuotaExceeded(AlchemyError):
    """A storage tier refused a write because it is out of space."""


class StorageUnavailable(AlchemyError):
    """Every durable storage tier refused a write."""


class DataCorruption(AlchemyError):
    """A stored value could not be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupted value under '{key}': {reason}")
        self.key = key
        self.reason = reason


class SourceError(AlchemyError):
    """Base class for failures reported by a combination source."""


class SourceTransientError(SourceError):
    """Network, 5xx or timeout failure; the same request may succeed later."""


class CombinationRefused(SourceError):
    """The source states that the two elements cannot combine."""


class PuzzleUnavailable(AlchemyError):
    """The puzzle source could not supply a puzzle for the requested date."""
