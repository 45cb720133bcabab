"""Daily Alchemy element combination engine."""

__version__ = "0.1.0"
