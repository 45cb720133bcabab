#!/usr/bin/env python3
"""
Configuration Management for the Daily Alchemy engine.

Default settings with environment variable overrides via .env file support.

Usage:
    from daily_alchemy.config import get_config
    config = get_config()

    settings = EngineSettings.from_config(config)
"""

import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


class Config:
    """
    Base configuration class with default engine settings.

    All configuration values can be overridden via environment variables
    or .env file.
    """

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize configuration, loading .env file if it exists."""
        # Load .env file from project root (parent of src directory)
        env_path = env_path or Path(__file__).resolve().parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        self._load_config()

    def _load_config(self):
        """Load all configuration values with environment overrides."""
        # ================================
        # PUZZLE CALENDAR
        # ================================
        self.LAUNCH_DATE = self._get_date_env("LAUNCH_DATE", date(2025, 8, 15))
        self.TIMEZONE = self._get_env("TIMEZONE", "")

        # ================================
        # STORAGE
        # ================================
        self.STORAGE_DIR = self._get_env("STORAGE_DIR", ".alchemy")
        self.STORAGE_QUOTA_BYTES = self._get_int_env("STORAGE_QUOTA_BYTES", 5 * 1024 * 1024)
        self.SQLITE_FILE = self._get_env("SQLITE_FILE", "alchemy.sqlite3")
        self.PROGRESS_RETENTION_DAYS = self._get_int_env("PROGRESS_RETENTION_DAYS", 90)

        # ================================
        # COMBINATION RETRIES
        # ================================
        self.COMBINE_RETRY_BASE_DELAY = self._get_float_env("COMBINE_RETRY_BASE_DELAY", 0.25)
        self.COMBINE_RETRY_FACTOR = self._get_float_env("COMBINE_RETRY_FACTOR", 2.0)
        self.COMBINE_MAX_RETRIES = self._get_int_env("COMBINE_MAX_RETRIES", 3)
        self.COMBINE_RETRY_JITTER = self._get_float_env("COMBINE_RETRY_JITTER", 0.2)
        self.COMBINE_TIME_BUDGET = self._get_float_env("COMBINE_TIME_BUDGET", 15.0)

        # ================================
        # GAME SETTINGS
        # ================================
        self.DEFAULT_HINTS = self._get_int_env("DEFAULT_HINTS", 4)
        self.RECENT_ELEMENTS_CAP = self._get_int_env("RECENT_ELEMENTS_CAP", 5)
        self.SHARE_URL = self._get_env("SHARE_URL", "dailyalchemy.fun")

        # ================================
        # HTTP SOURCES
        # ================================
        self.API_BASE_URL = self._get_env("API_BASE_URL", "")
        self.HTTP_TIMEOUT = self._get_float_env("HTTP_TIMEOUT", 10.0)

        # ================================
        # LOGGING
        # ================================
        self.LOG_LEVEL = self._get_env("LOG_LEVEL", "INFO")

    def _get_env(self, key: str, default: str) -> str:
        """Get string environment variable with default."""
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int) -> int:
        """Get integer environment variable with default."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_float_env(self, key: str, default: float) -> float:
        """Get float environment variable with default."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Get boolean environment variable with default."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on", "enabled")

    def _get_date_env(self, key: str, default: date) -> date:
        """Get YYYY-MM-DD environment variable with default."""
        try:
            return date.fromisoformat(os.getenv(key, default.isoformat()))
        except (ValueError, TypeError):
            return default

    @property
    def sqlite_path(self) -> Optional[Path]:
        """Secondary tier database path, or None when the tier is disabled."""
        if not self.SQLITE_FILE:
            return None
        return Path(self.STORAGE_DIR) / self.SQLITE_FILE

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dict for logging/debugging."""
        return {key: value for key, value in self.__dict__.items() if not key.startswith("_")}


class DevelopmentConfig(Config):
    """Development environment configuration with debug settings."""

    def _load_config(self):
        """Load base config then apply development overrides."""
        super()._load_config()

        self.LOG_LEVEL = self._get_env("LOG_LEVEL", "DEBUG")
        self.STORAGE_DIR = self._get_env("STORAGE_DIR", ".alchemy-dev")
        # Fail fast against a local API
        self.COMBINE_TIME_BUDGET = self._get_float_env("COMBINE_TIME_BUDGET", 5.0)


class ProductionConfig(Config):
    """Production environment configuration."""

    def _load_config(self):
        """Load base config then apply production overrides."""
        super()._load_config()

        self.LOG_LEVEL = self._get_env("LOG_LEVEL", "INFO")


# ================================
# CONFIGURATION FACTORY
# ================================


def get_config() -> Config:
    """Get appropriate configuration based on environment.

    Returns:
        Configuration instance based on ALCHEMY_ENV environment variable
    """
    env = os.getenv("ALCHEMY_ENV", "default")

    if env == "development":
        return DevelopmentConfig()
    elif env == "production":
        return ProductionConfig()
    else:
        return Config()


# Global configuration instance
config = get_config()
