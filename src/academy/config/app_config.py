"""Application configuration loader.

Loads centralized configuration from data/config/academy_config_v1.yaml
with fallback to built-in defaults.

Usage:
    from academy.config.app_config import load_app_config

    config = load_app_config()
    tz = config.schedule.timezone
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/academy_config_v1.yaml")

# Environment override for the database location
DB_PATH_ENV = "ACADEMY_DB_PATH"


class ConfigError(Exception):
    """Raised when the configuration file has invalid values."""

    pass


@dataclass
class ScheduleConfig:
    """Pacing and calendar settings."""

    timezone: str = "Asia/Seoul"
    fallback_daily_word_count: int = 30
    default_section_amount: float = 1
    review_days: int = 2
    distractor_count: int = 3


@dataclass
class RewardsConfig:
    """Dollar amounts awarded for study events."""

    dollar_per_completion: int = 10
    perfect_score: int = 20


@dataclass
class AppConfig:
    """Application-wide configuration."""

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    rewards: RewardsConfig = field(default_factory=RewardsConfig)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        """Database path, honouring the ACADEMY_DB_PATH override."""
        override = os.environ.get(DB_PATH_ENV)
        if override:
            return Path(override)
        return Path(self.paths.get("db_path", "db/academy.db"))


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "schedule": {
            "timezone": "Asia/Seoul",
            "fallback_daily_word_count": 30,
            "default_section_amount": 1,
            "review_days": 2,
            "distractor_count": 3,
        },
        "rewards": {
            "dollar_per_completion": 10,
            "perfect_score": 20,
        },
        "paths": {
            "db_path": "db/academy.db",
            "data_dir": "data",
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    schedule_data = {**defaults["schedule"], **(data.get("schedule") or {})}
    rewards_data = {**defaults["rewards"], **(data.get("rewards") or {})}
    paths = {**defaults["paths"], **(data.get("paths") or {})}

    schedule = ScheduleConfig(
        timezone=str(schedule_data["timezone"]),
        fallback_daily_word_count=int(schedule_data["fallback_daily_word_count"]),
        default_section_amount=float(schedule_data["default_section_amount"]),
        review_days=int(schedule_data["review_days"]),
        distractor_count=int(schedule_data["distractor_count"]),
    )
    if schedule.fallback_daily_word_count <= 0:
        raise ConfigError("schedule.fallback_daily_word_count must be positive")
    if schedule.review_days <= 0:
        raise ConfigError("schedule.review_days must be positive")

    rewards = RewardsConfig(**{k: int(v) for k, v in rewards_data.items()})

    return AppConfig(schedule=schedule, rewards=rewards, paths=paths)


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.

    Raises:
        ConfigError: If the file contains invalid values.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
