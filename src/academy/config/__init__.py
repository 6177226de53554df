"""Configuration package for the academy scheduler."""

from academy.config.app_config import (
    AppConfig,
    ConfigError,
    RewardsConfig,
    ScheduleConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "RewardsConfig",
    "ScheduleConfig",
    "clear_config_cache",
    "load_app_config",
]
