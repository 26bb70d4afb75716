"""Configuration module for LoginGuard."""

from loginguard.config.settings import (
    RETENTION_HOURS,
    USERNAME_WINDOW_MINUTES,
    LoginLimitConfig,
    Settings,
    get_settings,
)

__all__ = [
    "LoginLimitConfig",
    "Settings",
    "get_settings",
    "RETENTION_HOURS",
    "USERNAME_WINDOW_MINUTES",
]
