"""Application settings using Pydantic BaseSettings."""

import ipaddress
import os
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loginguard.core.logging import get_logger

logger = get_logger(__name__)

# Not part of the recognized option set.
USERNAME_WINDOW_MINUTES = 60
RETENTION_HOURS = 24

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def _get_default_db_path() -> str:
    """Get absolute path to default SQLite database."""
    config_dir = os.path.dirname(os.path.abspath(__file__))
    package_dir = os.path.dirname(config_dir)
    db_path = os.path.join(os.path.dirname(package_dir), "data", "loginguard.db")
    return f"sqlite:///{db_path}"


def _split_list(value: Any) -> tuple[str, ...]:
    """Split a comma/newline separated string (or a sequence) into entries."""
    if value is None:
        return ()
    if isinstance(value, str):
        raw = value.replace("\n", ",").split(",")
    else:
        raw = [str(item) for item in value]
    return tuple(item.strip() for item in raw if item and item.strip())


class LoginLimitConfig(BaseModel):
    """Immutable snapshot of the login limiting options."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = True
    max_attempts_per_ip: int = Field(default=5, ge=1)
    lockout_duration_minutes: int = Field(default=10, ge=1)
    max_attempts_per_username: int = Field(default=10, ge=1)
    trusted_proxies: tuple[str, ...] = ()
    username_window_minutes: int = Field(default=USERNAME_WINDOW_MINUTES, ge=1)
    retention_hours: int = Field(default=RETENTION_HOURS, ge=1)

    _trusted_networks: tuple[IPNetwork, ...] = PrivateAttr(default=())

    @field_validator("trusted_proxies", mode="before")
    @classmethod
    def parse_trusted_proxies(cls, v: Any) -> tuple[str, ...]:
        """Keep addresses and CIDR ranges; unparseable entries are dropped here, once."""
        valid = []
        for entry in _split_list(v):
            try:
                ipaddress.ip_network(entry, strict=False)
            except ValueError:
                logger.warning("Ignoring invalid trusted proxy entry", data={"entry": entry})
                continue
            valid.append(entry)
        return tuple(valid)

    def model_post_init(self, __context: Any) -> None:
        self._trusted_networks = tuple(
            ipaddress.ip_network(entry, strict=False) for entry in self.trusted_proxies
        )

    @property
    def trusted_networks(self) -> tuple[IPNetwork, ...]:
        """Parsed ``trusted_proxies``, ready for membership checks."""
        return self._trusted_networks

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "LoginLimitConfig":
        """
        Build a config from an external key-value options store.

        Only the recognized keys are read; anything else is ignored.
        Missing keys keep their defaults.
        """
        recognized = (
            "enabled",
            "max_attempts_per_ip",
            "lockout_duration_minutes",
            "max_attempts_per_username",
            "trusted_proxies",
        )
        return cls.model_validate({k: options[k] for k in recognized if k in options})


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Database
    database_url: str = Field(default_factory=_get_default_db_path)

    # Login limiting
    login_limit_enabled: bool = Field(default=True)
    login_max_attempts_per_ip: int = Field(default=5)
    login_lockout_duration_minutes: int = Field(default=10)
    login_max_attempts_per_username: int = Field(default=10)
    login_trusted_proxies: str = Field(default="")

    _limit_config: Optional[LoginLimitConfig] = PrivateAttr(default=None)

    @property
    def login_trusted_proxies_list(self) -> List[str]:
        """Parse trusted proxies from comma-separated string."""
        return list(_split_list(self.login_trusted_proxies))

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    def login_limit_config(self) -> LoginLimitConfig:
        """Snapshot the login limiting options (built once per settings instance)."""
        if self._limit_config is None:
            self._limit_config = LoginLimitConfig(
                enabled=self.login_limit_enabled,
                max_attempts_per_ip=self.login_max_attempts_per_ip,
                lockout_duration_minutes=self.login_lockout_duration_minutes,
                max_attempts_per_username=self.login_max_attempts_per_username,
                trusted_proxies=self.login_trusted_proxies_list,
            )
        return self._limit_config

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production"}:
            raise ValueError("ENVIRONMENT must be one of: development, staging, production")
        return vv

    @field_validator(
        "login_max_attempts_per_ip",
        "login_lockout_duration_minutes",
        "login_max_attempts_per_username",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Login limit thresholds and windows must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
