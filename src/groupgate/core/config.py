"""
Groupgate Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.
All environment variables are validated at first access with helpful error messages.

Usage:
    from groupgate.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Data Paths:
    All data is stored in {instance_root}/cache/ unless GROUPGATE_DB_PATH is set:
    - cache/groupgate.db: Groups, filters, memberships and affiliation cache

Environment Variables:
    GROUPGATE_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    GROUPGATE_DEBUG: Legacy debug flag (enables DEBUG level if set)
    GROUPGATE_LOG_JSON: Output logs as JSON
    GROUPGATE_INSTANCE_ROOT: Instance root directory override
    GROUPGATE_DB_PATH: Explicit SQLite database path
    GROUPGATE_ESI_BASE_URL: ESI base URL
    GROUPGATE_ESI_DATASOURCE: ESI datasource (tranquility)
    GROUPGATE_ESI_TIMEOUT: ESI request timeout in seconds
    GROUPGATE_ESI_MAX_ATTEMPTS: Maximum ESI attempts per request
    GROUPGATE_NO_RETRY: Disable HTTP retry logic
    GROUPGATE_CONCURRENT_FETCH: Fetch independent eligibility datasets concurrently
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path | None:
    """
    Find the project root by searching upward for pyproject.toml.

    Returns:
        Directory containing pyproject.toml, or None
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _find_project_env_file() -> Path | None:
    """Return the project .env file if the project root has one."""
    root = _find_project_root()
    if root is None:
        return None
    env_file = root / ".env"
    return env_file if env_file.exists() else None


def _find_instance_root() -> Path:
    """
    Find the instance root directory.

    Resolution order:
    1. GROUPGATE_INSTANCE_ROOT environment variable (explicit override)
    2. Project root (directory containing pyproject.toml)
    3. Current working directory (fallback)
    """
    override = os.environ.get("GROUPGATE_INSTANCE_ROOT")
    if override:
        return Path(override)

    return _find_project_root() or Path.cwd()


_ENV_FILE = _find_project_env_file()
_INSTANCE_ROOT = _find_instance_root()


class GroupgateSettings(BaseSettings):
    """
    Groupgate configuration settings with validation.

    Environment variables are automatically loaded with the GROUPGATE_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="GROUPGATE_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for groupgate components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Data Paths
    # =========================================================================

    instance_root: Path = Field(
        default=_INSTANCE_ROOT,
        description="Instance root directory (project root containing pyproject.toml)",
    )

    db_path: Optional[Path] = Field(
        default=None,
        description="Explicit SQLite database path (overrides instance_root/cache)",
    )

    # =========================================================================
    # ESI (identity provider public data)
    # =========================================================================

    esi_base_url: str = Field(
        default="https://esi.evetech.net/latest",
        description="Base URL for ESI requests",
    )

    esi_datasource: str = Field(
        default="tranquility",
        description="ESI datasource query parameter",
    )

    esi_timeout: float = Field(
        default=30.0,
        gt=0,
        description="ESI request timeout in seconds",
    )

    esi_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Maximum attempts per ESI request when retry is enabled",
    )

    no_retry: bool = Field(
        default=False,
        description="Disable HTTP retry logic (tenacity)",
    )

    # =========================================================================
    # Eligibility Engine
    # =========================================================================

    concurrent_fetch: bool = Field(
        default=True,
        description="Fetch independent eligibility datasets concurrently",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy GROUPGATE_DEBUG.

        Priority:
        1. Explicit GROUPGATE_LOG_LEVEL
        2. GROUPGATE_DEBUG=1 -> DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)

    @property
    def cache_dir(self) -> Path:
        """Path to cache directory."""
        return self.instance_root / "cache"

    @property
    def database_path(self) -> Path:
        """Path to the groups database."""
        if self.db_path is not None:
            return self.db_path
        return self.cache_dir / "groupgate.db"


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> GroupgateSettings:
    """
    Get the singleton settings instance.

    The settings are validated at first access.
    """
    return GroupgateSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()


# =============================================================================
# Convenience Functions
# =============================================================================


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled."""
    return get_settings().effective_log_level == "DEBUG"


def is_json_logging() -> bool:
    """Check if JSON logging is enabled."""
    return get_settings().log_json


def is_retry_disabled() -> bool:
    """Check if retry logic is disabled via environment."""
    return get_settings().no_retry
