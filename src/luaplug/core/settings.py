"""Settings for luaplug hosts and engines.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked when first loaded
    - **Environment-driven:** Reads ``LUAPLUG_*`` env vars and ``.env`` files
    - **Sensible defaults:** Works out of the box

Features:
    - **PluginSettings:** log level/format, cancellation checkpoint granularity,
      HTTP capability timeout, CLI cancel grace period
    - **get_settings():** cached accessor, ``reset_settings()`` for tests

Examples:
    >>> from luaplug.core.settings import PluginSettings
    >>> PluginSettings(hook_instruction_count=100).hook_instruction_count
    100

Tags:
    settings, configuration, pydantic, environment, luaplug

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from luaplug.core.errors import ConfigError


class PluginSettings(BaseSettings):
    """Settings shared by the engine adapter, capability modules and CLI.

    Fields
    ──────
    log_level              : structlog log level
    json_logs              : JSON log lines (None = auto-detect from tty)
    hook_instruction_count : Lua VM instructions between cancellation checks
    http_timeout           : timeout of the ``http`` capability, seconds
    cancel_grace           : how long the CLI waits for a cancelled run to stop
    """

    model_config = SettingsConfigDict(
        env_prefix="LUAPLUG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    json_logs: bool | None = None

    # ── Engine ───────────────────────────────────────────────────
    hook_instruction_count: int = Field(
        default=1000,
        gt=0,
        description="Lua VM instructions between cancellation checks",
    )

    # ── Capabilities ─────────────────────────────────────────────
    http_timeout: float = Field(default=30.0, gt=0)

    # ── CLI ──────────────────────────────────────────────────────
    cancel_grace: float = Field(default=5.0, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> PluginSettings:
    """Load settings once from the environment.

    Raises:
        ConfigError: If an environment value fails validation
    """
    try:
        return PluginSettings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid luaplug settings: {exc}", cause=exc) from exc


def reset_settings() -> None:
    """Drop the cached settings (tests, config reloads)."""
    get_settings.cache_clear()


__all__ = ["PluginSettings", "get_settings", "reset_settings"]
