# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Core configuration - process-level settings taken from the environment.

The operator's settings file (port, relay ports, bootstrap nodes...) is
read by ``bootstrapd.daemon.config``. This module covers the knobs that
belong to the process rather than to the node: log level and format,
which network engine plugin to load, and the scheduler cadence.

Usage:
    from bootstrapd.core.config import get_config
    config = get_config()

    log_level = config.log_level
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Core configuration settings for the daemon.

    Settings can be configured via environment variables with the
    BOOTSTRAPD_ prefix or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOTSTRAPD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json' or 'text' (empty means text)",
    )

    # ==========================================================================
    # NETWORK ENGINE SETTINGS
    # ==========================================================================

    network_engine: str | None = Field(
        default=None,
        description="Engine plugin: entry point name in 'bootstrapd.engines' or 'module:attribute'",
    )

    # ==========================================================================
    # SCHEDULER SETTINGS
    # ==========================================================================

    tick_interval_ms: int = Field(
        default=30,
        ge=1,
        description="Nominal spacing between service loop iterations",
    )
    lan_discovery_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Minimum time between LAN discovery broadcasts",
    )

    @property
    def tick_interval(self) -> float:
        """Tick interval in seconds."""
        return self.tick_interval_ms / 1000.0


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
