"""Configuration module for StakeFlow.

Usage:
    from stakeflow.config import configure_logging, get_settings

    settings = get_settings()  # Cached singleton
    configure_logging(settings)
    print(settings.stake_pool_id)

Note:
    We intentionally don't export a module-level `settings` instance.
    Use `get_settings()` to get the cached instance at runtime.
"""

from stakeflow.config.logging import configure_logging
from stakeflow.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
