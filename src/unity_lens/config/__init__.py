"""Configuration management for Unity Lens.

Usage:
    >>> from unity_lens.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.warehouse_id)
"""

from unity_lens.config.settings import Settings, get_settings, reset_settings_cache

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings_cache",
]
