"""
Configuration package for Channel-Downloader

Exposes the application settings loaded from YAML files and environment
variables. The most common usage pattern is:

    from channel_downloader.config import get_settings

    settings = get_settings()

Configuration sources in order of precedence:
1. Environment variables (location overrides)
2. YAML configuration file
3. Dataclass defaults
"""

from .settings import get_settings, reload_settings, Settings

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
]
