"""
Configuration Package

Environment-driven defaults for the encryption presets and logging.
"""

from .settings import (
    Settings,
    LogLevel,
    EncryptionSettings,
    get_settings,
    reload_settings
)

__all__ = [
    "Settings",
    "LogLevel",
    "EncryptionSettings",
    "get_settings",
    "reload_settings"
]
