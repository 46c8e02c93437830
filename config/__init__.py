# FILE: config/__init__.py
"""Configuration package.

Contains:
- settings.py: environment-driven runtime settings
"""

from config.settings import (
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
