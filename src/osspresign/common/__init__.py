"""Common utilities for osspresign."""

from osspresign.common.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
