"""
GalamseyWatch - Core Utilities
Central configuration, logging, and shared constants.
"""

from galamsey.core.config import settings, get_settings, Settings
from galamsey.core.constants import (
    MAX_PHOTOS,
    MAX_PHOTO_SIZE,
    REPORT_CATEGORIES,
    UNPROCESSED_LABEL,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "MAX_PHOTOS",
    "MAX_PHOTO_SIZE",
    "REPORT_CATEGORIES",
    "UNPROCESSED_LABEL",
]
