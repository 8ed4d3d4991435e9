"""Core: config, constants, and process bootstrap.

Single place for settings and shared constants.
"""

from gearlog.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
