"""
Storage Layer.

This package handles all data persistence: the configuration file and the
on-disk sample cache.
"""

from .cache import CachedFile, FileCache
from .config_manager import ConfigManager

__all__ = ["CachedFile", "ConfigManager", "FileCache"]
