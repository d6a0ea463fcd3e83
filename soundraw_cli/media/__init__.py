"""
Media Layer.

This package is responsible for fetching sample audio over HTTP and writing
it to disk.
"""

from .downloader import Downloader

__all__ = ["Downloader"]
