"""
Soundraw API Layer.

This package handles all communication with the Soundraw catalog API.
"""

from .client import SoundrawAPIClient

__all__ = ["SoundrawAPIClient"]
