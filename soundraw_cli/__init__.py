"""
soundraw-cli: search the Soundraw sample catalog, preview samples through
QuickTime Player and export audio files, plus a small Zen browser companion.
"""

__version__ = "0.3.0"
