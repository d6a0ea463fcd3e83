"""
OS Automation Layer.

This package wraps the ``osascript`` bridge used to drive the media player,
the clipboard and the browser companion commands.
"""

from .bridge import AppleScriptBridge
from .browser import BrowserController, Shortcut
from .clipboard import Clipboard
from .player import MediaPlayer

__all__ = ["AppleScriptBridge", "BrowserController", "Clipboard", "MediaPlayer", "Shortcut"]
