"""
Drives an AppleScript-capable media player (QuickTime Player by default).
"""

import logging
from pathlib import Path

from .bridge import AppleScriptBridge, applescript_string

log = logging.getLogger(__name__)


class MediaPlayer:
    """Opens a file looped in the player, or closes the front document."""

    def __init__(self, bridge: AppleScriptBridge, app_name: str = "QuickTime Player"):
        self.bridge = bridge
        self.app_name = app_name

    def play_script(self, path: Path) -> str:
        return (
            f"tell application {applescript_string(self.app_name)}\n"
            "  activate\n"
            f"  open POSIX file {applescript_string(str(path))}\n"
            "  set theMovie to front document\n"
            "  set looping of theMovie to true\n"
            "  play theMovie\n"
            "end tell"
        )

    def stop_script(self) -> str:
        return (
            f"tell application {applescript_string(self.app_name)}\n"
            "  if (count of documents) > 0 then\n"
            "    close front document\n"
            "  end if\n"
            "end tell"
        )

    async def play(self, path: Path) -> None:
        log.debug(f"Launching {self.app_name} with file: {path}")
        await self.bridge.run(self.play_script(path))

    async def stop(self) -> None:
        log.debug(f"Sending stop command to {self.app_name}")
        await self.bridge.run(self.stop_script())
