"""
Clipboard access through AppleScript.
"""

from pathlib import Path

from .bridge import AppleScriptBridge, applescript_string


class Clipboard:
    def __init__(self, bridge: AppleScriptBridge):
        self.bridge = bridge

    async def copy_text(self, text: str) -> None:
        await self.bridge.run(f"set the clipboard to {applescript_string(text)}")

    async def copy_file(self, path: Path) -> None:
        """Places a file reference on the clipboard so it can be pasted in Finder or a DAW."""
        await self.bridge.run(
            f"set the clipboard to (POSIX file {applescript_string(str(path))})"
        )
