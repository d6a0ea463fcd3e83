"""
Runs AppleScript through the ``osascript`` command-line tool.
"""

import asyncio
import logging
import shutil

from soundraw_cli.exceptions import AutomationError

log = logging.getLogger(__name__)


def applescript_string(value: str) -> str:
    """Quotes ``value`` as an AppleScript string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class AppleScriptBridge:
    """Executes scripts with osascript and returns their standard output."""

    def __init__(self, executable: str = "osascript", timeout: float = 30.0):
        self.executable = executable
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def run(self, script: str) -> str:
        """
        Runs ``script`` and returns its trimmed stdout.

        Raises:
            AutomationError: If osascript is missing, times out, or exits non-zero.
        """
        log.debug(f"Running AppleScript ({len(script)} chars)")
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                "-e",
                script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AutomationError(
                f"Could not start {self.executable}: {e}. "
                "AppleScript automation requires macOS."
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise AutomationError(
                f"AppleScript timed out after {self.timeout:.0f}s."
            ) from e

        err = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise AutomationError(
                f"AppleScript failed ({process.returncode}): {err or 'unknown error'}",
                returncode=process.returncode,
                stderr=err,
            )
        return stdout.decode("utf-8", errors="replace").strip()
