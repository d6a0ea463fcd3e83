"""
Companion automation for the Zen browser: bring it to the front and send
keyboard shortcuts through System Events.
"""

import logging
from dataclasses import dataclass, field

from soundraw_cli.models.config import SEARCH_ENGINES

from .bridge import AppleScriptBridge, applescript_string
from .clipboard import Clipboard

log = logging.getLogger(__name__)

MODIFIERS = ("command", "control", "option", "shift")

# How long to wait for the browser to become frontmost
FRONTMOST_POLL_ATTEMPTS = 10
FRONTMOST_POLL_DELAY = 0.1


@dataclass(frozen=True)
class Shortcut:
    """A single key plus modifiers, e.g. Shortcut("t", ("command",))."""

    key: str
    modifiers: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.key) != 1:
            raise ValueError(f"Shortcut key must be a single character, got '{self.key}'.")
        unknown = [m for m in self.modifiers if m not in MODIFIERS]
        if unknown:
            raise ValueError(
                f"Unknown modifier(s): {', '.join(unknown)}. "
                f"Use: {', '.join(MODIFIERS)}."
            )

    @classmethod
    def parse(cls, text: str) -> "Shortcut":
        """Parses 'command+shift+t' style strings; 'cmd', 'ctrl' and 'alt' are accepted."""
        aliases = {"cmd": "command", "ctrl": "control", "alt": "option", "opt": "option"}
        parts = [p.strip().lower() for p in text.split("+") if p.strip()]
        if not parts:
            raise ValueError("Empty shortcut.")
        modifiers = tuple(aliases.get(p, p) for p in parts[:-1])
        return cls(parts[-1], modifiers)

    def keystroke(self) -> str:
        line = f"keystroke {applescript_string(self.key)}"
        if self.modifiers:
            line += " using {" + ", ".join(f"{m} down" for m in self.modifiers) + "}"
        return line


NEW_TAB_SHORTCUT = Shortcut("t", ("command",))
NEW_WINDOW_SHORTCUT = Shortcut("n", ("command",))


class BrowserController:
    """Sends shortcuts and search queries to a browser via System Events."""

    def __init__(
        self,
        bridge: AppleScriptBridge,
        app_name: str = "Zen",
        search_engine: str = "google",
        clipboard: Clipboard | None = None,
    ):
        self.bridge = bridge
        self.app_name = app_name
        self.search_engine = search_engine.lower()
        self.clipboard = clipboard or Clipboard(bridge)

    def _focus_preamble(self) -> str:
        app = applescript_string(self.app_name)
        return (
            f"tell application {app} to activate\n"
            'tell application "System Events"\n'
            f"  repeat {FRONTMOST_POLL_ATTEMPTS} times\n"
            f"    if frontmost of process {app} then exit repeat\n"
            f"    delay {FRONTMOST_POLL_DELAY}\n"
            "  end repeat\n"
        )

    def shortcut_script(self, shortcut: Shortcut) -> str:
        return self._focus_preamble() + f"  {shortcut.keystroke()}\nend tell"

    def new_tab_script(self) -> str:
        return (
            self._focus_preamble()
            + f"  {NEW_TAB_SHORTCUT.keystroke()}\n"
            f"  delay {FRONTMOST_POLL_DELAY}\n"
            '  keystroke "a" using {command down}\n'
            "  key code 51\n"
            '  keystroke "v" using {command down}\n'
            "  key code 36\n"
            "end tell"
        )

    def search_url(self, query: str | None) -> str:
        try:
            prefix = SEARCH_ENGINES[self.search_engine]
        except KeyError as e:
            raise ValueError(f"Unknown search engine '{self.search_engine}'.") from e
        return f"{prefix}{query or ''}"

    async def run_shortcut(self, shortcut: Shortcut) -> None:
        log.debug(f"Sending {shortcut} to {self.app_name}")
        await self.bridge.run(self.shortcut_script(shortcut))

    async def open_new_tab(self, query: str | None) -> None:
        """
        Copies the search URL for ``query`` to the clipboard, then opens a new
        tab and pastes it into the address bar.
        """
        url = self.search_url(query)
        await self.clipboard.copy_text(url)
        log.debug(f"Opening new {self.app_name} tab for {url}")
        await self.bridge.run(self.new_tab_script())

    async def open_new_window(self) -> None:
        await self.run_shortcut(NEW_WINDOW_SHORTCUT)
