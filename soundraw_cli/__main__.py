"""
Entry point for ``python -m soundraw_cli`` and the console scripts.

Typer turns usage errors and ``typer.Exit`` into ``SystemExit`` itself; only
errors that escape a command are rendered here.
"""

import asyncio
import logging
import os
import sys

from rich.console import Console

from soundraw_cli.cli.app import app
from soundraw_cli.cli.formatters import format_error_with_suggestions
from soundraw_cli.exceptions import SoundrawCliError

log = logging.getLogger("soundraw_cli")


def main() -> None:
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    console = Console(stderr=True)
    try:
        app()
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(130)
    except SoundrawCliError as e:
        console.print()
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print()
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
