"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from soundraw_cli import __version__
from soundraw_cli.api.client import SoundrawAPIClient
from soundraw_cli.automation.bridge import AppleScriptBridge
from soundraw_cli.automation.browser import BrowserController, Shortcut
from soundraw_cli.automation.clipboard import Clipboard
from soundraw_cli.automation.player import MediaPlayer
from soundraw_cli.core.playback import PlaybackCoordinator
from soundraw_cli.exceptions import SoundrawCliError
from soundraw_cli.media.downloader import Downloader, close_connection_pool
from soundraw_cli.models.config import AppSettings
from soundraw_cli.models.sample import Sample
from soundraw_cli.storage.cache import FileCache
from soundraw_cli.storage.config_manager import ConfigManager
from soundraw_cli.storage.results import ResultStore, SearchResult

from .formatters import (
    build_samples_table,
    print_config,
    print_genres_table,
    print_samples_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("soundraw_cli")

app = typer.Typer(
    name="soundraw-cli",
    help=(
        "Search the Soundraw sample catalog, preview samples and export audio"
        " files. Use 'soundraw-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)
browser_app = typer.Typer(help="Drive the Zen browser with keyboard shortcuts.")
app.add_typer(browser_app, name="browser")


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "soundraw-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"
RESULTS_FILE = CONFIG_DIR / "last_search.json"


def _config_manager() -> ConfigManager:
    return ConfigManager(CONFIG_FILE)


def _load_settings(**overrides) -> AppSettings:
    try:
        return _config_manager().load_settings(overrides)
    except SoundrawCliError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _build_cache(settings: AppSettings) -> FileCache:
    return FileCache(
        Downloader(), scratch_dir=settings.cache_dir, export_dir=settings.export_dir
    )


def _fail(title: str, error: Exception) -> typer.Exit:
    console.print(f"[bold red]✗ {title}:[/bold red] {escape(str(error))}")
    log.debug("Full traceback:", exc_info=True)
    return typer.Exit(code=1)


def _resolve_sample(ref: str) -> tuple[SearchResult, Sample]:
    result = ResultStore(RESULTS_FILE).load()
    if result is None:
        console.print(
            "[red]✗ No previous search found.[/red] "
            "Run [cyan]soundraw-cli search -g <GENRE>[/cyan] first."
        )
        raise typer.Exit(code=1)
    sample = result.find(ref)
    if sample is None:
        console.print(
            f"[red]✗ No sample '{ref}' in the last search "
            f"({len(result.samples)} results).[/red]"
        )
        raise typer.Exit(code=1)
    return result, sample


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Soundraw sample browser"""
    if version:
        console.print(
            f"[bold]soundraw-cli[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("soundraw_cli").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]soundraw-cli setup[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        print_config(CONFIG_FILE, _config_manager().get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def setup(
    token: str = typer.Argument(..., help="Your Soundraw API token (UUID format)."),
    api_base_url: str = typer.Argument(
        ..., help="The base URL for the API, e.g. https://api.example.com/api/v1"
    ),
    validate: bool = typer.Option(
        True, "--validate/--no-validate", help="Test the credentials against /tags."
    ),
):
    """Save and validate the Soundraw API token and base URL."""
    config_manager = _config_manager()
    try:
        config_manager.save_credentials(token, api_base_url)
    except SoundrawCliError as e:
        raise _fail("Invalid configuration", e) from e

    if not validate:
        console.print(f"[green]✓ Configuration saved to '{CONFIG_FILE}'.[/green]")
        return

    async def _validate():
        async with SoundrawAPIClient(config_manager) as client:
            return await client.get_available_genres()

    try:
        with console.status("[cyan]Testing API connection...[/cyan]"):
            genres = asyncio.run(_validate())
    except SoundrawCliError as e:
        raise _fail("Validation Failed", e) from e

    console.print(
        "[bold green]✓ Soundraw configuration saved and validated successfully!"
        f"[/bold green] [dim]({genres.total_count} genres available)[/dim]"
    )


@app.command()
def reset(
    force: bool = typer.Option(
        False, "--force", "-f", help="Bypass the confirmation prompt."
    ),
):
    """Delete the stored token and API base URL."""
    if not force and not typer.confirm("Remove the stored Soundraw credentials?"):
        raise typer.Abort()
    _config_manager().delete_credentials()
    ResultStore(RESULTS_FILE).clear()
    console.print("[green]✓ Credentials removed.[/green]")


@app.command(name="set")
def set_option(
    key: str = typer.Argument(
        ...,
        help="export_dir, cache_dir, search_engine, browser_app or player_app.",
    ),
    value: str = typer.Argument(...),
):
    """Change a local setting."""
    try:
        settings = _config_manager().save_setting(key, value)
    except SoundrawCliError as e:
        raise _fail("Invalid setting", e) from e
    console.print(f"[green]✓ {key} = {getattr(settings, key)}[/green]")


@app.command()
def genres():
    """List the genres available for searching."""

    async def _genres():
        async with SoundrawAPIClient(_config_manager()) as client:
            return await client.get_available_genres()

    try:
        result = asyncio.run(_genres())
    except SoundrawCliError as e:
        raise _fail("Failed to load genres", e) from e
    print_genres_table(result)


async def _search(genre_keys: list[str], page: Optional[int], limit: Optional[int]) -> SearchResult:
    async with SoundrawAPIClient(_config_manager()) as client:
        response = await client.search_samples(genre_keys, page=page, limit=limit)
        try:
            available = await client.get_available_genres()
            names = available.display_names(genre_keys)
        except SoundrawCliError as e:
            log.debug(f"Could not load genre names: {e}")
            names = list(genre_keys)
    return SearchResult(genres=genre_keys, genre_names=names, samples=response.samples)


def _run_search(
    genre_keys: list[str], page: Optional[int], limit: Optional[int]
) -> SearchResult:
    if not genre_keys:
        console.print("[red]✗ Please select at least one genre[/red] (-g/--genre).")
        raise typer.Exit(code=1)
    try:
        with console.status("[cyan]Searching samples...[/cyan]"):
            result = asyncio.run(_search(genre_keys, page, limit))
    except SoundrawCliError as e:
        raise _fail("Search Failed", e) from e
    ResultStore(RESULTS_FILE).save(result)
    return result


@app.command()
def search(
    genre: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--genre", "-g", help="Genre key to search (repeatable)."
    ),
    page: Optional[int] = typer.Option(None, "--page", "-p", min=1),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1),
):
    """Search samples by genre and remember the results."""
    result = _run_search(genre or [], page, limit)
    print_samples_table(result.samples, result.title)


@app.command()
def play(
    ref: str = typer.Argument(..., help="Position or id of a sample in the last search."),
):
    """Preview a sample on loop until Enter is pressed."""
    _, sample = _resolve_sample(ref)
    settings = _load_settings()

    async def _play():
        player = MediaPlayer(AppleScriptBridge(), settings.player_app)
        async with PlaybackCoordinator(_build_cache(settings), player) as coordinator:
            try:
                with console.status(f"[cyan]Loading {sample.name}...[/cyan]"):
                    await coordinator.play(sample)
                console.print(f"[green]▶ Playing[/green] [bold]{sample.name}[/bold]")
                await asyncio.to_thread(console.input, "[dim]Press Enter to stop[/dim] ")
            finally:
                await close_connection_pool()

    try:
        asyncio.run(_play())
    except SoundrawCliError as e:
        raise _fail("Playback Failed", e) from e


async def _copy_file(sample: Sample, settings: AppSettings) -> Path:
    cache = _build_cache(settings)
    try:
        exported = await cache.export(sample)
    finally:
        await close_connection_pool()
    await Clipboard(AppleScriptBridge()).copy_file(exported.path)
    return exported.path


@app.command()
def copy(
    ref: str = typer.Argument(..., help="Position or id of a sample in the last search."),
    export_dir: Optional[Path] = typer.Option(
        None, "--to", help="Export directory (overrides the configured one)."
    ),
):
    """Download a sample into the export directory and copy the file to the clipboard."""
    _, sample = _resolve_sample(ref)
    settings = _load_settings(export_dir=export_dir)
    try:
        with console.status("[cyan]Downloading audio file...[/cyan]"):
            path = asyncio.run(_copy_file(sample, settings))
    except SoundrawCliError as e:
        raise _fail("Copy Failed", e) from e
    console.print(f"[green]✓ Copied {sample.name}[/green] [dim]({path})[/dim]")


@app.command(name="copy-url")
def copy_url(
    ref: str = typer.Argument(..., help="Position or id of a sample in the last search."),
):
    """Copy a sample's audio URL to the clipboard."""
    _, sample = _resolve_sample(ref)
    try:
        asyncio.run(Clipboard(AppleScriptBridge()).copy_text(sample.sample))
    except SoundrawCliError as e:
        raise _fail("Copy Failed", e) from e
    console.print(f"[green]✓ Copied URL of {sample.name}[/green]")


@app.command(name="open")
def open_in_browser(
    ref: str = typer.Argument(..., help="Position or id of a sample in the last search."),
):
    """Open a sample's audio URL in the default browser."""
    _, sample = _resolve_sample(ref)
    typer.launch(sample.sample)


@app.command()
def browse(
    genre: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--genre", "-g", help="Genre key to search (repeatable)."
    ),
    page: Optional[int] = typer.Option(None, "--page", "-p", min=1),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1),
):
    """
    Search, then browse results interactively. Selecting a sample plays it.

    Commands at the prompt: a number selects (and plays) a sample, 'p' toggles
    playback of the selection, 'c' copies it, 's' stops, 'q' quits.
    """
    if genre:
        result = _run_search(genre or [], page, limit)
    else:
        result = ResultStore(RESULTS_FILE).load()
        if result is None:
            console.print("[red]✗ Please select at least one genre[/red] (-g/--genre).")
            raise typer.Exit(code=1)
    if not result.samples:
        print_samples_table(result.samples, result.title)
        return

    settings = _load_settings()
    asyncio.run(_browse(result, settings))


async def _browse(result: SearchResult, settings: AppSettings) -> None:
    cache = _build_cache(settings)
    player = MediaPlayer(AppleScriptBridge(), settings.player_app)
    coordinator = PlaybackCoordinator(cache, player)
    playing: dict[str, Optional[str]] = {"id": None}
    unsubscribe = coordinator.subscribe(lambda sample_id: playing.update(id=sample_id))
    selected: Optional[Sample] = None

    try:
        with console.status("[cyan]Preparing files...[/cyan]"):
            prepared = await cache.prepare(result.samples)

        while True:
            console.print(
                build_samples_table(result.samples, result.title, playing["id"], prepared)
            )
            answer = (
                await asyncio.to_thread(console.input, "[bold cyan]›[/bold cyan] ")
            ).strip().lower()

            if answer in ("q", "quit", "exit"):
                break
            if answer == "s":
                await coordinator.stop()
                continue
            if answer in ("p", "c"):
                if selected is None:
                    console.print("[yellow]Select a sample first.[/yellow]")
                    continue
                try:
                    if answer == "p":
                        await coordinator.toggle(selected)
                    else:
                        path = (await cache.export(selected)).path
                        await Clipboard(player.bridge).copy_file(path)
                        console.print(f"[green]✓ Copied {selected.name}[/green]")
                except SoundrawCliError as e:
                    title = "Playback Failed" if answer == "p" else "Copy Failed"
                    console.print(f"[bold red]✗ {title}:[/bold red] {escape(str(e))}")
                continue

            sample = result.find(answer)
            if sample is None:
                console.print(f"[yellow]Unknown selection '{answer}'.[/yellow]")
                continue
            if selected is not None and sample.id == selected.id:
                continue
            selected = sample
            log.debug(f"Selection changed: {sample.id}")
            try:
                await coordinator.play(sample)
            except SoundrawCliError as e:
                log.debug(f"Failed to auto-play selected sample: {e}")
    finally:
        unsubscribe()
        await coordinator.aclose()
        await close_connection_pool()


@app.command(name="cache-clear")
def cache_clear():
    """Remove cached sample files from the scratch directory."""
    settings = _load_settings()
    removed = _build_cache(settings).clear()
    console.print(f"[green]✓ Removed {removed} cached files.[/green]")


def _browser_controller() -> BrowserController:
    settings = _load_settings()
    return BrowserController(
        AppleScriptBridge(),
        app_name=settings.browser_app,
        search_engine=settings.search_engine,
    )


@browser_app.command(name="shortcut")
def browser_shortcut(
    keys: str = typer.Argument(..., help="Shortcut such as 'cmd+shift+t'."),
):
    """Bring the browser to the front and press a keyboard shortcut."""
    try:
        shortcut = Shortcut.parse(keys)
    except ValueError as e:
        raise _fail("Invalid shortcut", e) from e
    try:
        asyncio.run(_browser_controller().run_shortcut(shortcut))
    except SoundrawCliError as e:
        raise _fail("Shortcut Failed", e) from e


@browser_app.command(name="new-tab")
def browser_new_tab(
    query: Optional[str] = typer.Argument(None, help="Search text for the new tab."),
):
    """Open a new browser tab searching for QUERY."""
    try:
        asyncio.run(_browser_controller().open_new_tab(query))
    except SoundrawCliError as e:
        raise _fail("New Tab Failed", e) from e


@browser_app.command(name="new-window")
def browser_new_window():
    """Open a new browser window."""
    try:
        asyncio.run(_browser_controller().open_new_window())
    except SoundrawCliError as e:
        raise _fail("New Window Failed", e) from e
