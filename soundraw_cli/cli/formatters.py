"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from soundraw_cli.models.sample import GenresResponse, Sample


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Run `soundraw-cli setup <TOKEN> <API_BASE_URL>` to store your credentials.",
            "• The token must be a UUID and the base URL an http(s) URL.",
        ],
        "APIError": [
            "• Your token may have been revoked. Run `soundraw-cli setup` again.",
            "• Check that the API base URL points at the right API version.",
        ],
        "NetworkError": [
            "• Check your internet connection.",
            "• The Soundraw API might be temporarily unavailable.",
        ],
        "DownloadError": [
            "• The sample URL may have expired. Run the search again.",
            "• Check that the export directory exists and is writable (`soundraw-cli set export_dir <DIR>`).",
        ],
        "AutomationError": [
            "• Playback and clipboard actions require macOS with osascript.",
            "• Allow your terminal to control the target app in System Settings → "
            "Privacy & Security → Automation.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, str]):
    """Displays the current configuration, hiding the token."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "token" and value:
            value = f"{value[:8]}…[hidden]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip() or "[dim]empty[/dim]",
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_genres_table(genres: GenresResponse):
    console = Console()
    if not genres.genres:
        console.print(
            "[yellow]No genres available. Please check your API connection.[/yellow]"
        )
        return

    table = Table(title=f"Genres ({genres.total_count})", box=box.ROUNDED)
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    for key, name in genres.genres.items():
        table.add_row(key, name)
    console.print(table)


def build_samples_table(
    samples: list[Sample],
    title: str = "Search Samples",
    playing_id: Optional[str] = None,
    prepared: Optional[dict[str, Path]] = None,
) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("#", justify="right", style="dim")
    table.add_column("", width=2)
    table.add_column("Name", style="bold")
    table.add_column("BPM", justify="right")
    table.add_column("ID", style="dim")

    for index, sample in enumerate(samples, start=1):
        if sample.id == playing_id:
            marker = "[green]▶[/green]"
        elif prepared is not None and sample.id in prepared:
            marker = "[dim]✓[/dim]"
        else:
            marker = ""
        table.add_row(str(index), marker, sample.name, sample.bpm_label, sample.id)
    return table


def print_samples_table(samples: list[Sample], title: str = "Search Samples"):
    console = Console()
    if not samples:
        console.print(
            "[yellow]No samples found matching your criteria. "
            "Try adjusting your search parameters.[/yellow]"
        )
        return
    console.print(build_samples_table(samples, title))
