"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ttscrape.api.sound import Sound
from ttscrape.models.config import ScrapeConfig
from ttscrape.models.stats import ScrapeStats, SoundResult
from ttscrape.utils.formatting import format_elapsed, json_excerpt, percent_faster


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "SessionInitError": [
            "• Make sure the Playwright browsers are installed (`playwright install`).",
            "• Check your proxy settings and internet connection.",
            "• Try `--browser-free` with a valid msToken to skip the browser.",
        ],
        "SessionIndexError": [
            "• The requested session does not exist in the pool.",
            "• Increase `num_sessions` or use a lower session index.",
        ],
        "SoundFetchError": [
            "• Your msToken may have expired. Grab a fresh one from your browser.",
            "• Check that the sound ID is correct.",
            "• TikTok might be rate-limiting you; try again in a few minutes.",
        ],
        "TransportError": [
            "• A network connection issue occurred.",
            "• TikTok might be temporarily unavailable.",
        ],
        "DecodeError": [
            "• TikTok answered with an empty or non-JSON body.",
            "• This usually means the msToken or fingerprint was rejected.",
        ],
        "ConfigurationError": [
            "• Run `ttscrape validate` to see which setting is wrong.",
            "• Run `ttscrape init <MS_TOKEN> --force` to start from a fresh config.",
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
    if error.__cause__ is not None:
        content.add_row(Text(f"Caused by: {error.__cause__!r}", style="dim"))
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


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key in ("ms_tokens", "proxy") and value:
            value = "********"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: ScrapeConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("msTokens:", f"[green]{len(config.ms_tokens)} configured[/green]")
    table.add_row("Sessions:", str(config.num_sessions))
    mode = "headless" if config.headless else "headed"
    table.add_row("Browser:", f"{config.browser} ({mode})")
    table.add_row(
        "Browser-Free:", "✓ Enabled" if config.browser_free else "✗ Disabled"
    )
    table.add_row("Proxy:", "✓ Set" if config.proxy else "✗ None")
    table.add_row("Max Concurrency:", str(config.max_concurrency))
    table.add_row("Videos per Sound:", str(config.video_count))
    table.add_row("Request Timeout:", f"{config.request_timeout:.0f}s")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_sound_info(sound: Sound, info: dict[str, Any], elapsed: float):
    """Displays the cached fields of a sound and its raw payload."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("ID:", sound.id)
    table.add_row("Title:", sound.title or "[dim]unknown[/dim]")
    table.add_row("Duration:", f"{sound.duration}s")
    table.add_row("Original:", "✓" if sound.original else "✗")
    table.add_row("Fetched in:", f"[blue]{format_elapsed(elapsed)}[/blue]")

    console.print(Panel(table, title="[bold]🎵 Sound Info[/bold]", expand=False))
    console.print_json(data=info)


def print_result_line(result: SoundResult):
    """Prints a one-line status for a scraped sound as it completes."""
    console = Console()
    took = format_elapsed(result.elapsed)
    if result.ok:
        console.print(
            f"[green]✓[/green] Sound [cyan]{result.sound_id}[/cyan] "
            f"[dim](took {took})[/dim] • {len(result.videos)} videos"
        )
        console.print(Text(f"  {json_excerpt(result.info)}", style="dim"))
    else:
        console.print(
            f"[red]✗[/red] Sound [cyan]{result.sound_id}[/cyan] "
            f"[dim](took {took})[/dim] • [red]{result.error}[/red]"
        )


def print_summary_panel(stats: ScrapeStats):
    """Displays the final summary of a concurrent scrape."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Total Sounds:", str(stats.total_sounds))
    stats_table.add_row("✓ Successful:", f"[bold green]{stats.successful}[/bold green]")
    if stats.failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.failed}[/bold red]")
    stats_table.add_row("Videos:", f"[cyan]{stats.videos_collected}[/cyan]")

    stats_table.add_row("", "")  # Spacer

    stats_table.add_row(
        "Avg. per Sound:", f"[blue]{format_elapsed(stats.average_time)}[/blue]"
    )
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_elapsed(stats.wall_time)}[/blue]"
    )
    stats_table.add_row("Speedup:", f"[magenta]{stats.speedup:.2f}x[/magenta]")

    border_color = "green" if stats.failed == 0 else "yellow"

    console.print()
    console.print(
        Panel(
            stats_table,
            title="🎵 [bold]Scrape Complete![/bold]",
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()


def print_comparison_table(timings: dict[str, dict[str, float]]):
    """
    Displays the timings of the session modes side by side.

    Args:
        timings: Mode label -> phase name -> seconds. The first mode is the
            baseline for the "faster" column.
    """
    console = Console()
    table = Table(title="[bold]Performance Comparison[/bold]", box=box.ROUNDED)
    table.add_column("Mode", style="bold cyan")
    table.add_column("Session", justify="right")
    table.add_column("Info", justify="right")
    table.add_column("First Video", justify="right")
    table.add_column("All Videos", justify="right")
    table.add_column("Total", justify="right", style="bold")
    table.add_column("vs. Baseline", justify="right", style="magenta")

    baseline = None
    for mode, phases in timings.items():
        total = phases.get("total", 0.0)
        if baseline is None:
            baseline = total
            faster = "-"
        else:
            faster = f"{percent_faster(baseline, total):+.1f}%"
        table.add_row(
            mode,
            format_elapsed(phases.get("session", 0.0)),
            format_elapsed(phases.get("info", 0.0)),
            format_elapsed(phases.get("first_video", 0.0)),
            format_elapsed(phases.get("videos", 0.0)),
            format_elapsed(total),
            faster,
        )

    console.print()
    console.print(table)
