"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import json
import logging
import os
import sys
import time
from pathlib import Path

import aiohttp
import typer
from rich.console import Console
from rich.logging import RichHandler

from ttscrape import __version__
from ttscrape.api.client import TikTokAPI
from ttscrape.api.fingerprint import default_headers
from ttscrape.core.scraper import ConcurrentSoundScraper
from ttscrape.exceptions import ConfigurationError, SoundFetchError, TTScrapeError
from ttscrape.models.config import RequestOptions, ScrapeConfig
from ttscrape.models.stats import ScrapeStats
from ttscrape.storage.config_manager import ConfigManager
from ttscrape.utils.formatting import format_elapsed
from ttscrape.utils.sound_ids import parse_sound_ids, read_sound_ids

from .formatters import (
    print_comparison_table,
    print_config,
    print_result_line,
    print_sound_info,
    print_summary_panel,
    print_validation_table,
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
log = logging.getLogger("ttscrape")

app = typer.Typer(
    name="ttscrape",
    help=(
        "Fetch TikTok sound metadata and the videos using them. Use 'ttscrape"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "ttscrape"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict) -> ScrapeConfig:
    """Loads the config, dropping CLI options that were not given."""
    overrides = {k: v for k, v in cli_options.items() if v is not None}
    return ConfigManager(CONFIG_FILE).load_config(overrides)


def _require_token(config: ScrapeConfig) -> None:
    if not config.ms_tokens:
        console.print(
            "[yellow]⚠️  No msToken configured.[/yellow] Set the [cyan]ms_token[/cyan]"
            " environment variable or run [cyan]ttscrape init <MS_TOKEN>[/cyan]."
        )


async def _open_client(config: ScrapeConfig) -> tuple[TikTokAPI, float]:
    """Creates a client and its sessions, returning the setup time."""
    api = TikTokAPI(config.client_config())
    start = time.monotonic()
    try:
        with console.status("[cyan]Creating sessions...[/cyan]"):
            await api.create_sessions(config.num_sessions, config.ms_tokens)
    except BaseException:
        await api.close()
        raise
    elapsed = time.monotonic() - start
    console.print(
        f"[green]✓ {len(api.sessions)} session(s) ready in "
        f"{format_elapsed(elapsed)}.[/green]"
    )
    return api, elapsed


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
    """TikTok Sound Scraper CLI"""
    if version:
        console.print(f"[bold]ttscrape[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("ttscrape").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]ttscrape init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config_manager._parser.read(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager._get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    ms_tokens: list[str] = typer.Argument(  # noqa: B008
        ..., help="One or more msToken cookie values.", metavar="<MS_TOKEN>..."
    ),
    browser_free: bool = typer.Option(
        True,
        "--browser-free/--browser",
        help="Skip the browser once a token is available.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing configuration without asking."
    ),
):
    """Initialize configuration with msTokens."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    tokens = [t.strip() for t in ms_tokens if t.strip()]
    if not tokens:
        console.print("[red]✗ No valid msToken provided.[/red]")
        raise typer.Exit(code=1)

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config(
        {
            "ms_tokens": tokens,
            "num_sessions": len(tokens),
            "browser_free": browser_free,
        }
    )
    console.print(
        f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]"
    )
    console.print("Ready! Try: [cyan]ttscrape sound <SOUND_ID>[/cyan]")


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except TTScrapeError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command(name="sound")
def sound_command(
    sound_id: str = typer.Argument(..., help="ID of the sound to fetch."),
    videos: int = typer.Option(
        5, "--videos", "-n", help="Number of videos to list (0 to skip)."
    ),
    cursor: int = typer.Option(0, "--cursor", help="Offset of the first video."),
    session_index: int = typer.Option(
        0, "--session", help="Index of the session to use."
    ),
    browser_free: bool | None = typer.Option(
        None,
        "--browser-free/--browser",
        help="Drop the browser once the fingerprint is harvested.",
    ),
    headless: bool | None = typer.Option(
        None, "--headless/--headed", help="Run the browser without a window."
    ),
):
    """Fetch a sound's info and the videos that use it."""
    config = _load_config({"browser_free": browser_free, "headless": headless})
    _require_token(config)
    options = RequestOptions(session_index=session_index)

    async def _sound_async():
        api, _ = await _open_client(config)
        try:
            sound = api.sound(sound_id)
            start = time.monotonic()
            info = await sound.info(options)
            print_sound_info(sound, info, time.monotonic() - start)

            if videos <= 0:
                return

            console.print("\n[bold]Videos:[/bold]")
            start = time.monotonic()
            count = 0
            async for video in sound.videos(videos, cursor, options):
                count += 1
                console.print(f"[bold cyan]Video {count}:[/bold cyan]")
                console.print_json(data=video)
            console.print(
                f"[green]✓ {count} video(s) in "
                f"{format_elapsed(time.monotonic() - start)}.[/green]"
            )
        finally:
            await api.close()

    asyncio.run(_sound_async())


def _read_ids_from_stdin() -> list[str]:
    """Reads sound IDs from stdin, one per line."""
    if sys.stdin.isatty():
        console.print(
            "[yellow]⚠️  No input detected on stdin. Please pipe sound IDs or"
            " redirect a file.[/yellow]"
        )
        raise typer.Exit(code=1)
    console.print("[dim]Reading sound IDs from stdin...[/dim]")
    return parse_sound_ids(sys.stdin)


@app.command(name="scrape")
def scrape_command(
    sound_ids: list[str] | None = typer.Argument(  # noqa: B008
        None, help="Sound IDs to scrape."
    ),
    file: Path | None = typer.Option(  # noqa: B008
        None,
        "--file",
        "-f",
        help="CSV or text file with one sound ID per line.",
        exists=True,
        dir_okay=False,
    ),
    stdin: bool = typer.Option(
        False, "--stdin", help="Read sound IDs from standard input."
    ),
    limit: int | None = typer.Option(
        None, "--limit", "-l", help="Maximum number of sounds to scrape."
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-w", help="Number of sounds scraped at the same time."
    ),
    videos: int | None = typer.Option(
        None, "--videos", "-n", help="Videos to collect per sound."
    ),
    sessions: int | None = typer.Option(
        None, "--sessions", "-s", help="Number of sessions in the pool."
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the full results document as JSON."
    ),
):
    """Scrape many sounds concurrently over a shared session pool."""
    ids = list(sound_ids or [])
    if file:
        ids.extend(read_sound_ids(file))
    if stdin:
        ids.extend(_read_ids_from_stdin())
    ids = list(dict.fromkeys(ids))

    if not ids:
        console.print(
            "[red]✗ No sound IDs provided.[/red] "
            "Use: [cyan]ttscrape scrape <ID>...[/cyan], [cyan]--file[/cyan]"
            " or [cyan]--stdin[/cyan]"
        )
        raise typer.Exit(code=1)

    config = _load_config(
        {
            "max_concurrency": workers,
            "video_count": videos,
            "num_sessions": sessions,
            "sound_limit": limit,
        }
    )
    _require_token(config)

    if len(ids) > config.sound_limit:
        log.info(
            f"Limiting run to the first {config.sound_limit} of {len(ids)} sounds."
        )
        ids = ids[: config.sound_limit]

    async def _scrape_async() -> ScrapeStats:
        api, _ = await _open_client(config)
        try:
            scraper = ConcurrentSoundScraper(
                api,
                max_concurrency=config.max_concurrency,
                video_count=config.video_count,
            )
            console.print(f"[bold cyan]Scraping {len(ids)} sounds...[/bold cyan]")
            stats = ScrapeStats(total_sounds=len(ids))
            async for result in scraper.stream(ids):
                stats.record(result)
                if not as_json:
                    print_result_line(result)
            stats.finish()
            return stats
        finally:
            await api.close()

    stats = asyncio.run(_scrape_async())
    if as_json:
        print(json.dumps(stats.to_report(), indent=2, ensure_ascii=False))
    else:
        print_summary_panel(stats)


async def _time_mode(
    config: ScrapeConfig, sound_id: str, video_count: int
) -> dict[str, float]:
    """Times session setup, info and video listing for one configuration."""
    timings: dict[str, float] = {}
    start_total = time.monotonic()
    api, timings["session"] = await _open_client(config)
    try:
        sound = api.sound(sound_id)
        start = time.monotonic()
        info = await sound.info()
        timings["info"] = time.monotonic() - start
        title = sound.title or info.get("statusMsg", "?")
        console.print(f"  Title: [cyan]{title}[/cyan]")

        start = time.monotonic()
        count = 0
        async for _ in sound.videos(video_count):
            if count == 0:
                timings["first_video"] = time.monotonic() - start
            count += 1
        timings["videos"] = time.monotonic() - start
        console.print(f"  {count} video(s) received.")
    finally:
        await api.close()
    timings["total"] = time.monotonic() - start_total
    return timings


@app.command()
def compare(
    sound_id: str = typer.Argument(..., help="ID of the sound used for timing."),
    videos: int = typer.Option(5, "--videos", "-n", help="Videos to list per run."),
):
    """Compare regular-browser, headless-browser and browser-free modes."""
    base = _load_config({"num_sessions": 1})
    _require_token(base)

    modes = {
        "Regular Browser": {"headless": False, "browser_free": False},
        "Headless Browser": {"headless": True, "browser_free": False},
        "Browser-Free": {"headless": True, "browser_free": True},
    }

    async def _compare_async() -> dict[str, dict[str, float]]:
        results = {}
        for label, overrides in modes.items():
            console.print(f"\n[bold]{label}[/bold]")
            config = base.model_copy(update=overrides)
            try:
                results[label] = await _time_mode(config, sound_id, videos)
            except TTScrapeError as e:
                console.print(f"[red]✗ {label} run failed: {e}[/red]")
        return results

    timings = asyncio.run(_compare_async())
    if timings:
        print_comparison_table(timings)
    else:
        raise typer.Exit(code=1)


# A long-lived, widely used sound; only its availability matters.
CHECK_SOUND_ID = "6812253843712346882"


async def _check_site(config: ScrapeConfig) -> bool:
    """Checks that the site answers a plain browser-like GET."""
    timeout = aiohttp.ClientTimeout(total=config.request_timeout)
    try:
        async with (
            aiohttp.ClientSession(timeout=timeout) as http,
            http.get(config.base_url, headers=default_headers()) as resp,
        ):
            status = resp.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        console.print(f"[red]✗ Could not reach {config.base_url}: {e!r}[/red]")
        return False

    if status >= 400:
        console.print(f"[red]✗ {config.base_url} answered with status {status}.[/red]")
        return False
    console.print(f"[green]✓[/] Reached {config.base_url} (status {status}).")
    return True


async def _check_token(config: ScrapeConfig, sound_id: str) -> bool:
    """Fetches one sound through a browser-free session built from the first token."""
    if not config.ms_tokens:
        console.print("[yellow]⚠[/] No msToken configured, skipping the API check.")
        return True

    client_config = config.client_config()
    client_config.browser_free = True
    async with TikTokAPI(client_config) as api:
        await api.create_sessions(1, config.ms_tokens[:1])
        sound = api.sound(sound_id)
        try:
            info = await sound.info()
        except SoundFetchError as e:
            console.print(f"[red]✗ API check failed: {e}[/red]")
            return False

    if not sound.title:
        console.print(
            "[red]✗ The API answered without sound metadata "
            f"(statusCode={info.get('statusCode', '?')}). "
            "The msToken was probably rejected.[/red]"
        )
        return False
    console.print(f"[green]✓[/] msToken accepted, fetched '{sound.title}'.")
    return True


@app.command()
def diagnose(
    sound_id: str = typer.Option(
        CHECK_SOUND_ID, "--sound", help="Sound fetched to test the msToken."
    ),
):
    """Check the configuration, connectivity and msToken validity."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]✓[/] Configuration is valid ([dim]{CONFIG_FILE}[/dim]).")
    console.print(f"[green]✓[/] {len(config.ms_tokens)} msToken(s) configured.")

    async def _run_checks() -> list[bool]:
        return [await _check_site(config), await _check_token(config, sound_id)]

    console.print("\n[dim]Probing TikTok...[/dim]")
    results = asyncio.run(_run_checks())
    console.print()
    if all(results):
        console.print("[bold green]✓ All checks passed![/bold green]\n")
        return
    console.print(
        "[bold red]✗ Some checks failed. Review the messages above.[/bold red]\n"
    )
    raise typer.Exit(code=1)
