"""
Console entry point: runs the Typer app and turns uncaught errors into rich
error panels with an exit status.
"""

import asyncio
import logging
import sys

from rich.console import Console

from ttscrape.cli.app import app
from ttscrape.cli.formatters import format_error_with_suggestions
from ttscrape.exceptions import TTScrapeError

log = logging.getLogger("ttscrape")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _force_utf8_output() -> None:
    """Windows consoles default to a legacy code page that cannot print emoji."""
    if sys.platform != "win32":
        return
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")


def _report(console: Console, error: Exception, context: dict | None = None) -> int:
    console.print()
    console.print(format_error_with_suggestions(error, context))
    return EXIT_FAILURE


def main() -> None:
    """Main entry point function."""
    _force_utf8_output()
    console = Console(stderr=True)

    try:
        app()
    except asyncio.CancelledError:
        console.print("\n[yellow]⚠️  Cancelled. Open sessions were closed.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except TTScrapeError as e:
        sys.exit(_report(console, e))
    except Exception as e:
        log.debug("Unhandled exception:", exc_info=True)
        sys.exit(_report(console, e, {"type": "Unexpected"}))


if __name__ == "__main__":
    main()
