"""
Process entry point for manifest-fetcher.
Turns anything that escapes the CLI into an error panel and an exit code.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from manifest_fetcher.cli.app import app
from manifest_fetcher.cli.formatters import format_error_with_suggestions
from manifest_fetcher.exceptions import ManifestFetcherError

EXIT_FAILURE = 1


def main() -> None:
    """Runs the CLI; every failure exits with status 1."""
    if os.name == "nt":
        # Emoji in log lines need a UTF-8 console on Windows
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.reconfigure(encoding="utf-8")
            except (TypeError, AttributeError):
                pass

    log = logging.getLogger("manifest_fetcher")
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Fetch cancelled.[/yellow]")
        sys.exit(0)
    except ManifestFetcherError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Unhandled error", exc_info=True)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
