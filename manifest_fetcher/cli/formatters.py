"""
Functions for formatting and displaying data in the console using Rich.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from manifest_fetcher.models.config import FetcherConfig
from manifest_fetcher.models.result import FetchResult
from manifest_fetcher.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "MissingParameterError": [
            "• Usage: manifest-fetcher fetch <DATAKIT> <INSTANCE_URL> <ACCESS_TOKEN>",
            "• Or omit the URL and token to use your Salesforce CLI session.",
        ],
        "CredentialResolutionError": [
            "• Check that the Salesforce CLI ('sf') is installed and on PATH.",
            "• Log in with `sf org login web`, or pass --target-org <alias>.",
            "• Run `sf org display --json` to see what the CLI reports.",
        ],
        "AuthenticationError": [
            "• Your access token may have expired. Fetch a fresh one.",
            "• Check that the instance URL belongs to the same org as the token.",
            "• Use --no-verify-login to skip this check if your org redirects.",
        ],
        "ControlNotFoundError": [
            "• Check the DataKit name; it is case-sensitive.",
            "• The user may lack permission to view Data Kits in Setup.",
            "• Slow orgs may need a longer --control-timeout.",
        ],
        "DownloadTimeoutError": [
            "• The export may still be running; try a longer --download-timeout.",
            "• Check that nothing else writes into the download folder.",
        ],
        "BrowserSessionError": [
            "• Install the browser with `playwright install chromium`.",
            "• Or point BROWSER_EXECUTABLE_PATH at an installed Chrome.",
            "• Delete the profile folder if it is locked by another browser.",
        ],
        "ManifestIntegrityError": [
            "• Open the downloaded file to see what the org returned.",
            "• Use --no-verify-manifest to keep the file as-is.",
        ],
        "ConfigurationError": [
            "• Run `manifest-fetcher validate` to see the offending setting.",
            "• Run `manifest-fetcher init --force` to recreate the config file.",
            "• Check that --download-dir names a folder, not a file.",
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
        details = ", ".join(f"{k}: {v}" for k, v in context.items() if v)
        content.add_row(Text(f"Context: {details}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the settings stored in the configuration file."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: FetcherConfig):
    """Displays a summary of the effective settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    def enabled(flag: bool) -> str:
        return "✓ Enabled" if flag else "✗ Disabled"

    table.add_row("Download Folder:", str(config.download_dir.resolve()))
    table.add_row("Browser Profile:", str(config.user_data_dir.resolve()))
    table.add_row("Error Screenshot:", str(config.screenshot_path))
    table.add_row("Expected File:", str(config.expected_path))
    table.add_row("Browser Mode:", "Headless" if config.headless else "Headed")
    table.add_row("Executable:", config.executable_path or "[dim]Playwright default[/dim]")
    table.add_row(
        "Viewport:", f"{config.viewport_width}×{config.viewport_height}"
    )
    table.add_row("Control:", f"{config.control_role} '{config.control_name}'")
    table.add_row("Control Timeout:", f"{config.control_timeout_seconds:g}s")
    table.add_row("Download Timeout:", f"{config.download_timeout_seconds:g}s")
    table.add_row("Verify Login:", enabled(config.verify_login))
    table.add_row("Verify Manifest:", enabled(config.verify_manifest))
    table.add_row("Target Org:", config.target_org or "[dim]sf default[/dim]")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_result_panel(result: FetchResult, progress_stats: dict | None = None):
    """Displays the summary of a successful fetch."""
    console = Console()

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right", width=16)
    table.add_column(style="white", justify="left")

    table.add_row("DataKit:", f"[bold]{result.target}[/bold]")
    table.add_row("Org:", result.instance_url)
    if result.username:
        table.add_row("User:", result.username)
    table.add_row("Manifest:", f"[green]{result.manifest_path}[/green]")
    table.add_row("Size:", f"[cyan]{format_size(result.size_bytes)}[/cyan]")

    if result.summary:
        table.add_row(
            "Contents:",
            f"{result.summary.metadata_types} types, {result.summary.members} members",
        )
        if result.summary.api_version:
            table.add_row("API Version:", result.summary.api_version)

    table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(result.duration_seconds)}[/blue]"
    )
    if progress_stats and progress_stats.get("completed_steps"):
        table.add_row("Steps:", str(len(progress_stats["completed_steps"])))

    console.print()
    console.print(
        Panel(
            table,
            title="📦 [bold]Manifest Downloaded[/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )


def print_history_table(entries: list[dict[str, Any]]):
    """Displays recent fetch runs, newest first."""
    console = Console()
    if not entries:
        console.print("[dim]No fetches recorded yet.[/dim]")
        return

    table = Table(title="Recent Fetches", box=box.SIMPLE_HEAVY)
    table.add_column("When", style="dim")
    table.add_column("DataKit", style="cyan")
    table.add_column("Org")
    table.add_column("Result")
    table.add_column("Size", justify="right")
    table.add_column("Time", justify="right")

    for entry in entries:
        when = datetime.fromtimestamp(entry.get("timestamp", 0)).strftime(
            "%Y-%m-%d %H:%M"
        )
        status = entry.get("status", "?")
        result = (
            "[green]✓ success[/green]" if status == "success" else f"[red]✗ {status}[/red]"
        )
        size = entry.get("size_bytes")
        table.add_row(
            when,
            str(entry.get("target", "")),
            str(entry.get("instance_url", "")),
            result,
            format_size(size) if size else "-",
            format_duration(entry.get("duration_seconds", 0.0)),
        )
    console.print(table)
