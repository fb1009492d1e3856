"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from manifest_fetcher import __version__
from manifest_fetcher.auth.providers import (
    CredentialProvider,
    SalesforceCliCredentialProvider,
    StaticCredentialProvider,
)
from manifest_fetcher.browser.session import EXECUTABLE_ENV_VAR
from manifest_fetcher.core.fetcher import ManifestFetcher
from manifest_fetcher.exceptions import ManifestFetcherError, MissingParameterError
from manifest_fetcher.models.config import FetcherConfig
from manifest_fetcher.storage.config_manager import ConfigManager
from manifest_fetcher.storage.history import FetchHistory
from manifest_fetcher.utils.structured_logger import create_structured_logger

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_history_table,
    print_result_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager

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
log = logging.getLogger("manifest_fetcher")

app = typer.Typer(
    name="manifest-fetcher",
    help=(
        "Download a Data Cloud Data Kit manifest (package.xml) through an"
        " authenticated browser session. Use 'manifest-fetcher <command> --help'"
        " for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

CONFIG_DIR_ENV_VAR = "MANIFEST_FETCHER_CONFIG_DIR"


def get_config_dir() -> Path:
    if override := os.getenv(CONFIG_DIR_ENV_VAR):
        return Path(override).expanduser()
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "manifest-fetcher"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


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
        False, "--show-config", help="Display the current configuration file."
    ),
):
    """Data Kit Manifest Fetcher"""
    if version:
        console.print(
            f"[bold]manifest-fetcher[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("manifest_fetcher").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]manifest-fetcher init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _build_provider(
    credentials: list[str] | None, target_org: str, sf_executable: str
) -> CredentialProvider:
    """Explicit URL and token win; with neither, ask the Salesforce CLI."""
    if not credentials:
        return SalesforceCliCredentialProvider(
            target_org=target_org, executable=sf_executable
        )
    if len(credentials) != 2:
        raise MissingParameterError(
            "Please provide both an instance URL and an access token, or neither"
            " to use the Salesforce CLI session."
        )
    return StaticCredentialProvider(credentials[0], credentials[1])


@app.command(name="fetch")
def fetch_command(
    target: str | None = typer.Argument(
        None, help="Name of the Data Kit whose manifest to download.", show_default=False
    ),
    credentials: list[str] | None = typer.Argument(  # noqa: B008
        None,
        help="Instance URL and access token. Omit both to use the Salesforce CLI.",
        metavar="[<INSTANCE_URL> <ACCESS_TOKEN>]",
        show_default=False,
    ),
    target_org: str | None = typer.Option(
        None,
        "--target-org",
        "-o",
        help="Salesforce CLI org alias or username to take credentials from.",
    ),
    # --- Filesystem Options ---
    download_dir: Path | None = typer.Option(
        None, "--download-dir", "-d", help="Folder the manifest is downloaded into."
    ),
    profile_dir: Path | None = typer.Option(
        None, "--profile-dir", help="Folder holding the persistent browser profile."
    ),
    screenshot: Path | None = typer.Option(
        None, "--screenshot", help="Where to save a screenshot when the run fails."
    ),
    control_role: str | None = typer.Option(
        None,
        "--control-role",
        help=(
            "Accessible role of the Download Manifest control (default 'button')."
            " Use 'link' or 'menuitem' if your org renders it that way."
        ),
    ),
    # --- Timing Options ---
    control_timeout: float | None = typer.Option(
        None,
        "--control-timeout",
        help="Seconds to wait for the Download Manifest button (default 60).",
    ),
    download_timeout: float | None = typer.Option(
        None,
        "--download-timeout",
        help="Seconds to wait for package.xml to finish downloading (default 30).",
    ),
    # --- Behavior Options ---
    headless: bool | None = typer.Option(
        None, "--headless/--headed", help="Hide or show the browser window."
    ),
    verify_login: bool | None = typer.Option(
        None,
        "--verify-login/--no-verify-login",
        help="Check that frontdoor login succeeded before navigating on.",
    ),
    verify_manifest: bool | None = typer.Option(
        None,
        "--verify-manifest/--no-verify-manifest",
        help="Check that the downloaded file is a <Package> manifest.",
    ),
    log_dir: Path | None = typer.Option(
        None, "--log-dir", help="Write a JSON Lines event log of the run here."
    ),
):
    """Download the manifest of a Data Kit."""
    cli_options = {
        key: value
        for key, value in {
            "target_org": target_org,
            "download_dir": download_dir,
            "user_data_dir": profile_dir,
            "screenshot_path": screenshot,
            "control_role": control_role,
            "control_timeout_seconds": control_timeout,
            "download_timeout_seconds": download_timeout,
            "headless": headless,
            "verify_login": verify_login,
            "verify_manifest": verify_manifest,
        }.items()
        if value is not None
    }

    async def _fetch_async():
        fetcher = None
        base_logger = None
        try:
            config = ConfigManager(CONFIG_FILE).load_config(cli_options)
            provider = _build_provider(
                credentials, config.target_org, config.sf_executable
            )
            events = None
            if log_dir is not None:
                base_logger, events = create_structured_logger(log_dir)

            async with ProgressManager(console=console) as progress_manager:
                fetcher = ManifestFetcher(
                    config,
                    progress=progress_manager,
                    events=events,
                    history=FetchHistory(CONFIG_DIR),
                )
                result = await fetcher.fetch(target, provider)
                progress_stats = progress_manager.get_statistics()

        except ManifestFetcherError as e:
            log.error(f"[red]🚨 Error during automation: {escape(str(e))}[/red]")
            context = None
            if fetcher is not None:
                context = {
                    "step": fetcher.current_step,
                    "screenshot": fetcher.last_screenshot,
                }
            console.print(format_error_with_suggestions(e, context))
            raise typer.Exit(code=1) from e
        finally:
            if base_logger is not None:
                base_logger.close()

        print_result_panel(result, progress_stats)

    asyncio.run(_fetch_async())


@app.command()
def init(
    target_org: str | None = typer.Option(
        None,
        "--target-org",
        "-o",
        help="Default Salesforce CLI org to take credentials from.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config file without asking."
    ),
):
    """Create a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {"target_org": target_org} if target_org else {}
    try:
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except ManifestFetcherError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(
        f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]"
    )
    console.print(
        "Ready! Try: [cyan]manifest-fetcher fetch <DATAKIT> <INSTANCE_URL>"
        " <ACCESS_TOKEN>[/cyan]"
    )


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except ManifestFetcherError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command(name="history")
def history_command(
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Runs to show."),
    clear: bool = typer.Option(False, "--clear", help="Erase the fetch history."),
):
    """Show recent fetch runs."""
    history = FetchHistory(CONFIG_DIR)

    async def _history():
        if clear:
            if await history.clear():
                console.print("[green]✓ Fetch history cleared.[/green]")
            else:
                console.print("[red]✗ Failed to clear fetch history.[/red]")
                raise typer.Exit(code=1)
            return
        print_history_table(await history.recent(limit))

    asyncio.run(_history())


@app.command()
def diagnose(
    instance_url: str = typer.Option(
        "https://login.salesforce.com",
        "--instance-url",
        help="Org URL to test connectivity against.",
    ),
):
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    config = FetcherConfig()

    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]○[/] No config file; defaults are used. "
            "Run [cyan]manifest-fetcher init[/cyan] to create one."
        )
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid.")
    except ManifestFetcherError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        issues_found = True

    if sf_path := shutil.which(config.sf_executable):
        console.print(f"[green]✓[/] Salesforce CLI found: [dim]{sf_path}[/dim]")
    else:
        console.print(
            f"[yellow]○[/] '{config.sf_executable}' not found on PATH; pass the"
            " instance URL and access token explicitly."
        )

    executable = os.getenv(EXECUTABLE_ENV_VAR) or config.executable_path
    if executable:
        if Path(executable).is_file():
            console.print(f"[green]✓[/] Browser executable: [dim]{executable}[/dim]")
        else:
            console.print(f"[red]✗ Browser executable not found: {executable}[/red]")
            issues_found = True
    else:
        console.print("[green]✓[/] Using Playwright's bundled Chromium.")

    console.print(f"\n[dim]Testing connectivity to {instance_url}...[/dim]")

    async def test_connection():
        import aiohttp

        try:
            timeout = aiohttp.ClientTimeout(total=10)
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.get(instance_url) as resp,
            ):
                if resp.status < 500:
                    console.print(
                        f"[green]✓[/] Reached {instance_url} (Status: {resp.status})."
                    )
                    return True
                console.print(
                    f"[red]✗ {instance_url} answered with status {resp.status}.[/red]"
                )
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            console.print(f"[red]✗ Connection test failed: {e}[/red]")
            return False

    if not asyncio.run(test_connection()):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
