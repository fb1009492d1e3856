"""
A scoped Playwright browser session with a persistent profile and downloads
written straight into a watched directory.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

from playwright.async_api import (
    BrowserContext,
    CDPSession,
    Locator,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from manifest_fetcher.exceptions import BrowserSessionError, ControlNotFoundError
from manifest_fetcher.models.config import FetcherConfig

log = logging.getLogger(__name__)

EXECUTABLE_ENV_VAR = "BROWSER_EXECUTABLE_PATH"

# Flags that let Chromium run inside containers and CI runners
LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
)


def _ms(seconds: float) -> float:
    return seconds * 1000


class BrowserSession:
    """
    Owns one Chromium instance for the length of a run.

    Use as an async context manager; the browser is closed on every exit path.
    """

    def __init__(self, config: FetcherConfig):
        self.config = config
        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._cdp: CDPSession | None = None

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def executable_path(self) -> str | None:
        """The environment override wins over the configured path."""
        return os.environ.get(EXECUTABLE_ENV_VAR) or self.config.executable_path or None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserSessionError("Browser is not started. Call start() first.")
        return self._page

    @property
    def current_url(self) -> str:
        return self.page.url

    async def start(self) -> None:
        """
        Launches Chromium with the configured profile directory and viewport.

        Anything already started is torn down again if a later part fails.

        Raises:
            BrowserSessionError: If the profile folder, the browser or its
            first page cannot be set up.
        """
        profile_dir = self.config.user_data_dir.resolve()
        try:
            profile_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BrowserSessionError(
                f"Could not create browser profile folder '{profile_dir}': {e}"
            ) from e

        self._playwright = await async_playwright().start()
        try:
            self._context = await self._playwright.chromium.launch_persistent_context(
                user_data_dir=str(profile_dir),
                headless=self.config.headless,
                executable_path=self.executable_path,
                args=list(LAUNCH_ARGS),
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
            )
            pages = self._context.pages
            self._page = pages[0] if pages else await self._context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise BrowserSessionError(f"Could not launch the browser: {e}") from e
        except BaseException:
            await self.close()
            raise

        log.debug(
            f"Chromium started (headless={self.config.headless}, profile={profile_dir})"
        )

    async def enable_downloads(self, directory: Path) -> None:
        """
        Makes Chromium save downloads into `directory` under their real names.

        Playwright normally captures downloads itself under generated names,
        so the behavior is overridden through the DevTools protocol. The Page
        domain is tried first, then the Browser domain.
        """
        params = {"behavior": "allow", "downloadPath": str(directory.resolve())}
        try:
            self._cdp = await self.page.context.new_cdp_session(self.page)
        except PlaywrightError as e:
            raise BrowserSessionError(
                f"Could not open a DevTools session to route downloads: {e}"
            ) from e

        last_error: PlaywrightError | None = None
        for method in ("Page.setDownloadBehavior", "Browser.setDownloadBehavior"):
            try:
                await self._cdp.send(method, params)
                log.debug(f"Downloads routed to {params['downloadPath']} via {method}")
                return
            except PlaywrightError as e:
                last_error = e
                log.debug(f"{method} failed: {e}")

        raise BrowserSessionError(
            f"Could not route downloads to '{directory}': {last_error}"
        ) from last_error

    async def goto(self, url: str, label: str | None = None) -> None:
        """
        Navigates and waits for the DOM to be ready.

        Args:
            url: Destination URL.
            label: What to call the page in errors, so secrets in the URL
                never reach the output.
        """
        try:
            await self.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=_ms(self.config.navigation_timeout_seconds),
            )
        except PlaywrightError as e:
            raise BrowserSessionError(
                f"Navigation to {label or url} failed: {e.message}"
            ) from e

    async def settle(self, seconds: float) -> None:
        """Gives client-side rendering a fixed amount of time."""
        if seconds > 0:
            await self.page.wait_for_timeout(_ms(seconds))

    async def wait_for_url(self, predicate: Callable[[str], bool], timeout: float) -> bool:
        """Waits for the page URL to satisfy `predicate`; False on timeout."""
        if predicate(self.current_url):
            return True
        try:
            await self.page.wait_for_url(
                predicate, wait_until="commit", timeout=_ms(timeout)
            )
        except PlaywrightTimeoutError:
            return False
        return True

    async def find_control(self, role: str, name: str, timeout: float) -> Locator:
        """
        Waits for a control with the given accessible role and name to be visible.

        Raises:
            ControlNotFoundError: If it does not become visible in time.
        """
        locator = self.page.get_by_role(role, name=name, exact=True).first
        try:
            await locator.wait_for(state="visible", timeout=_ms(timeout))
        except PlaywrightTimeoutError as e:
            raise ControlNotFoundError(
                f"Could not find the '{name}' {role} within {timeout:g}s."
            ) from e
        return locator

    async def activate(self, control: Locator, timeout: float) -> None:
        """
        Clicks a control once.

        Raises:
            ControlNotFoundError: If the control cannot be clicked.
        """
        try:
            await control.click(timeout=_ms(timeout))
        except PlaywrightError as e:
            raise ControlNotFoundError(
                f"The control was found but could not be clicked: {e.message}"
            ) from e

    async def screenshot(self, path: Path) -> Path | None:
        """Saves a full-page screenshot; returns None if it could not be taken."""
        if self._page is None or self._page.is_closed():
            return None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self._page.screenshot(path=str(path), full_page=True)
        except (PlaywrightError, OSError) as e:
            log.warning(f"[yellow]Could not capture screenshot: {e}[/yellow]")
            return None
        return path

    async def close(self) -> None:
        """Closes the browser and stops Playwright. Safe to call twice."""
        if self._context is None and self._playwright is None:
            return
        log.info("🧼 Closing browser...")
        try:
            if self._context is not None:
                await self._context.close()
        except PlaywrightError as e:
            log.debug(f"Error while closing browser context: {e}")
        finally:
            self._context = None
            self._page = None
            self._cdp = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
