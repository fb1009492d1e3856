"""
The orchestrator for a single manifest fetch.
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlparse

import aiofiles.os

from manifest_fetcher.auth.providers import CredentialProvider
from manifest_fetcher.browser.session import BrowserSession
from manifest_fetcher.cli.progress_manager import ProgressManager
from manifest_fetcher.downloads import (
    ManifestIntegrityChecker,
    ManifestSummary,
    reset_download_dir,
    wait_for_download,
)
from manifest_fetcher.exceptions import (
    AuthenticationError,
    ManifestFetcherError,
    MissingParameterError,
)
from manifest_fetcher.models.config import FetcherConfig
from manifest_fetcher.models.credentials import Credentials
from manifest_fetcher.models.result import FetchResult
from manifest_fetcher.storage.history import FetchHistory
from manifest_fetcher.utils.formatting import mask_token
from manifest_fetcher.utils.structured_logger import FetchEventLogger
from manifest_fetcher.utils.urls import (
    build_frontdoor_url,
    build_resource_url,
    is_authenticated_url,
)

log = logging.getLogger(__name__)

SessionFactory = Callable[[FetcherConfig], BrowserSession]


def _strip_query(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ManifestFetcher:
    """Runs one fetch from credentials to a finished package.xml."""

    def __init__(
        self,
        config: FetcherConfig,
        session_factory: SessionFactory = BrowserSession,
        progress: ProgressManager | None = None,
        events: FetchEventLogger | None = None,
        history: FetchHistory | None = None,
    ):
        self.config = config
        self.session_factory = session_factory
        self.progress = progress
        self.events = events
        self.history = history

        self.current_step = "validate"
        self.last_screenshot: Path | None = None
        self._step_started = time.monotonic()

    async def fetch(self, target: str | None, provider: CredentialProvider) -> FetchResult:
        """
        Downloads the manifest of `target`.

        Input and credential errors are raised before any browser is launched.
        Every later failure leaves a screenshot behind (when one can be taken)
        and always closes the browser.

        Raises:
            ManifestFetcherError: A subclass naming what went wrong.
        """
        start = time.monotonic()
        self.current_step = "validate"
        self.last_screenshot = None

        if not target or not target.strip():
            raise MissingParameterError("Please provide a DataKit name.")
        target = target.strip()

        self._begin("credentials", "🔑 Resolving credentials...")
        credentials = await provider.resolve()
        if not credentials.instance_url or not credentials.access_token:
            raise MissingParameterError("Please provide an instance URL and access token.")
        token = mask_token(credentials.access_token)
        log.debug(f"Using {credentials.instance_url} with token {token}")
        self._done()

        if self.events:
            self.events.fetch_started(
                target, credentials.instance_url, credentials.username
            )

        try:
            manifest_path, summary = await self._run(target, credentials)
            stat = await aiofiles.os.stat(manifest_path)
        except ManifestFetcherError as e:
            duration = time.monotonic() - start
            if self.events:
                screenshot = str(self.last_screenshot) if self.last_screenshot else None
                self.events.fetch_failed(self.current_step, e, duration, screenshot)
            if self.history:
                await self.history.record_failure(
                    target, credentials.instance_url, e, duration
                )
            raise

        result = FetchResult(
            target=target,
            manifest_path=manifest_path,
            size_bytes=stat.st_size,
            duration_seconds=time.monotonic() - start,
            instance_url=credentials.instance_url,
            username=credentials.username,
            summary=summary,
        )
        if self.events:
            self.events.fetch_completed(
                str(manifest_path), result.size_bytes, result.duration_seconds
            )
        if self.history:
            await self.history.record_success(result)
        return result

    async def _run(
        self, target: str, credentials: Credentials
    ) -> tuple[Path, ManifestSummary | None]:
        download_dir = self.config.download_dir.resolve()

        self._begin("reset", "🗑️ Preparing downloads folder...")
        await reset_download_dir(download_dir)
        self._done(download_dir=str(download_dir))

        self._begin("launch", "🚀 Launching browser...")
        async with self.session_factory(self.config) as session:
            self._done()
            try:
                return await self._drive(session, target, credentials, download_dir)
            except Exception:
                await self._capture(session)
                raise

    async def _drive(
        self,
        session: BrowserSession,
        target: str,
        credentials: Credentials,
        download_dir: Path,
    ) -> tuple[Path, ManifestSummary | None]:
        cfg = self.config

        self._begin("downloads", "📂 Routing browser downloads...")
        await session.enable_downloads(download_dir)
        self._done()

        self._begin("authenticate", "🔗 Authenticating via frontdoor...")
        frontdoor_url = build_frontdoor_url(
            credentials.instance_url, credentials.access_token, cfg.auth_path
        )
        await session.goto(frontdoor_url, label=_strip_query(frontdoor_url))
        await session.settle(cfg.auth_settle_seconds)
        if cfg.verify_login:
            await self._verify_login(session)
        self._done()

        self._begin("navigate", "🔄 Navigating to DataKit page...")
        resource_url = build_resource_url(
            credentials.instance_url, target, cfg.resource_path_template
        )
        await session.goto(resource_url)
        log.info("🕒 Waiting for page to load...")
        await session.settle(cfg.navigation_settle_seconds)
        self._done(url=resource_url)

        self._begin("find_control", f"📦 Waiting for {cfg.control_name} button...")
        control = await session.find_control(
            cfg.control_role, cfg.control_name, cfg.control_timeout_seconds
        )
        self._done()

        self._begin("click", f"⬇️ Clicking {cfg.control_name}...")
        await session.activate(control, cfg.control_timeout_seconds)
        self._done()

        self._begin("download", f"📁 Waiting for {cfg.expected_filename} to download...")
        manifest_path = await wait_for_download(
            download_dir,
            cfg.expected_filename,
            cfg.in_progress_suffix,
            timeout=cfg.download_timeout_seconds,
            poll_interval=cfg.poll_interval_seconds,
        )
        log.info(f"[green]✅ Download complete: {manifest_path.name}[/green]")
        self._done()

        summary = None
        if cfg.verify_manifest:
            self._begin("verify", "🔍 Checking manifest...")
            summary = await ManifestIntegrityChecker.check_manifest(manifest_path)
            self._done(types=summary.metadata_types, members=summary.members)
        return manifest_path, summary

    async def _verify_login(self, session: BrowserSession) -> None:
        auth_path = self.config.auth_path
        logged_in = await session.wait_for_url(
            lambda url: is_authenticated_url(url, auth_path),
            timeout=self.config.auth_timeout_seconds,
        )
        if not logged_in:
            raise AuthenticationError(
                "Frontdoor login did not establish a session; the browser is at "
                f"{_strip_query(session.current_url)}."
            )

    async def _capture(self, session: BrowserSession) -> None:
        if self.progress:
            self.progress.fail_step()
        path = self.config.screenshot_path.resolve()
        self.last_screenshot = await session.screenshot(path)
        if self.last_screenshot:
            log.info(f"📸 Screenshot saved to {self.config.screenshot_path}")

    def _begin(self, step: str, message: str) -> None:
        self.current_step = step
        self._step_started = time.monotonic()
        log.info(message)
        if self.progress:
            self.progress.start_step(message)

    def _done(self, **details) -> None:
        elapsed = time.monotonic() - self._step_started
        if self.progress:
            self.progress.complete_step()
        if self.events:
            self.events.step_completed(self.current_step, elapsed, **details)
