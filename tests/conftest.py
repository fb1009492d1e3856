import asyncio
import json
from pathlib import Path

import pytest

from manifest_fetcher.exceptions import ControlNotFoundError
from manifest_fetcher.models.config import FetcherConfig

INSTANCE_URL = "https://org.example.com"
HOME_URL = f"{INSTANCE_URL}/lightning/setup/SetupOneHome/home"

MANIFEST_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<Package xmlns="http://soap.sforce.com/2006/04/metadata">
    <types>
        <members>Account_DLO</members>
        <members>Contact_DLO</members>
        <name>DataSourceObject</name>
    </types>
    <types>
        <members>KitA</members>
        <name>DataPackageKitDefinition</name>
    </types>
    <version>62.0</version>
</Package>
"""


class FakeBrowser:
    """
    Records what the fetcher does with its browser sessions.

    `factory` has the same shape as the BrowserSession class, so it can be
    passed to ManifestFetcher as its session factory.
    """

    def __init__(self, landing_url=HOME_URL, control_visible=True, on_click=None):
        self.landing_url = landing_url
        self.control_visible = control_visible
        self.on_click = on_click
        self.sessions = 0
        self.started = False
        self.closed = False
        self.visited: list[str] = []
        self.download_dir: Path | None = None
        self.controls: list[tuple[str, str]] = []
        self.clicks = 0
        self.screenshots: list[Path] = []

    def factory(self, config):
        self.sessions += 1
        return FakeSession(self, config)


class FakeSession:
    def __init__(self, browser: FakeBrowser, config: FetcherConfig):
        self.browser = browser
        self.config = config
        self._url = "about:blank"

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def current_url(self):
        return self._url

    async def start(self):
        self.browser.started = True

    async def enable_downloads(self, directory):
        self.browser.download_dir = directory

    async def goto(self, url, label=None):
        self.browser.visited.append(url)
        self._url = self.browser.landing_url if "frontdoor.jsp" in url else url

    async def settle(self, seconds):
        await asyncio.sleep(0)

    async def wait_for_url(self, predicate, timeout):
        return predicate(self._url)

    async def find_control(self, role, name, timeout):
        self.browser.controls.append((role, name))
        if not self.browser.control_visible:
            raise ControlNotFoundError(f"Could not find the '{name}' {role}.")
        return object()

    async def activate(self, control, timeout):
        self.browser.clicks += 1
        if self.browser.on_click:
            self.browser.on_click(self.browser.download_dir)

    async def screenshot(self, path):
        path.write_bytes(b"\x89PNG")
        self.browser.screenshots.append(path)
        return path

    async def close(self):
        self.browser.closed = True


def write_manifest(directory: Path) -> None:
    (directory / "package.xml").write_bytes(MANIFEST_XML)


def write_in_progress_then_manifest(directory: Path, delay: float = 0.05) -> None:
    """Mimics Chromium: a .crdownload file that is renamed once complete."""
    partial = directory / "package.xml.crdownload"
    partial.write_bytes(MANIFEST_XML[:20])

    def finish():
        partial.unlink()
        write_manifest(directory)

    asyncio.get_running_loop().call_later(delay, finish)


def write_in_progress_forever(directory: Path) -> None:
    (directory / "package.xml.crdownload").write_bytes(b"partial")


class FakeProcess:
    """Stands in for the `sf` subprocess."""

    def __init__(self, stdout=b"", stderr=b"", returncode=0, hang=False):
        self._stdout = stdout
        self._stderr = stderr
        self.returncode = returncode
        self.hang = hang
        self.killed = False

    async def communicate(self):
        if self.hang:
            await asyncio.sleep(10)
        return self._stdout, self._stderr

    def kill(self):
        self.killed = True

    async def wait(self):
        return self.returncode


def sf_output(status=0, **result) -> bytes:
    return json.dumps({"status": status, "result": result}).encode()


@pytest.fixture
def fake_sf(monkeypatch):
    """Replaces the subprocess call with a canned process; records the argv."""
    calls = []
    state = {"process": FakeProcess()}

    async def create_subprocess_exec(*args, **kwargs):
        calls.append(list(args))
        if isinstance(state["process"], Exception):
            raise state["process"]
        return state["process"]

    monkeypatch.setattr(asyncio, "create_subprocess_exec", create_subprocess_exec)

    def use(process):
        state["process"] = process
        return calls

    return use


@pytest.fixture
def config(tmp_path):
    return FetcherConfig(
        download_dir=tmp_path / "downloads",
        user_data_dir=tmp_path / "userDataDir",
        screenshot_path=tmp_path / "error-screen.png",
        auth_settle_seconds=0,
        navigation_settle_seconds=0,
        control_timeout_seconds=0.2,
        download_timeout_seconds=0.3,
        poll_interval_seconds=0.02,
    )
