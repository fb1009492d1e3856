"""
Watches the download directory the browser writes into.

Chromium writes an in-flight download as '<name>.crdownload' and renames it
once finished, so completion can be decided from a directory listing alone.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from pathlib import Path

import aiofiles.os

from manifest_fetcher.exceptions import ConfigurationError, DownloadTimeoutError

log = logging.getLogger(__name__)


async def reset_download_dir(directory: Path) -> int:
    """
    Empties the download directory, creating it if needed.

    Only files directly inside the directory are removed. Entries that cannot
    be removed are reported and left in place.

    Returns:
        The number of entries removed.

    Raises:
        ConfigurationError: If the path exists but is not a directory, or
        cannot be created.
    """
    if not await aiofiles.os.path.isdir(directory):
        try:
            await aiofiles.os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Download folder '{directory}' cannot be used: {e.strerror or e}"
            ) from e
        log.debug(f"Created download directory '{directory}'")
        return 0

    removed = 0
    for name in await aiofiles.os.listdir(directory):
        entry = directory / name
        if await aiofiles.os.path.isdir(entry):
            log.warning(f"[yellow]Leaving sub-directory '{name}' in place.[/yellow]")
            continue
        try:
            await aiofiles.os.remove(entry)
            removed += 1
        except OSError as e:
            log.warning(f"[yellow]Could not remove '{name}': {e}[/yellow]")

    if removed:
        log.info(f"🗑️ Downloads folder cleared ({removed} removed)")
    return removed


async def list_entries(directory: Path) -> list[str]:
    """Names of the entries in the directory; empty if it does not exist."""
    try:
        return sorted(await aiofiles.os.listdir(directory))
    except FileNotFoundError:
        return []


def is_download_complete(
    entries: Iterable[str], expected_filename: str, in_progress_suffix: str
) -> bool:
    """
    True when the expected file is present and nothing is still downloading.
    """
    names = list(entries)
    if any(name.endswith(in_progress_suffix) for name in names):
        return False
    return expected_filename in names


async def wait_for_download(
    directory: Path,
    expected_filename: str,
    in_progress_suffix: str,
    timeout: float,
    poll_interval: float = 0.5,
) -> Path:
    """
    Polls the directory until the expected file has finished downloading.

    The first look happens immediately. The wait never gives up before
    `timeout` seconds have passed.

    Raises:
        DownloadTimeoutError: If the file is not complete when time runs out.
    """
    start = time.monotonic()
    while True:
        entries = await list_entries(directory)
        if is_download_complete(entries, expected_filename, in_progress_suffix):
            return directory / expected_filename

        elapsed = time.monotonic() - start
        if elapsed >= timeout:
            pending = [n for n in entries if n.endswith(in_progress_suffix)]
            detail = f" (still in progress: {', '.join(pending)})" if pending else ""
            raise DownloadTimeoutError(
                f"{expected_filename} did not finish downloading within "
                f"{timeout:g}s{detail}."
            )
        await asyncio.sleep(min(poll_interval, timeout - elapsed))
